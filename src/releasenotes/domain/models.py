from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class TargetAudience(str, Enum):
    NON_TECHNICAL = "NonTechnical"
    PROJECT_MANAGER = "ProjectManager"
    TECHNICAL = "Technical"


class Ticket(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: str = Field(..., description="Short ticket title")
    description: str = Field(..., description="Long ticket body")


class ReleaseRequest(BaseModel):
    """One release-description request, sent once per WebSocket session."""

    model_config = ConfigDict(frozen=True)

    repo_link: str = Field(..., description="HTTP(S) clone URL of the repository")
    product_name: str
    release_tag: str
    prev_release_tag: str
    release_date: date
    target_audience: TargetAudience
    tickets: List[Ticket]

    @classmethod
    def defaults(cls, today: Optional[date] = None) -> "ReleaseRequest":
        """Blank request used to pre-fill a submission form."""
        return cls(
            repo_link="",
            product_name="",
            release_tag="",
            prev_release_tag="",
            release_date=today or date.today(),
            target_audience=TargetAudience.PROJECT_MANAGER,
            tickets=[Ticket(summary="", description="")],
        )


@dataclass(frozen=True)
class CommitRecord:
    id: str
    timestamp: int
    # None when the raw message is not valid text
    message: Optional[str]
