from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import List, Optional, Sequence

from ..domain.models import TargetAudience, Ticket

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"
TICKET_DELIMITER = "\n--------------------\n"


def _load_template(name: str) -> str:
    path = TEMPLATES_DIR / name
    if not path.exists():
        raise FileNotFoundError(str(path))
    return path.read_text(encoding="utf-8")


def load_release_template() -> str:
    return _load_template("template.md")


def load_system_prompt() -> str:
    return _load_template("prompt.txt")


def _ticket_block(tickets: Sequence[Ticket]) -> str:
    return TICKET_DELIMITER.join(
        f"Summary:{ticket.summary}\nDescription:{ticket.description}" for ticket in tickets
    )


def generate_prompt(
    product_name: str,
    release_version: str,
    release_date: date,
    target_audience: TargetAudience,
    tickets: Sequence[Ticket],
    commit_messages: List[str],
    template: Optional[str] = None,
) -> str:
    """Assemble the user prompt sent to the generation backend.

    Plain interpolation, no escaping. ``template`` defaults to the packaged
    ``templates/template.md``.
    """
    if template is None:
        template = load_release_template()
    audience = target_audience.value if isinstance(target_audience, TargetAudience) else str(target_audience)
    directive = f"IMPORTANT: Your target audience is: {audience}. You must take this into account."
    header = f"{product_name} Release Notes - {release_version} - {release_date.isoformat()}"
    body = f"Template:\n{header}\n\n{template}"
    commits = "\n".join(commit_messages)
    return f"Tickets:\n{_ticket_block(tickets)}\n\nCommit messages:\n{commits}\n\n{directive}\n\n{body}"
