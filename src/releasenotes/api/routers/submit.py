from __future__ import annotations

from fastapi import APIRouter, Depends, WebSocket

from ...core.config import Settings, get_settings
from ...domain.models import ReleaseRequest
from ...infrastructure.repository import get_repository_cache
from ...services.job import ReleaseNotesJob
from ..session import JobRunner, SessionRelay

router = APIRouter(tags=["submit"])


def get_job_runner(settings: Settings = Depends(get_settings)) -> JobRunner:
    job = ReleaseNotesJob(settings, cache=get_repository_cache(settings.repos_dir))
    return job.run


@router.websocket("/submit")
async def submit(
    websocket: WebSocket,
    runner: JobRunner = Depends(get_job_runner),
    settings: Settings = Depends(get_settings),
) -> None:
    await websocket.accept()
    await SessionRelay(websocket, runner, job_timeout=settings.job_timeout).run()


@router.get("/submit/defaults", response_model=ReleaseRequest)
def submit_defaults() -> ReleaseRequest:
    """Blank request for pre-filling a submission form (today's date, one empty ticket)."""
    return ReleaseRequest.defaults()
