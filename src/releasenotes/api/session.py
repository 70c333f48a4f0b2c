"""WebSocket session relay.

One ``SessionRelay`` owns one client connection for its whole lifetime:

1. read exactly one request frame and validate it;
2. start exactly one background job that writes fragments to a queue;
3. wait on three sources at once (queued fragments, inbound client frames,
   job completion) and forward fragments as ``{"Ok": ...}`` frames;
4. send at most one ``{"Err": ...}`` frame and close the connection.

A clean job completion has no dedicated success frame: the stream simply
ends and the connection closes. When the client closes first, queued
fragments are dropped and the job is left to finish on its own.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from pydantic import ValidationError
from starlette.websockets import WebSocketDisconnect, WebSocketState

from ..core.state_machine import SessionOutcome, SessionState, is_valid_transition
from ..domain.errors import (
    EmptyFieldError,
    InvalidArguments,
    JobPanic,
    JobTimeout,
    ReleaseNotesError,
    SessionConnectionError,
    UnsupportedFormat,
)
from ..domain.models import ReleaseRequest
from ..domain.validation import any_field_empty
from ..observability.metrics import ACTIVE_SESSIONS, FRAGMENTS_RELAYED, SESSION_OUTCOMES

logger = logging.getLogger("releasenotes.session")

JobRunner = Callable[[ReleaseRequest, "asyncio.Queue[str]"], Awaitable[None]]

_TRANSPORT_ERRORS = (RuntimeError, WebSocketDisconnect, OSError)

# Jobs whose client went away; referenced until they finish so their result is still logged.
_ABANDONED_JOBS: Set["asyncio.Task[None]"] = set()


def serialize_ok(fragment: str) -> str:
    return json.dumps({"Ok": fragment}, ensure_ascii=False)


def serialize_err(message: str) -> str:
    return json.dumps({"Err": message}, ensure_ascii=False)


class _CloseRequested(Exception):
    pass


def _log_abandoned_result(job: "asyncio.Task[None]") -> None:
    _ABANDONED_JOBS.discard(job)
    if job.cancelled():
        logger.info("abandoned_job_cancelled")
        return
    exc = job.exception()
    if exc is None:
        logger.info("abandoned_job_completed")
    else:
        logger.info("abandoned_job_failed", extra={"err": str(exc)})


class SessionRelay:
    def __init__(self, websocket: Any, runner: JobRunner, job_timeout: Optional[float] = None) -> None:
        self._ws = websocket
        self._runner = runner
        self._job_timeout = job_timeout
        self._job: Optional["asyncio.Task[None]"] = None
        self._error_sent = False
        self.state = SessionState.AWAITING_REQUEST
        self.outcome: Optional[SessionOutcome] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def run(self) -> SessionOutcome:
        """Drive the session to its terminal state and return the outcome."""
        ACTIVE_SESSIONS.inc()
        try:
            return await self._run()
        finally:
            ACTIVE_SESSIONS.dec()

    async def finish(self, outcome: SessionOutcome) -> SessionOutcome:
        """Enter the terminal state and close the connection.

        Calling this again once terminal is a no-op returning the first outcome.
        """
        if self.state == SessionState.TERMINAL:
            return self.outcome  # type: ignore[return-value]
        self._transition(SessionState.TERMINAL)
        self.outcome = outcome
        SESSION_OUTCOMES.labels(outcome=outcome.value).inc()
        logger.info("session_finished", extra={"outcome": outcome.value})
        await self._close()
        return outcome

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------
    async def _run(self) -> SessionOutcome:
        try:
            request = await self._read_request()
        except _CloseRequested:
            return await self.finish(SessionOutcome.CLOSED_BEFORE_REQUEST)
        except SessionConnectionError as exc:
            # the link is already unusable, nothing can be reported
            logger.warning("session_connection_error", extra={"err": str(exc)})
            return await self.finish(SessionOutcome.CONNECTION_ERROR)
        except (UnsupportedFormat, InvalidArguments) as exc:
            await self._send_error(str(exc))
            return await self.finish(SessionOutcome.REJECTED)

        if any_field_empty(request):
            await self._send_error(str(EmptyFieldError()))
            return await self.finish(SessionOutcome.REJECTED)

        channel: "asyncio.Queue[str]" = asyncio.Queue()
        job = self._start_job(request, channel)
        outcome = await self._relay(job, channel)
        return await self.finish(outcome)

    async def _read_request(self) -> ReleaseRequest:
        try:
            message = await self._ws.receive()
        except _TRANSPORT_ERRORS as exc:
            raise SessionConnectionError(f"Connection error: {exc}.") from exc
        if message.get("type") == "websocket.disconnect":
            raise _CloseRequested()
        text = message.get("text")
        if text is None:
            # binary frames aren't supported
            raise UnsupportedFormat()
        try:
            return ReleaseRequest.model_validate_json(text)
        except ValidationError as exc:
            raise InvalidArguments() from exc

    def _start_job(self, request: ReleaseRequest, channel: "asyncio.Queue[str]") -> "asyncio.Task[None]":
        if self._job is not None:
            raise RuntimeError("a session runs at most one job")
        self._transition(SessionState.RUNNING)
        self._job = asyncio.create_task(self._run_job(request, channel))
        logger.info(
            "session_job_started",
            extra={"repo_link": request.repo_link, "release_tag": request.release_tag},
        )
        return self._job

    async def _run_job(self, request: ReleaseRequest, channel: "asyncio.Queue[str]") -> None:
        if self._job_timeout is None:
            await self._runner(request, channel)
            return
        try:
            await asyncio.wait_for(self._runner(request, channel), self._job_timeout)
        except asyncio.TimeoutError as exc:
            raise JobTimeout(self._job_timeout) from exc

    async def _relay(self, job: "asyncio.Task[None]", channel: "asyncio.Queue[str]") -> SessionOutcome:
        next_fragment = asyncio.ensure_future(channel.get())
        inbound = asyncio.ensure_future(self._ws.receive())
        try:
            while True:
                done, _ = await asyncio.wait(
                    {next_fragment, inbound, job},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if inbound in done:
                    outcome = self._inbound_outcome(inbound)
                    if outcome is not None:
                        self._abandon(job)
                        return outcome
                    inbound = asyncio.ensure_future(self._ws.receive())
                if next_fragment in done:
                    await self._forward(next_fragment.result())
                    next_fragment = asyncio.ensure_future(channel.get())
                if job in done:
                    # completion can be observed before the last fragments are read
                    await self._drain(next_fragment, channel)
                    return await self._report_job_result(job)
        finally:
            for task in (next_fragment, inbound):
                if not task.done():
                    task.cancel()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _transition(self, target: SessionState) -> None:
        if not is_valid_transition(self.state, target):
            raise RuntimeError(f"invalid session transition {self.state.value} -> {target.value}")
        self.state = target

    def _inbound_outcome(self, inbound: "asyncio.Future[Dict[str, Any]]") -> Optional[SessionOutcome]:
        exc = inbound.exception()
        if exc is not None:
            logger.warning("session_connection_error", extra={"err": str(exc)})
            return SessionOutcome.CONNECTION_ERROR
        if inbound.result().get("type") == "websocket.disconnect":
            logger.info("session_client_closed")
            return SessionOutcome.CLIENT_CLOSED
        # only a close frame matters once the job is running
        return None

    def _abandon(self, job: "asyncio.Task[None]") -> None:
        if job.done():
            _log_abandoned_result(job)
            return
        _ABANDONED_JOBS.add(job)
        job.add_done_callback(_log_abandoned_result)

    async def _drain(self, pending: "asyncio.Future[str]", channel: "asyncio.Queue[str]") -> None:
        if pending.done():
            await self._forward(pending.result())
        else:
            pending.cancel()
        while True:
            try:
                fragment = channel.get_nowait()
            except asyncio.QueueEmpty:
                return
            await self._forward(fragment)

    async def _report_job_result(self, job: "asyncio.Task[None]") -> SessionOutcome:
        if job.cancelled():
            await self._send_error(str(JobPanic("the job was cancelled")))
            return SessionOutcome.JOB_CRASHED
        exc = job.exception()
        if exc is None:
            return SessionOutcome.COMPLETED
        if isinstance(exc, ReleaseNotesError):
            logger.info("session_job_failed", extra={"err": str(exc)})
            await self._send_error(str(exc))
            return SessionOutcome.JOB_ERROR
        logger.error("session_job_crashed", exc_info=exc)
        await self._send_error(str(JobPanic(f"{type(exc).__name__}: {exc}")))
        return SessionOutcome.JOB_CRASHED

    async def _forward(self, fragment: str) -> None:
        if await self._send(serialize_ok(fragment)):
            FRAGMENTS_RELAYED.inc()

    async def _send_error(self, message: str) -> None:
        if self._error_sent:
            return
        self._error_sent = True
        await self._send(serialize_err(message))

    async def _send(self, text: str) -> bool:
        try:
            await self._ws.send_text(text)
        except _TRANSPORT_ERRORS as exc:
            # the error can't reach a client over the broken socket
            logger.debug("session_send_failed", extra={"err": str(exc)})
            return False
        return True

    async def _close(self) -> None:
        if WebSocketState.DISCONNECTED in (self._ws.client_state, self._ws.application_state):
            return
        try:
            await self._ws.close()
        except _TRANSPORT_ERRORS as exc:
            logger.debug("session_close_failed", extra={"err": str(exc)})
