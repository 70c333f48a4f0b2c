from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ..core.config import Settings
from ..domain.errors import MissingCredential, UpstreamError
from ..domain.models import ReleaseRequest
from ..infrastructure.repository import RepositoryCache
from .history import read_commit_messages
from .prompt import generate_prompt, load_system_prompt
from .streaming import iter_in_thread
from .token_stream import TokenStreamClient

logger = logging.getLogger("releasenotes.job")

STREAMING_MARKER = "Streaming"


class ReleaseNotesJob:
    """Background unit of work for one session.

    History extraction, prompt assembly and the upstream token stream run
    end to end; every produced fragment is put on ``channel`` in order.
    """

    def __init__(
        self,
        settings: Settings,
        cache: Optional[RepositoryCache] = None,
        client_factory: Optional[Callable[[Settings], TokenStreamClient]] = None,
    ) -> None:
        self.settings = settings
        self.cache = cache or RepositoryCache(settings.repos_dir)
        self._client_factory = client_factory or TokenStreamClient

    async def run(self, request: ReleaseRequest, channel: "asyncio.Queue[str]") -> None:
        channel.put_nowait(STREAMING_MARKER)

        if not self.settings.api_key:
            raise MissingCredential()

        commit_messages = await asyncio.to_thread(
            read_commit_messages,
            self.cache,
            request.repo_link,
            request.release_tag,
            request.prev_release_tag,
            self.settings.max_commits,
        )
        logger.info(
            "job_history_ready",
            extra={"repo_link": request.repo_link, "commits": len(commit_messages)},
        )

        prompt = generate_prompt(
            request.product_name,
            request.release_tag,
            request.release_date,
            request.target_audience,
            request.tickets,
            commit_messages,
        )
        client = self._client_factory(self.settings)
        tokens = client.stream(prompt, load_system_prompt())
        try:
            async for token in iter_in_thread(tokens):
                if token is None:
                    # releases the upstream response
                    tokens.close()
                    break
                channel.put_nowait(token)
        except UpstreamError as exc:
            raise type(exc)(f"Error fetching tokens: {exc}") from exc
