"""Streaming client for an OpenAI-compatible chat-completions backend.

The backend answers with server-sent events. Each ``data:`` line carries a
JSON chunk whose ``choices[0].delta.content`` is the next piece of text;
``data: [DONE]`` ends the stream.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterator, List, Optional

import requests

from ..core.config import Settings
from ..domain.errors import UpstreamParseError, UpstreamTransportError

LOG = logging.getLogger("releasenotes.upstream")

DONE_SENTINEL = "[DONE]"


def parse_chunk(data: str) -> str:
    """Return the text carried by one SSE chunk.

    A chunk that reports a ``finish_reason`` carries no text and maps to the
    empty string.
    """
    try:
        parsed = json.loads(data)
        choice = parsed["choices"][0]
    except (json.JSONDecodeError, KeyError, IndexError, TypeError) as exc:
        raise UpstreamParseError() from exc
    if not isinstance(choice, dict):
        raise UpstreamParseError()
    if choice.get("finish_reason") is not None:
        return ""
    content = (choice.get("delta") or {}).get("content")
    if not isinstance(content, str):
        raise UpstreamParseError()
    return content


def _event_data(raw_line: Any) -> Optional[str]:
    if not raw_line:
        return None
    if isinstance(raw_line, bytes):
        try:
            line = raw_line.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise UpstreamParseError() from exc
    else:
        line = raw_line
    if not line.startswith("data:"):
        # comments, event names, ids and retry hints
        return None
    return line[5:].strip()


class TokenStreamClient:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        if not settings.api_key:
            raise ValueError("api_key is required to open a token stream")
        self._settings = settings
        self._session = session or requests.Session()

    def _payload(self, prompt: str, system_prompt: str) -> Dict[str, Any]:
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]
        return {
            "model": self._settings.model,
            "max_tokens": self._settings.max_tokens,
            "temperature": self._settings.temperature,
            "stream": True,
            "messages": messages,
        }

    def stream(self, prompt: str, system_prompt: str) -> Iterator[Optional[str]]:
        """Yield generated text fragments.

        The first item is ``""`` once the backend has accepted the request.
        The last item is ``None``, whether the backend sent ``[DONE]`` or just
        closed the connection. Errors are raised once and end the iteration.
        """
        url = f"{self._settings.base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self._settings.api_key}",
            "Accept": "text/event-stream",
        }
        LOG.debug("upstream_stream_open", extra={"model": self._settings.model, "url": url})
        try:
            with self._session.post(
                url,
                json=self._payload(prompt, system_prompt),
                headers=headers,
                timeout=(self._settings.connect_timeout, self._settings.read_timeout),
                stream=True,
            ) as resp:
                resp.raise_for_status()
                yield ""
                for raw_line in resp.iter_lines():
                    data = _event_data(raw_line)
                    if data is None:
                        continue
                    if data == DONE_SENTINEL:
                        LOG.debug("upstream_stream_done")
                        yield None
                        return
                    yield parse_chunk(data)
        except requests.exceptions.RequestException as exc:
            LOG.warning("upstream_stream_failed", extra={"url": url, "err": str(exc)})
            raise UpstreamTransportError(str(exc)) from exc
        LOG.debug("upstream_stream_closed_without_done")
        yield None
