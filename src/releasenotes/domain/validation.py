from __future__ import annotations

from typing import Iterator

from .models import ReleaseRequest


def _string_fields(request: ReleaseRequest) -> Iterator[str]:
    yield request.repo_link
    yield request.product_name
    yield request.release_tag
    yield request.prev_release_tag
    for ticket in request.tickets:
        yield ticket.summary
        yield ticket.description


def any_field_empty(request: ReleaseRequest) -> bool:
    """Return True when the request must be rejected.

    A request is rejected when it carries no tickets or when any required
    string (including every ticket summary and description) is empty.
    """
    if not request.tickets:
        return True
    return any(field == "" for field in _string_fields(request))
