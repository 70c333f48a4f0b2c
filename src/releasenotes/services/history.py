from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol, Iterator

from ..domain.errors import AncestryNotFound, InvalidTagOrder
from ..domain.models import CommitRecord
from ..infrastructure.repository import RepositoryCache

logger = logging.getLogger("releasenotes.history")


class RepositoryAccessor(Protocol):
    def resolve_ref(self, repo: Any, name: str) -> CommitRecord: ...

    def walk_ancestors(self, repo: Any, from_commit: CommitRecord) -> Iterator[CommitRecord]: ...


def extract_commit_messages(
    accessor: RepositoryAccessor,
    repo: Any,
    release_tag: str,
    prev_release_tag: str,
    max_commits: Optional[int] = None,
) -> List[str]:
    """Return the commit messages between two tags, most recent first.

    The previous-release commit must be strictly older than the release
    commit and must be reached by walking the release commit's ancestry.
    Its own message is not included.

    ``max_commits`` bounds the commits in that range, the release commit
    included and the previous-release commit excluded, so a range of exactly
    ``max_commits`` commits still succeeds.
    """
    release = accessor.resolve_ref(repo, release_tag)
    prev_release = accessor.resolve_ref(repo, prev_release_tag)
    if not prev_release.timestamp < release.timestamp:
        raise InvalidTagOrder()

    messages: List[str] = []
    for visited, commit in enumerate(accessor.walk_ancestors(repo, release)):
        if commit.id == prev_release.id:
            logger.debug("history_extracted", extra={"commits": visited, "messages": len(messages)})
            return messages
        if max_commits is not None and visited >= max_commits:
            raise AncestryNotFound(
                f"prev_release_tag was not found within {max_commits} commits of release_tag."
            )
        if commit.message is not None:
            messages.append(commit.message)

    raise AncestryNotFound()


def read_commit_messages(
    cache: RepositoryCache,
    repo_link: str,
    release_tag: str,
    prev_release_tag: str,
    max_commits: Optional[int] = None,
) -> List[str]:
    # fetch from origin if the working copy is already present, otherwise clone
    repo = cache.open_or_sync(repo_link)
    return extract_commit_messages(cache, repo, release_tag, prev_release_tag, max_commits=max_commits)
