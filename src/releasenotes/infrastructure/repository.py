"""Local working copies of remote repositories.

Working copies live under a single root directory, one per clone URL, in a
sub-directory named after a stable hash of the URL. Distinct remotes may
share a display name, so the repository name is never used as the key.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple
from urllib.parse import urlsplit

import git
from git.exc import BadName, BadObject, GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from ..domain.errors import RefNotFound, RepositoryError
from ..domain.models import CommitRecord

logger = logging.getLogger("releasenotes.repository")

REMOTE_SCHEMES: Tuple[str, ...] = ("http", "https")


def link_hash(repo_link: str) -> str:
    return hashlib.sha256(repo_link.encode("utf-8")).hexdigest()[:16]


def _decode_message(commit: git.Commit) -> Optional[str]:
    message = commit.message
    if isinstance(message, bytes):
        try:
            return message.decode("utf-8")
        except UnicodeDecodeError:
            return None
    # GitPython substitutes U+FFFD for bytes it could not decode
    if "\ufffd" in message:
        return None
    return message


def _to_record(commit: git.Commit) -> CommitRecord:
    return CommitRecord(id=commit.hexsha, timestamp=int(commit.committed_date), message=_decode_message(commit))


class RepositoryCache:
    """Hash-keyed cache of working copies.

    No eviction: every distinct link keeps its working copy until removed by
    hand. Only HTTP(S) remotes are cloned unless ``allow_local`` is set, so a
    client cannot point the service at repositories on its own filesystem.
    """

    def __init__(self, root: Path | str, allow_local: bool = False) -> None:
        self.root = Path(root)
        self.allow_local = allow_local
        self._paths: Dict[str, Path] = {}

    def path_for(self, repo_link: str) -> Path:
        key = link_hash(repo_link)
        path = self._paths.get(key)
        if path is None:
            path = self.root / key
            self._paths[key] = path
        return path

    def open_or_sync(self, repo_link: str) -> git.Repo:
        """Fetch from origin when the working copy exists, otherwise clone.

        Fetching is enough: tags are read from the fetched refs, nothing is
        merged into a working tree.
        """
        self._check_remote(repo_link)
        path = self.path_for(repo_link)
        try:
            if path.exists():
                repo = git.Repo(path)
                logger.info("repository_fetch", extra={"path": str(path)})
                try:
                    origin = repo.remotes["origin"]
                except (IndexError, AttributeError) as exc:
                    # left behind by an interrupted clone
                    raise RepositoryError(f"Working copy for {repo_link} has no origin remote.") from exc
                origin.fetch(tags=True, force=True)
                return repo
            logger.info("repository_clone", extra={"path": str(path)})
            self.root.mkdir(parents=True, exist_ok=True)
            git.Repo.clone_from(repo_link, path)
            return git.Repo(path)
        except (GitCommandError, InvalidGitRepositoryError, NoSuchPathError) as exc:
            raise RepositoryError(f"Unable to fetch repository {repo_link}: {exc}") from exc

    def _check_remote(self, repo_link: str) -> None:
        if self.allow_local:
            return
        if urlsplit(repo_link.strip()).scheme.lower() not in REMOTE_SCHEMES:
            raise RepositoryError(f"Unsupported repository link {repo_link}: only HTTP(S) remotes can be cloned.")

    def resolve_ref(self, repo: git.Repo, name: str) -> CommitRecord:
        name = name.strip()
        if not name:
            raise RefNotFound(name)
        try:
            commit = repo.commit(name)
        except (BadName, BadObject, ValueError, IndexError) as exc:
            raise RefNotFound(name) from exc
        return _to_record(commit)

    def walk_ancestors(self, repo: git.Repo, from_commit: CommitRecord) -> Iterator[CommitRecord]:
        """Yield ``from_commit`` and its ancestors, newest first.

        The walk is lazy; consumers stop it once they have seen enough.
        """
        try:
            for commit in repo.iter_commits(from_commit.id, date_order=True):
                yield _to_record(commit)
        except GitCommandError as exc:
            raise RepositoryError(f"Unable to walk history from {from_commit.id}: {exc}") from exc


_caches: Dict[Path, RepositoryCache] = {}


def get_repository_cache(root: Path | str) -> RepositoryCache:
    """Process-wide cache per root directory, shared by all sessions."""
    key = Path(root).resolve()
    cache = _caches.get(key)
    if cache is None:
        cache = RepositoryCache(key)
        _caches[key] = cache
    return cache
