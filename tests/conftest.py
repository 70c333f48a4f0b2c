import sys
from pathlib import Path

import git
import pytest

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

BASE_TS = 1_700_000_000


@pytest.fixture(autouse=True)
def _git_identity(monkeypatch):
    """Give throwaway repositories a deterministic author and committer."""
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Release Bot")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "release-bot@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Release Bot")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "release-bot@example.com")


def make_commit(repo: git.Repo, message: str, offset: int) -> git.Commit:
    """Commit a one-line change with author and committer time BASE_TS + offset."""
    changes = Path(repo.working_tree_dir) / "CHANGES"
    with changes.open("a", encoding="utf-8") as fh:
        fh.write(message + "\n")
    repo.index.add(["CHANGES"])
    when = f"{BASE_TS + offset} +0000"
    return repo.index.commit(message, author_date=when, commit_date=when)


@pytest.fixture
def source_repo(tmp_path):
    """Linear history: m0 (tag v1.0) -> m1 -> m2 (tag v1.1)."""
    repo = git.Repo.init(tmp_path / "source")
    first = make_commit(repo, "m0", 10)
    repo.create_tag("v1.0", ref=first)
    make_commit(repo, "m1", 20)
    last = make_commit(repo, "m2", 30)
    repo.create_tag("v1.1", ref=last, message="Release 1.1")
    return repo
