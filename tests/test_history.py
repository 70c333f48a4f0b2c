from typing import Dict, Iterator, List, Optional

import pytest

from src.releasenotes.domain.errors import AncestryNotFound, InvalidTagOrder, RefNotFound
from src.releasenotes.domain.models import CommitRecord
from src.releasenotes.infrastructure.repository import RepositoryCache
from src.releasenotes.services.history import extract_commit_messages, read_commit_messages


class FakeAccessor:
    """In-memory commit graph following first parents."""

    def __init__(self) -> None:
        self.commits: Dict[str, CommitRecord] = {}
        self.parents: Dict[str, Optional[str]] = {}
        self.refs: Dict[str, str] = {}
        self.walked: List[str] = []

    def add(self, cid: str, timestamp: int, message: Optional[str], parent: Optional[str] = None, tag: Optional[str] = None) -> None:
        self.commits[cid] = CommitRecord(id=cid, timestamp=timestamp, message=message)
        self.parents[cid] = parent
        if tag:
            self.refs[tag] = cid

    def resolve_ref(self, repo, name: str) -> CommitRecord:
        try:
            return self.commits[self.refs[name.strip()]]
        except KeyError:
            raise RefNotFound(name.strip())

    def walk_ancestors(self, repo, from_commit: CommitRecord) -> Iterator[CommitRecord]:
        cid: Optional[str] = from_commit.id
        while cid is not None:
            self.walked.append(cid)
            yield self.commits[cid]
            cid = self.parents[cid]


def _linear() -> FakeAccessor:
    acc = FakeAccessor()
    acc.add("P", 10, "prev release", tag="prev")
    acc.add("A", 20, "m1", parent="P")
    acc.add("B", 30, "m2", parent="A", tag="release")
    return acc


def test_linear_chain_returns_messages_newest_first_without_prev():
    assert extract_commit_messages(_linear(), None, "release", "prev") == ["m2", "m1"]


def test_walk_stops_at_previous_release():
    acc = _linear()
    acc.add("O", 5, "older", tag="ancient")
    acc.parents["P"] = "O"
    extract_commit_messages(acc, None, "release", "prev")
    assert acc.walked == ["B", "A", "P"]


def test_equal_timestamps_are_rejected():
    acc = FakeAccessor()
    acc.add("C1", 10, "one", tag="prev")
    acc.add("C2", 10, "two", parent="C1", tag="release")
    with pytest.raises(InvalidTagOrder):
        extract_commit_messages(acc, None, "release", "prev")


def test_previous_tag_newer_than_release_is_rejected():
    acc = _linear()
    with pytest.raises(InvalidTagOrder):
        extract_commit_messages(acc, None, "prev", "release")


def test_unrelated_branches_exhaust_the_walk():
    acc = FakeAccessor()
    acc.add("X1", 10, "side root", tag="prev")
    acc.add("Y1", 15, "main root")
    acc.add("Y2", 20, "main tip", parent="Y1", tag="release")
    with pytest.raises(AncestryNotFound, match="doesn't precede"):
        extract_commit_messages(acc, None, "release", "prev")
    assert acc.walked == ["Y2", "Y1"]


def test_undecodable_messages_are_skipped():
    acc = FakeAccessor()
    acc.add("P", 10, "prev", tag="prev")
    acc.add("A", 20, None, parent="P")
    acc.add("B", 30, "m2", parent="A", tag="release")
    assert extract_commit_messages(acc, None, " release ", "prev") == ["m2"]


def test_unknown_tag_fails():
    with pytest.raises(RefNotFound):
        extract_commit_messages(_linear(), None, "release", "v0.0")


def test_max_commits_bounds_the_walk():
    acc = _linear()
    with pytest.raises(AncestryNotFound, match="within 1 commits"):
        extract_commit_messages(acc, None, "release", "prev", max_commits=1)
    assert extract_commit_messages(_linear(), None, "release", "prev", max_commits=2) == ["m2", "m1"]


def test_read_commit_messages_against_a_real_clone(tmp_path, source_repo):
    cache = RepositoryCache(tmp_path / "repos", allow_local=True)
    messages = read_commit_messages(cache, str(source_repo.working_tree_dir), "v1.1", "v1.0")
    assert messages == ["m2", "m1"]
    # second run reuses the working copy
    assert read_commit_messages(cache, str(source_repo.working_tree_dir), "v1.1", "v1.0") == ["m2", "m1"]
