"""Tests for stack resolution."""

import pytest
from fakes import FakeRepository, FakeService, trailer

from plz_core.errors import AmbiguousMergeBase
from plz_core.models import CommitStatus, PlaceholderCommit, ReviewStatus
from plz_core.stack import load_stack


def _statuses(stack):
    return [ci.status for ci in stack]


def _hashes(stack):
    return [ci.commit.hash for ci in stack]


@pytest.fixture
def repo():
    repo = FakeRepository()
    repo.add("T", "trunk")
    return repo


@pytest.fixture
def service():
    return FakeService()


# ---------------------------------------------------------------------------
# Local walk
# ---------------------------------------------------------------------------


class TestLocalWalk:
    def test_published_stack_with_unpublished_tip(self, repo, service):
        repo.add("X", f"X\n\n{trailer('R100')}", ("T",))
        repo.add("Y", f"Y\n\n{trailer('R200')}", ("X",))
        repo.add("Z", "Z", ("Y",))
        r100 = service.add_review("R100", ["X"])
        service.add_review("R200", ["Y"], parent=r100[0])

        stack = load_stack(repo, service, "Z", "T")

        assert _hashes(stack) == ["Z", "Y", "X"]
        assert _statuses(stack) == [CommitStatus.NEW, CommitStatus.CURRENT, CommitStatus.CURRENT]

    def test_walk_stops_at_first_matched_revision(self, repo, service):
        repo.add("X", f"X\n\n{trailer('R100')}", ("T",))
        repo.add("Y", f"Y\n\n{trailer('R200')}", ("X",))
        r100 = service.add_review("R100", ["X"])
        service.add_review("R200", ["Y"], parent=r100[0])

        load_stack(repo, service, "Y", "T")

        # X comes from the linked revisions, not from a second review query.
        assert service.review_calls == [("R200", "Y")]
        assert service.linked_calls == [("R100", 1, "ancestors")]

    def test_modified_commit_keeps_walking(self, repo, service):
        repo.add("X", f"X\n\n{trailer('R100')}", ("T",))
        repo.add("Y2", f"Y amended\n\n{trailer('R200')}", ("X",))
        r100 = service.add_review("R100", ["X"])
        service.add_review("R200", ["Y"], parent=r100[0])

        stack = load_stack(repo, service, "Y2", "T")

        assert _hashes(stack) == ["Y2", "X"]
        assert _statuses(stack) == [CommitStatus.MODIFIED, CommitStatus.CURRENT]
        # X matched locally and has no recorded parent: nothing to link.
        assert service.linked_calls == []

    def test_head_at_trunk_gives_empty_stack(self, repo, service):
        assert len(load_stack(repo, service, "T", "T")) == 0

    def test_unpublished_commits_only(self, repo, service):
        repo.add("A", "A", ("T",))
        repo.add("B", "B", ("A",))

        stack = load_stack(repo, service, "B", "T")

        assert _hashes(stack) == ["B", "A"]
        assert _statuses(stack) == [CommitStatus.NEW, CommitStatus.NEW]
        assert service.review_calls == []

    def test_trunk_commit_is_never_on_the_stack(self, repo, service):
        repo.add("T2", "trunk moved", ("T",))
        repo.add("A", "A", ("T",))

        stack = load_stack(repo, service, "A", "T2")

        assert _hashes(stack) == ["A"]


# ---------------------------------------------------------------------------
# Linked revisions
# ---------------------------------------------------------------------------


class TestLinkedRevisions:
    def test_unmatched_walk_continues_from_latest_parent_revision(self, repo, service):
        # Y was amended locally and rebased straight onto trunk; its recorded
        # parent R100 has moved on to revision 2 since.
        repo.add("Y2", f"Y\n\n{trailer('R200')}", ("T",))
        r100 = service.add_review("R100", ["X1", "X2"])
        service.add_review("R200", ["Y"], parent=r100[0])

        stack = load_stack(repo, service, "Y2", "T")

        assert service.linked_calls == [("R100", 2, "ancestors")]
        assert _hashes(stack) == ["Y2", "X2"]
        assert isinstance(stack[1].commit, PlaceholderCommit)
        assert stack[1].status is CommitStatus.CURRENT

    def test_linked_entries_are_ordered_toward_trunk(self, repo, service):
        repo.add("Z", f"Z\n\n{trailer('R300')}", ("T",))
        r100 = service.add_review("R100", ["A"])
        r200 = service.add_review("R200", ["B"], parent=r100[0])
        service.add_review("R300", ["Z"], parent=r200[0])

        stack = load_stack(repo, service, "Z", "T")

        assert [ci.review.id for ci in stack] == ["R300", "R200", "R100"]
        assert all(isinstance(ci.commit, PlaceholderCommit) for ci in stack[1:])

    def test_fetched_linked_commit_is_resolved_locally(self, repo, service):
        repo.add("A", f"A\n\n{trailer('R100')}", ("T",))
        repo.add("Z", f"Z\n\n{trailer('R200')}", ("T",))
        r100 = service.add_review("R100", ["A"])
        service.add_review("R200", ["Z"], parent=r100[0])

        stack = load_stack(repo, service, "Z", "T")

        assert stack[1].commit is repo.commits["A"]

    def test_merged_parent_shows_behind(self, repo, service):
        # R100 was merged as M after X was published.
        repo.add("X", f"X\n\n{trailer('R100')}", ("T",))
        repo.add("Y", f"Y\n\n{trailer('R200')}", ("X",))
        r100 = service.add_review("R100", ["X", "M"], status=ReviewStatus.MERGED)
        service.add_review("R200", ["Y"], parent=r100[0])

        stack = load_stack(repo, service, "Y", "T")

        assert _statuses(stack) == [CommitStatus.CURRENT, CommitStatus.BEHIND]
        assert stack[1].state.latest_revision.head_commit_sha == "M"
        assert stack[1].state.local_revision.number == 1

    def test_duplicate_review_is_dropped(self, repo, service):
        r200 = service.add_review("R200", ["W0"])
        r100 = service.add_review("R100", ["X"], parent=r200[0])
        service.add_review("R300", ["Y"], parent=r100[0])
        # R200 was moved above R300 locally.
        repo.add("X", f"X\n\n{trailer('R100')}", ("T",))
        repo.add("Y", f"Y\n\n{trailer('R300')}", ("X",))
        repo.add("W", f"W\n\n{trailer('R200')}", ("Y",))

        stack = load_stack(repo, service, "W", "T")

        ids = [ci.review.id for ci in stack]
        assert ids == ["R200", "R300", "R100"]
        assert len(set(ids)) == len(ids)

    def test_visited_set_is_shared_with_the_caller(self, repo, service):
        repo.add("X", f"X\n\n{trailer('R100')}", ("T",))
        repo.add("Y", f"Y\n\n{trailer('R200')}", ("X",))
        r100 = service.add_review("R100", ["X"])
        service.add_review("R200", ["Y"], parent=r100[0])

        visited = {"R100"}
        stack = load_stack(repo, service, "Y", "T", visited=visited)

        assert [ci.review.id for ci in stack] == ["R200"]
        assert visited == {"R100", "R200"}


# ---------------------------------------------------------------------------
# Merge base
# ---------------------------------------------------------------------------


class TestMergeBase:
    def test_criss_cross_history_is_rejected(self, repo, service):
        repo.add("A", "A", ("T",))
        repo.add("B", "B", ("T",))
        repo.add("C", "C", ("A", "B"))
        repo.add("D", "D", ("B", "A"))

        with pytest.raises(AmbiguousMergeBase) as exc_info:
            load_stack(repo, service, "C", "D")
        assert exc_info.value.count == 2

    def test_first_entry_is_head(self, repo, service):
        repo.add("A", "A", ("T",))
        repo.add("B", "B", ("A",))
        assert load_stack(repo, service, "B", "T")[0].commit.hash == "B"
