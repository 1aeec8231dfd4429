"""Stack data models.

Commits belong to the version-control backend; reviews and revisions belong
to the review service. CommitInfo pairs the two for one position in a stack.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class ReviewStatus(str, Enum):
    OPEN = "open"
    MERGED = "merged"
    DELETED = "deleted"


class CommitStatus(str, Enum):
    NEW = "new"
    MODIFIED = "modified"
    BEHIND = "behind"
    CURRENT = "current"


@dataclass(frozen=True)
class Commit:
    """A commit read from the local object store."""

    hash: str
    message: str
    parents: tuple[str, ...] = ()
    tree: str = ""
    author: str = ""  # raw "Name <email> <epoch> <tz>" identity line
    committer: str = ""

    @property
    def title(self) -> str:
        return self.message.split("\n", 1)[0].strip()

    @property
    def short_hash(self) -> str:
        return self.hash[:8]


@dataclass(frozen=True)
class PlaceholderCommit:
    """A commit known only by hash because it has not been fetched yet."""

    hash: str

    @property
    def title(self) -> str:
        return ""

    @property
    def short_hash(self) -> str:
        return self.hash[:8]


AnyCommit = Union[Commit, PlaceholderCommit]


@dataclass(frozen=True)
class Revision:
    """Immutable snapshot of a review.

    ``parent`` is the stack-parent review's revision recorded when this
    revision was created. It is the authoritative stack linkage and is only
    populated where the service was asked for it.
    """

    review_id: str
    number: int
    base_branch: str
    base_commit_sha: str
    head_commit_sha: str
    parent: Revision | None = None


@dataclass(frozen=True)
class Review:
    id: str
    status: ReviewStatus
    head_branch: str
    outdated: bool = False
    pr_number: int = 0


@dataclass(frozen=True)
class ReviewState:
    """A review together with its latest revision and, when one exists, the
    revision whose head commit is the commit being looked at."""

    review: Review
    latest_revision: Revision
    local_revision: Revision | None = None


@dataclass(frozen=True)
class LinkedRevision:
    """One entry of a linked-revision ancestry query."""

    review: Review
    latest_revision: Revision
    revision: Revision


@dataclass(frozen=True)
class SyncedReview:
    """What syncReviewWithParent reports back."""

    head_branch: str
    latest_revision: Revision


@dataclass
class CommitInfo:
    commit: AnyCommit
    state: ReviewState | None = None

    @property
    def review(self) -> Review | None:
        return self.state.review if self.state else None

    @property
    def status(self) -> CommitStatus:
        from plz_core.status import classify

        return classify(self.commit.hash, self.state)


@dataclass
class CommitStack:
    """Ordered stack entries, index 0 nearest HEAD.

    The first entries come from walking local first-parent links; the rest
    come from the review service's linked revisions and may hold
    placeholder commits.
    """

    entries: list[CommitInfo] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __getitem__(self, index: int) -> CommitInfo:
        return self.entries[index]

    def review_ids(self) -> list[str]:
        return [ci.review.id for ci in self.entries if ci.review is not None]
