from __future__ import annotations

from typing import TYPE_CHECKING

from plz_core.models import CommitStatus, ReviewStatus

if TYPE_CHECKING:
    from plz_core.models import ReviewState


def classify(commit_hash: str, state: ReviewState | None) -> CommitStatus:
    """Classify a local commit against what the review service knows about it.

    new       no review owns the commit
    modified  the review exists but no revision has this commit as its head
    behind    a revision matches, but a newer revision exists
    current   the commit is the head of the latest revision (for a merged
              review, the final revision)
    """
    if state is None:
        return CommitStatus.NEW
    latest = state.latest_revision
    if commit_hash == latest.head_commit_sha:
        return CommitStatus.CURRENT
    local = state.local_revision
    if local is None:
        return CommitStatus.MODIFIED
    if local.number == latest.number:
        # A merged review's final revision reports the merge commit as head.
        return CommitStatus.CURRENT if state.review.status == ReviewStatus.MERGED else CommitStatus.BEHIND
    return CommitStatus.BEHIND
