"""Bring a resolved stack up to date with the review service.

Entries are visited from the trunk end toward HEAD. Published entries are
synced on the service and fetched when the service moved them; the walk stops
at the first unpublished or locally modified entry, which is never rewritten
here. If something was fetched and nothing is left above it, the checked-out
branch is moved onto it. Otherwise the caller is told to rebase the remaining
commits by hand.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from plz_core.errors import Conflict, MustRebase, RemoteInconsistency
from plz_core.models import CommitStatus, ReviewStatus
from plz_core.vcs.base import branch_ref

if TYPE_CHECKING:
    from plz_core.models import CommitInfo, CommitStack
    from plz_core.service.client import ReviewService
    from plz_core.vcs.base import BaseRepository

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of a sync that did not require a manual rebase."""

    target: str | None = None  # branch or commit the stack now sits on
    new_head: str | None = None  # hash the checked-out branch was moved to

    @property
    def updated(self) -> bool:
        return self.new_head is not None


def sync_stack(
    repo: BaseRepository,
    service: ReviewService,
    stack: CommitStack,
    head_branch: str,
) -> SyncResult:
    """Sync every published entry of ``stack`` and fast-forward ``head_branch``.

    Raises MustRebase when unpublished commits sit above something that was
    fetched, Conflict when a merged review was modified locally and
    RemoteInconsistency when a fetched branch disagrees with the service.
    """
    target: str | None = None
    new_head: str | None = None

    i = len(stack) - 1
    while i >= 0:
        ci = stack[i]
        status = ci.status
        review = ci.review

        if review is None:
            break

        if review.status == ReviewStatus.MERGED:
            if status == CommitStatus.CURRENT:
                i -= 1
                continue
            if status != CommitStatus.BEHIND:
                raise Conflict(review.id)
            target = new_head = _pull_merge_commit(repo, ci)
            # Nothing above a merge can be synced in the same pass.
            i -= 1
            break

        if status == CommitStatus.MODIFIED:
            break

        if review.status == ReviewStatus.DELETED:
            i -= 1
            continue

        synced = service.sync_review_with_parent(review.id)
        latest = synced.latest_revision
        if latest.head_commit_sha == ci.commit.hash:
            i -= 1
            continue

        branch = synced.head_branch or review.head_branch
        logger.debug("pulling branch for review %s: %s", review.id, branch)
        fetched = repo.pull_branch(branch)
        if fetched != latest.head_commit_sha:
            raise RemoteInconsistency(branch, fetched, latest.head_commit_sha)
        target = branch
        new_head = fetched
        i -= 1

    if target is not None and i >= 0:
        raise MustRebase(target=target, count=i + 1, branch=head_branch)

    if new_head is not None:
        logger.debug("repointing %s to %s", head_branch, new_head)
        repo.write_ref(branch_ref(head_branch), new_head)
        repo.reset_hard(new_head)

    return SyncResult(target=target, new_head=new_head)


def _pull_merge_commit(repo: BaseRepository, ci: CommitInfo) -> str:
    """Fetch the branch a merged review landed on and return the merge commit."""
    latest = ci.state.latest_revision
    repo.pull_branch(latest.base_branch)
    logger.debug("review %s was merged as %s", ci.review.id, latest.head_commit_sha)
    return latest.head_commit_sha
