"""Stack resolution: build the commit stack for HEAD.

The local walk follows first parents from HEAD until a commit matches a known
revision (or the merge base with trunk is reached). Everything below that
point is taken from the review service's linked revisions, because the
service knows the whole stack even when its branches were never fetched.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from plz_core.errors import ObjectNotFound
from plz_core.models import CommitInfo, CommitStack, PlaceholderCommit, ReviewState
from plz_core.trailer import read_review_id

if TYPE_CHECKING:
    from plz_core.models import AnyCommit, Revision
    from plz_core.service.client import ReviewService
    from plz_core.vcs.base import BaseRepository

logger = logging.getLogger(__name__)


def load_stack(
    repo: BaseRepository,
    service: ReviewService,
    head: str,
    trunk_tip: str,
    visited: set[str] | None = None,
) -> CommitStack:
    """Return the stack starting at ``head``, HEAD-nearest entry first.

    ``visited`` collects the review IDs placed on the stack. Callers that
    resolve several stacks can pass their own set to share it; by default a
    fresh one is used.

    Raises AmbiguousMergeBase when head and trunk_tip have no unique merge base.
    """
    if visited is None:
        visited = set()

    base = repo.merge_base(head, trunk_tip)
    logger.debug("merge base commit is %s", base)

    stack = CommitStack()
    start = _walk_local(repo, service, head, base, stack, visited)
    if start is not None:
        _append_linked_revisions(repo, service, start, stack, visited)
    return stack


def _walk_local(
    repo: BaseRepository,
    service: ReviewService,
    head: str,
    base: str,
    stack: CommitStack,
    visited: set[str],
) -> Revision | None:
    """Walk first parents from head and return the revision to continue from."""
    last_state: ReviewState | None = None
    hash = head
    while hash != base:
        commit = repo.commit(hash)
        logger.debug("processing commit %s with parents %s", commit.hash, list(commit.parents))
        review_id = read_review_id(commit.message)
        if review_id is None:
            stack.entries.append(CommitInfo(commit=commit))
        else:
            logger.debug("loading review %s", review_id)
            state = service.review(review_id, head_commit_sha=commit.hash)
            stack.entries.append(CommitInfo(commit=commit, state=state))
            visited.add(review_id)
            last_state = state
            if state.local_revision is not None:
                # The service knows this revision and everything below it.
                return state.local_revision.parent
        if not commit.parents:
            break
        hash = commit.parents[0]

    parent = last_state.latest_revision.parent if last_state is not None else None
    if parent is None:
        return None
    # The recorded parent revision may be stale (merged or advanced since), so
    # continue from that review's latest revision instead.
    return service.latest_revision(parent.review_id)


def _append_linked_revisions(
    repo: BaseRepository,
    service: ReviewService,
    start: Revision,
    stack: CommitStack,
    visited: set[str],
) -> None:
    linked = service.linked_revisions(start.review_id, start.number, direction="ancestors")
    # The service lists the root-most ancestor first; the stack grows toward trunk.
    for entry in reversed(linked):
        review_id = entry.review.id
        if review_id in visited:
            # TODO: a review seen twice usually means the stack was reordered;
            # dropping it is only right when the duplicate sits above trunk and
            # the next publish straightens it out.
            logger.debug("review %s already on the stack, skipping (stack reordered?)", review_id)
            continue
        visited.add(review_id)
        stack.entries.append(
            CommitInfo(
                commit=_lookup_commit(repo, entry.revision.head_commit_sha),
                state=ReviewState(
                    review=entry.review,
                    latest_revision=entry.latest_revision,
                    local_revision=entry.revision,
                ),
            )
        )


def _lookup_commit(repo: BaseRepository, hash: str) -> AnyCommit:
    try:
        return repo.commit(hash)
    except ObjectNotFound:
        logger.debug("commit %s not fetched yet, using a placeholder", hash)
        return PlaceholderCommit(hash=hash)
