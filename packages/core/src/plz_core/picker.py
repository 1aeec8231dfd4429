"""Build the commit picker shown by ``plz switch``.

The picker covers HEAD and every branch a review on the current stack may
live on: the local review branch, its remote-tracking branch and the head
commits the review service recorded. Commits are collected breadth-first from
those tips down to their merge base with trunk, ordered children first and
drawn with :class:`plz_core.graph.CommitGraph`.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rich.markup import escape

from plz_core.errors import ObjectNotFound, ReferenceNotFound
from plz_core.graph import CommitGraph
from plz_core.trailer import read_review_id, review_branch
from plz_core.vcs.base import branch_ref, remote_ref

if TYPE_CHECKING:
    from plz_core.models import Commit, CommitStack
    from plz_core.service.client import ReviewService
    from plz_core.vcs.base import BaseRepository, Head

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 47


@dataclass
class SelectItem:
    """One selectable commit: its graph rows with the description attached."""

    hash: str
    lines: list[str]
    branch: str | None = None  # checked out instead of the bare commit when set

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


def truncate_title(title: str) -> str:
    if len(title) > MAX_TITLE_LENGTH:
        return title[:MAX_TITLE_LENGTH] + "..."
    return title


def stack_tips(repo: BaseRepository, stack: CommitStack, head: Head) -> tuple[list[str], dict[str, str]]:
    """Return the tips to draw from and the branch to check out per hash.

    Branches that do not exist locally are skipped. HEAD's own branch wins
    when several branches point at the same commit.
    """
    tips = [head.hash]
    branches: dict[str, str] = {}
    if head.branch:
        branches[head.hash] = head.branch

    for ci in stack:
        state = ci.state
        if state is None:
            continue
        name = state.review.head_branch
        try:
            local = repo.read_ref(branch_ref(name))
        except ReferenceNotFound:
            logger.debug("no local branch %s", name)
        else:
            tips.append(local)
            branches.setdefault(local, name)
        try:
            tips.append(repo.read_ref(remote_ref(repo.remote, name)))
        except ReferenceNotFound:
            logger.debug("no remote-tracking branch for %s", name)
        tips.append(state.latest_revision.head_commit_sha)
        if state.local_revision is not None:
            tips.append(state.local_revision.head_commit_sha)

    return list(dict.fromkeys(tips)), branches


def collect_commits(repo: BaseRepository, tips: list[str], trunk_tip: str) -> list[Commit]:
    """Walk breadth-first from ``tips``, stopping at each tip's merge base with trunk.

    Tips and parents missing from the local object store are skipped.
    """
    present = []
    visited: set[str] = set()
    for tip in tips:
        if not repo.has_commit(tip):
            logger.debug("skipping tip %s, not in the local repository", tip)
            continue
        present.append(tip)
        visited.add(repo.merge_base(tip, trunk_tip))

    commits = []
    queue = deque(present)
    while queue:
        hash = queue.popleft()
        if hash in visited:
            continue
        visited.add(hash)
        try:
            commit = repo.commit(hash)
        except ObjectNotFound:
            logger.debug("skipping missing commit %s", hash)
            continue
        commits.append(commit)
        queue.extend(commit.parents)
    return commits


def topological_sort(commits: list[Commit]) -> list[Commit]:
    """Order commits so none comes before any of its children in the set.

    A commit starts with in-degree 1 plus one per child in the set and is
    emitted once it has decayed back to 1. Ties keep the input order.
    """
    by_hash = {c.hash: c for c in commits}
    in_degree = {c.hash: 1 for c in commits}
    for commit in commits:
        for parent in commit.parents:
            if parent in by_hash:
                in_degree[parent] += 1

    queue = deque(c for c in commits if in_degree[c.hash] == 1)
    ordered = []
    while queue:
        commit = queue.popleft()
        for parent in commit.parents:
            if parent not in by_hash or in_degree[parent] == 0:
                continue
            in_degree[parent] -= 1
            if in_degree[parent] == 1:
                queue.append(by_hash[parent])
        in_degree[commit.hash] = 0
        ordered.append(commit)
    return ordered


def describe_commit(service: ReviewService, review_host: str, commit: Commit) -> str:
    """Rich-markup description: hash, title and where the commit stands on review."""
    review_id = read_review_id(commit.message)
    if review_id is None:
        review_text = "new review"
    else:
        state = service.review(review_id, head_commit_sha=commit.hash)
        url = review_branch(review_host, review_id)
        if state.local_revision is not None:
            review_text = f"{url} [green]revision {state.local_revision.number}[/green]"
        else:
            review_text = f"{url} [yellow]unpublished[/yellow]"
    return f"{commit.short_hash} {escape(truncate_title(commit.title))} {review_text}"


def build_select_items(
    repo: BaseRepository,
    service: ReviewService,
    stack: CommitStack,
    head: Head,
    trunk_tip: str,
    review_host: str,
) -> list[SelectItem]:
    tips, branches = stack_tips(repo, stack, head)
    commits = collect_commits(repo, tips, trunk_tip)
    graph = CommitGraph({c.hash: c for c in commits})

    items = []
    for commit in topological_sort(commits):
        block = graph.render(commit)
        lines = list(block.lines)
        lines[block.commit_row] += describe_commit(service, review_host, commit)
        items.append(SelectItem(hash=commit.hash, lines=lines, branch=branches.get(commit.hash)))
    return items
