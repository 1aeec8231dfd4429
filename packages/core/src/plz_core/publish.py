"""Publish the commits between trunk and HEAD as a stack of reviews.

Each commit becomes one review with its own branch
(``<review_host>/review/<id>``) and pull request. A pull request targets the
branch of the review below it, or trunk for the bottom entry. Commits that
lack a review trailer, or whose parent changed because an entry below was
rewritten, are recreated with the same tree and identities, so the working
tree never changes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from plz_core.errors import PlzError, ReferenceNotFound
from plz_core.gh.pull_request import create_pull, get_pull, request_reviewers, retarget_pull, split_message
from plz_core.trailer import append_trailer, read_review_id, review_branch, review_url
from plz_core.vcs.base import branch_ref, remote_ref

if TYPE_CHECKING:
    from plz_core.models import Commit
    from plz_core.service.client import ReviewService
    from plz_core.vcs.base import BaseRepository, Head

logger = logging.getLogger(__name__)


@dataclass
class PublishEntry:
    commit: Commit
    review_id: str | None = None
    pr: Any = None
    head_branch: str = ""
    base_branch: str = ""
    updated_commit: Commit | None = None
    is_updated: bool = False
    existed: bool = False  # the pull request was there before this run

    @property
    def final_commit(self) -> Commit:
        return self.updated_commit or self.commit

    @property
    def outcome(self) -> str:
        if not self.existed:
            return "created"
        return "updated" if self.is_updated else "unchanged"


class Publisher:
    def __init__(
        self,
        repo: BaseRepository,
        service: ReviewService,
        gh_repo,
        review_host: str,
        trunk: str,
        reviewers: list[str] | None = None,
        publish_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.repo = repo
        self.service = service
        self.gh_repo = gh_repo
        self.review_host = review_host
        self.trunk = trunk
        self.reviewers = list(reviewers or [])
        self.publish_delay = publish_delay
        self.sleep = sleep

    def collect(self, head: str, trunk_tip: str) -> list[PublishEntry]:
        """Return the entries to publish, trunk-nearest first, with review IDs
        and branches assigned."""
        base = self.repo.merge_base(head, trunk_tip)
        if head == base:
            raise PlzError("no new commits")
        logger.debug("found base commit at %s", base)

        entries = []
        hash = head
        while hash != base:
            commit = self.repo.commit(hash)
            entries.append(self._load_entry(commit))
            if len(commit.parents) != 1:
                raise PlzError(
                    f"commit {commit.short_hash} has {len(commit.parents)} parents, merges cannot be published"
                )
            hash = commit.parents[0]
        entries.reverse()

        new_count = sum(1 for e in entries if e.review_id is None)
        reserved = self.service.reserve_review_ids(new_count) if new_count else []

        base_branch = self.trunk
        for entry in entries:
            if entry.review_id is None:
                entry.review_id = reserved.pop(0)
            entry.head_branch = review_branch(self.review_host, entry.review_id)
            entry.base_branch = base_branch
            base_branch = entry.head_branch
        return entries

    def publish(self, head: Head, trunk_tip: str) -> list[PublishEntry]:
        entries = self.collect(head.hash, trunk_tip)

        parent = entries[0].commit.parents[0]
        for i, entry in enumerate(entries):
            if i and self.publish_delay:
                # The service has to see the parent push before the child push.
                self.sleep(self.publish_delay)
            logger.debug("processing %s", entry.commit.hash)
            commit = entry.commit
            if read_review_id(commit.message) is None or commit.parents[0] != parent:
                commit = self._rewrite(entry, parent)
            branch_updated = self._update_branch(entry.head_branch, commit.hash)
            pr_updated = self._create_or_update_pr(entry)
            entry.is_updated = branch_updated or pr_updated
            parent = commit.hash

        if head.branch:
            logger.debug("repointing %s to %s", head.branch, parent)
            self.repo.write_ref(branch_ref(head.branch), parent)
        return entries

    def review_url(self, entry: PublishEntry) -> str:
        return review_url(self.review_host, entry.review_id)

    def _load_entry(self, commit: Commit) -> PublishEntry:
        review_id = read_review_id(commit.message)
        entry = PublishEntry(commit=commit, review_id=review_id)
        if review_id is None:
            return entry
        state = self.service.review(review_id)
        if state.review.pr_number:
            pr = get_pull(self.gh_repo, state.review.pr_number)
            if pr.state != "open":
                raise PlzError(f"pull request #{pr.number} for review {review_id} is {pr.state}")
            entry.pr = pr
            entry.existed = True
        logger.debug("examined %s, review %s, pr %s", commit.hash, review_id, state.review.pr_number or None)
        return entry

    def _rewrite(self, entry: PublishEntry, parent: str) -> Commit:
        commit = entry.commit
        message = commit.message
        if read_review_id(message) is None:
            message = append_trailer(message, self.review_host, entry.review_id)
        hash = self.repo.create_commit(
            tree=commit.tree,
            parents=[parent],
            message=message,
            author=commit.author,
            committer=commit.committer,
        )
        logger.debug("rewrote %s as %s", commit.hash, hash)
        entry.updated_commit = self.repo.commit(hash)
        return entry.updated_commit

    def _update_branch(self, name: str, hash: str) -> bool:
        updated = False
        try:
            local = self.repo.read_ref(branch_ref(name))
        except ReferenceNotFound:
            local = None
        if local != hash:
            self.repo.write_ref(branch_ref(name), hash)
            updated = True
        try:
            pushed = self.repo.read_ref(remote_ref(self.repo.remote, name))
        except ReferenceNotFound:
            pushed = None
        self.repo.push_branch(name)
        return updated or pushed != hash

    def _create_or_update_pr(self, entry: PublishEntry) -> bool:
        title, body = split_message(entry.final_commit.message)
        updated = False
        if entry.pr is None:
            logger.debug("creating pull request for %s onto %s", entry.head_branch, entry.base_branch)
            entry.pr = create_pull(self.gh_repo, entry.head_branch, entry.base_branch, title, body)
            updated = True
        elif retarget_pull(entry.pr, entry.base_branch, title, body):
            logger.debug("pull request #%s was out of date", entry.pr.number)
            updated = True

        if self.reviewers and request_reviewers(entry.pr, self.reviewers):
            updated = True
        return updated
