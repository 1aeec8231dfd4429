"""GraphQL client for the plz review service.

All calls are synchronous and one at a time: each step of stack resolution
and sync depends on the previous answer. Any transport error, HTTP error or
GraphQL error is raised as ReviewServiceError and never retried.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from plz_core.errors import ReviewServiceError
from plz_core.models import LinkedRevision, Review, ReviewState, ReviewStatus, Revision, SyncedReview

logger = logging.getLogger(__name__)

_REVISION_FIELDS = """
fragment RevisionFields on Revision {
  reviewID
  number
  baseBranch
  baseCommitSha
  headCommitSha
}
"""

_REVIEW_FIELDS = "id gitHubPR headBranch status outdated"

REVIEW_QUERY = (
    """
query Review($reviewId: ID!, $headCommitSha: String!) {
  review(id: $reviewId) {
    %s
    latestRevisionList: revisionList(options: {count: 1}) {
      revisions { ...RevisionFields parent { ...RevisionFields } }
    }
    localRevisionList: revisionList(options: {count: 1}, filterOptions: {headCommitSha: $headCommitSha}) {
      revisions { ...RevisionFields parent { ...RevisionFields } }
    }
  }
}
"""
    % _REVIEW_FIELDS
    + _REVISION_FIELDS
)

LATEST_REVISION_QUERY = (
    """
query LatestRevision($reviewId: ID!) {
  review(id: $reviewId) {
    %s
    latestRevisionList: revisionList(options: {count: 1}) {
      revisions { ...RevisionFields parent { ...RevisionFields } }
    }
  }
}
"""
    % _REVIEW_FIELDS
    + _REVISION_FIELDS
)

LINKED_REVISIONS_QUERY = (
    """
query LinkedRevisions($reviewId: ID!, $revisionNumber: Int!, $direction: LinkDirection) {
  linkedRevisions(reviewID: $reviewId, revisionNumber: $revisionNumber, direction: $direction) {
    review {
      %s
      latestRevisionList: revisionList(options: {count: 1}) {
        revisions { ...RevisionFields }
      }
    }
    revision { ...RevisionFields }
  }
}
"""
    % _REVIEW_FIELDS
    + _REVISION_FIELDS
)

RESERVE_REVIEW_IDS_MUTATION = """
mutation ReserveReviewIDs($count: Int!) {
  reserveReviewIDs(count: $count)
}
"""

SYNC_REVIEW_WITH_PARENT_MUTATION = (
    """
mutation SyncReviewWithParent($reviewID: ID!) {
  syncReviewWithParent(reviewID: $reviewID) {
    headBranch
    latestRevisionList: revisionList(options: {count: 1}) {
      revisions { ...RevisionFields }
    }
  }
}
"""
    + _REVISION_FIELDS
)


def _parse_revision(data: dict) -> Revision:
    parent = data.get("parent")
    return Revision(
        review_id=data["reviewID"],
        number=data["number"],
        base_branch=data.get("baseBranch") or "",
        base_commit_sha=data.get("baseCommitSha") or "",
        head_commit_sha=data.get("headCommitSha") or "",
        parent=_parse_revision(parent) if parent else None,
    )


def _parse_review(data: dict) -> Review:
    return Review(
        id=data["id"],
        status=ReviewStatus(data["status"]),
        head_branch=data.get("headBranch") or "",
        outdated=bool(data.get("outdated")),
        pr_number=data.get("gitHubPR") or 0,
    )


def _first_revision(review_id: str, revision_list: dict | None, required: bool = True) -> Revision | None:
    revisions = (revision_list or {}).get("revisions") or []
    if not revisions:
        if required:
            raise ReviewServiceError(f"review {review_id} has no revisions")
        return None
    return _parse_revision(revisions[0])


class ReviewService:
    """Typed wrapper over the review service's GraphQL endpoint."""

    def __init__(self, api_url: str, token: str, timeout: float = 30.0, transport: httpx.BaseTransport | None = None):
        self._client = httpx.Client(
            base_url=api_url.rstrip("/"),
            timeout=timeout,
            headers={"Authorization": f"token {token}", "Content-Type": "application/json"},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ReviewService:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Queries                                                              #
    # ------------------------------------------------------------------ #

    def review(self, review_id: str, head_commit_sha: str | None = None) -> ReviewState:
        """Load a review, its latest revision and the revision headed at
        ``head_commit_sha`` (if any)."""
        if head_commit_sha is None:
            data = self._execute(LATEST_REVISION_QUERY, {"reviewId": review_id})
        else:
            data = self._execute(REVIEW_QUERY, {"reviewId": review_id, "headCommitSha": head_commit_sha})
        review_data = self._require(data, "review", review_id)
        return ReviewState(
            review=_parse_review(review_data),
            latest_revision=_first_revision(review_id, review_data.get("latestRevisionList")),
            local_revision=_first_revision(review_id, review_data.get("localRevisionList"), required=False),
        )

    def latest_revision(self, review_id: str) -> Revision:
        return self.review(review_id).latest_revision

    def linked_revisions(
        self,
        review_id: str,
        revision_number: int,
        direction: str | None = "ancestors",
    ) -> list[LinkedRevision]:
        """Return the revisions linked to a revision, root-most ancestor first.

        Pass ``direction=None`` to let the service return the whole stack
        around the revision.
        """
        logger.debug("loading linked revisions for review %s revision %d", review_id, revision_number)
        variables: dict[str, Any] = {"reviewId": review_id, "revisionNumber": revision_number}
        if direction is not None:
            variables["direction"] = direction
        data = self._execute(LINKED_REVISIONS_QUERY, variables)
        linked = []
        for entry in data.get("linkedRevisions") or []:
            review_data = entry["review"]
            linked.append(
                LinkedRevision(
                    review=_parse_review(review_data),
                    latest_revision=_first_revision(review_data["id"], review_data.get("latestRevisionList")),
                    revision=_parse_revision(entry["revision"]),
                )
            )
        return linked

    # ------------------------------------------------------------------ #
    # Mutations                                                            #
    # ------------------------------------------------------------------ #

    def reserve_review_ids(self, count: int) -> list[str]:
        data = self._execute(RESERVE_REVIEW_IDS_MUTATION, {"count": count})
        ids = data.get("reserveReviewIDs") or []
        if len(ids) != count:
            raise ReviewServiceError(f"asked for {count} review IDs, got {len(ids)}")
        logger.debug("reserved review IDs: %s", ids)
        return list(ids)

    def sync_review_with_parent(self, review_id: str) -> SyncedReview:
        """Ask the service to rebase a review's recorded base onto its
        current parent review."""
        logger.debug("syncing review %s", review_id)
        data = self._execute(SYNC_REVIEW_WITH_PARENT_MUTATION, {"reviewID": review_id})
        review_data = self._require(data, "syncReviewWithParent", review_id)
        return SyncedReview(
            head_branch=review_data.get("headBranch") or "",
            latest_revision=_first_revision(review_id, review_data.get("latestRevisionList")),
        )

    # ------------------------------------------------------------------ #
    # Transport                                                            #
    # ------------------------------------------------------------------ #

    def _execute(self, query: str, variables: dict[str, Any]) -> dict:
        try:
            response = self._client.post("/api/v1", json={"query": query, "variables": variables})
        except httpx.HTTPError as e:
            raise ReviewServiceError(f"review service request failed: {e}") from e

        if response.status_code >= 400:
            raise ReviewServiceError(f"review service returned HTTP {response.status_code}: {response.text[:200]}")

        try:
            payload = response.json()
        except ValueError as e:
            raise ReviewServiceError("review service returned invalid JSON") from e

        errors = payload.get("errors")
        if errors:
            messages = "; ".join(str(e.get("message", e)) for e in errors)
            raise ReviewServiceError(f"review service error: {messages}")
        return payload.get("data") or {}

    @staticmethod
    def _require(data: dict, key: str, review_id: str) -> dict:
        value = data.get(key)
        if not value:
            raise ReviewServiceError(f"review {review_id} not found")
        return value
