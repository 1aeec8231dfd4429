"""Tests for the review service GraphQL client."""

import json

import httpx
import pytest

from plz_core.errors import ReviewServiceError
from plz_core.models import ReviewStatus
from plz_core.service.client import ReviewService


def _revision(review_id, number, head, parent=None):
    data = {
        "reviewID": review_id,
        "number": number,
        "baseBranch": "main",
        "baseCommitSha": "base",
        "headCommitSha": head,
    }
    if parent is not None:
        data["parent"] = parent
    return data


def _review(review_id, latest, local=None, status="open"):
    return {
        "id": review_id,
        "gitHubPR": 7,
        "headBranch": f"plz.review/review/{review_id}",
        "status": status,
        "outdated": False,
        "latestRevisionList": {"revisions": [latest]},
        "localRevisionList": {"revisions": [local] if local else []},
    }


def _service(handler, requests=None):
    def record(request):
        if requests is not None:
            requests.append(json.loads(request.content))
        return handler(request)

    return ReviewService("https://plz.review/", "tok", transport=httpx.MockTransport(record))


def _respond(data):
    return lambda request: httpx.Response(200, json={"data": data})


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


class TestReview:
    def test_parses_latest_and_local_revisions(self):
        parent = _revision("R100", 1, "X")
        review = _review(
            "R200",
            latest=_revision("R200", 3, "Y3"),
            local=_revision("R200", 1, "Y", parent=parent),
        )
        requests = []
        service = _service(_respond({"review": review}), requests)

        state = service.review("R200", "Y")

        assert state.review.id == "R200"
        assert state.review.status is ReviewStatus.OPEN
        assert state.review.pr_number == 7
        assert state.latest_revision.number == 3
        assert state.local_revision.head_commit_sha == "Y"
        assert state.local_revision.parent.review_id == "R100"
        assert requests[0]["variables"] == {"reviewId": "R200", "headCommitSha": "Y"}

    def test_no_local_revision(self):
        service = _service(_respond({"review": _review("R1", latest=_revision("R1", 1, "A"))}))

        assert service.review("R1", "B").local_revision is None

    def test_without_hash_only_latest_is_requested(self):
        requests = []
        service = _service(_respond({"review": _review("R1", latest=_revision("R1", 2, "A2"))}), requests)

        assert service.latest_revision("R1").head_commit_sha == "A2"
        assert requests[0]["variables"] == {"reviewId": "R1"}
        assert "localRevisionList" not in requests[0]["query"]

    def test_missing_review(self):
        service = _service(_respond({"review": None}))

        with pytest.raises(ReviewServiceError, match="review R1 not found"):
            service.review("R1", "A")

    def test_review_without_revisions(self):
        review = _review("R1", latest=_revision("R1", 1, "A"))
        review["latestRevisionList"] = {"revisions": []}
        service = _service(_respond({"review": review}))

        with pytest.raises(ReviewServiceError, match="no revisions"):
            service.review("R1", "A")


class TestLinkedRevisions:
    def test_parses_entries(self):
        entry = {
            "review": _review("R100", latest=_revision("R100", 2, "X2"), status="merged"),
            "revision": _revision("R100", 1, "X"),
        }
        requests = []
        service = _service(_respond({"linkedRevisions": [entry]}), requests)

        linked = service.linked_revisions("R200", 1)

        assert len(linked) == 1
        assert linked[0].review.status is ReviewStatus.MERGED
        assert linked[0].latest_revision.number == 2
        assert linked[0].revision.head_commit_sha == "X"
        assert requests[0]["variables"]["direction"] == "ancestors"

    def test_direction_can_be_omitted(self):
        requests = []
        service = _service(_respond({"linkedRevisions": []}), requests)

        assert service.linked_revisions("R200", 1, direction=None) == []
        assert "direction" not in requests[0]["variables"]


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


class TestMutations:
    def test_reserve_review_ids(self):
        requests = []
        service = _service(_respond({"reserveReviewIDs": ["R1", "R2"]}), requests)

        assert service.reserve_review_ids(2) == ["R1", "R2"]
        assert requests[0]["variables"] == {"count": 2}

    def test_reserve_count_mismatch(self):
        service = _service(_respond({"reserveReviewIDs": ["R1"]}))

        with pytest.raises(ReviewServiceError, match="asked for 2 review IDs, got 1"):
            service.reserve_review_ids(2)

    def test_sync_review_with_parent(self):
        synced = {
            "headBranch": "plz.review/review/R1",
            "latestRevisionList": {"revisions": [_revision("R1", 4, "A4")]},
        }
        requests = []
        service = _service(_respond({"syncReviewWithParent": synced}), requests)

        result = service.sync_review_with_parent("R1")

        assert result.head_branch == "plz.review/review/R1"
        assert result.latest_revision.number == 4
        assert requests[0]["variables"] == {"reviewID": "R1"}


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class TestTransport:
    def test_posts_to_api_endpoint_with_token(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"data": {"reserveReviewIDs": ["R1"]}})

        service = ReviewService("https://plz.review/", "tok", transport=httpx.MockTransport(handler))
        service.reserve_review_ids(1)

        assert str(seen[0].url) == "https://plz.review/api/v1"
        assert seen[0].method == "POST"
        assert seen[0].headers["Authorization"] == "token tok"

    def test_graphql_errors(self):
        service = _service(lambda request: httpx.Response(200, json={"errors": [{"message": "denied"}]}))

        with pytest.raises(ReviewServiceError, match="review service error: denied"):
            service.reserve_review_ids(1)

    def test_http_errors(self):
        service = _service(lambda request: httpx.Response(502, text="bad gateway"))

        with pytest.raises(ReviewServiceError, match="HTTP 502"):
            service.reserve_review_ids(1)

    def test_invalid_json(self):
        service = _service(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(ReviewServiceError, match="invalid JSON"):
            service.reserve_review_ids(1)

    def test_connection_errors(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        service = _service(handler)

        with pytest.raises(ReviewServiceError, match="request failed"):
            service.reserve_review_ids(1)

    def test_context_manager_closes_client(self):
        service = _service(_respond({}))

        with service as s:
            assert s is service
        assert service._client.is_closed
