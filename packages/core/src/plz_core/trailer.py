"""Review trailer embedded in commit messages.

A line ``plz-review-url: https://<host>/review/<reviewID>`` (key matched
case-insensitively) marks the review that owns a commit. No trailer means the
commit has never been published.
"""

from __future__ import annotations

import re

TRAILER_KEY = "plz-review-url"

_TRAILER_RE = re.compile(
    r"^\s*(?i:plz-review-url)\s*:\s+https://[^/\s]+/review/(\w+)\s*$",
)


def read_review_id(message: str) -> str | None:
    """Return the review ID from the first trailer line, or None."""
    for line in message.splitlines():
        match = _TRAILER_RE.match(line)
        if match:
            return match.group(1)
    return None


def review_url(host: str, review_id: str, revision: int | None = None) -> str:
    url = f"https://{host}/review/{review_id}"
    if revision is not None:
        url += f"/revision/{revision}"
    return url


def review_branch(host: str, review_id: str) -> str:
    """Name of the branch that carries a review's head commit."""
    return f"{host}/review/{review_id}"


def append_trailer(message: str, host: str, review_id: str) -> str:
    return message.rstrip() + f"\n\n{TRAILER_KEY}: {review_url(host, review_id)}\n"
