from __future__ import annotations

import re

from github import Github, UnknownObjectException

from plz_core.errors import PlzError

_REVIEWER_RE = re.compile(r"^[A-Za-z0-9-]+$")


def parse_repo_slug(url: str | None) -> str | None:
    """Return ``owner/name`` from a GitHub remote URL, or None.

    Handles both HTTPS and SSH remotes:
      https://github.com/owner/repo.git  ->  owner/repo
      git@github.com:owner/repo.git      ->  owner/repo
    """
    if not url or "github.com" not in url:
        return None
    slug = url.split("github.com")[-1].lstrip("/:").removesuffix(".git").rstrip("/")
    owner, _, name = slug.partition("/")
    if not owner or not name or "/" in name:
        return None
    return slug


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def get_default_branch(repo) -> str:
    return repo.default_branch


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def split_message(message: str) -> tuple[str, str]:
    """Split a commit message into a pull request title and body."""
    title, _, body = message.partition("\n")
    return title.strip(), body.strip()


def create_pull(repo, head: str, base: str, title: str, body: str):
    return repo.create_pull(title=title, body=body, head=head, base=base)


def retarget_pull(pr, base: str, title: str, body: str) -> bool:
    """Point an existing pull request at ``base`` and refresh its text.

    Returns True when anything had to change.
    """
    if pr.base.ref == base and pr.title == title and (pr.body or "") == body:
        return False
    pr.edit(base=base, title=title, body=body)
    return True


def requested_reviewers(pr) -> set[str]:
    users, _teams = pr.get_review_requests()
    return {user.login for user in users}


def request_reviewers(pr, reviewers: list[str]) -> list[str]:
    """Request the reviewers that are not requested yet and return them."""
    missing = [r for r in reviewers if r not in requested_reviewers(pr)]
    if missing:
        pr.create_review_request(reviewers=missing)
    return missing


def validate_reviewers(token: str, reviewers: list[str]) -> None:
    """Raise PlzError for malformed or unknown GitHub logins."""
    gh = Github(token)
    for login in reviewers:
        if not _REVIEWER_RE.match(login):
            raise PlzError(f"invalid reviewer username: {login!r}")
        try:
            gh.get_user(login)
        except UnknownObjectException:
            raise PlzError(f"reviewer {login!r} not found")
