"""Collaborators shared by the plz commands.

The repository, review service and GitHub repository are built on first use,
so commands that never touch GitHub never make a request to it.
"""

from __future__ import annotations

import functools
import logging

import click
from github import GithubException

from plz_core.errors import DirtyWorktree, PlzError
from plz_core.gh.pull_request import get_default_branch, get_repo, parse_repo_slug
from plz_core.service.client import ReviewService
from plz_core.stack import load_stack
from plz_core.vcs.base import remote_ref
from plz_core.vcs.git import GitRepository

logger = logging.getLogger(__name__)


def handle_errors(f):
    """Turn plz and GitHub failures into a single ClickException."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except PlzError as e:
            logger.debug("command failed", exc_info=True)
            raise click.ClickException(str(e)) from e
        except GithubException as e:
            logger.debug("GitHub request failed", exc_info=True)
            raise click.ClickException(f"GitHub request failed ({e.status}): {e.data}") from e

    return wrapper


class Session:
    def __init__(self, config: dict, token: str | None):
        self.config = config
        self.token = token

    def require_token(self) -> str:
        if not self.token:
            raise click.UsageError(
                "No access token found. Set PLZ_TOKEN or GITHUB_TOKEN, or run `gh auth login` first."
            )
        return self.token

    @functools.cached_property
    def repo(self) -> GitRepository:
        return GitRepository(remote=self.config["remote"])

    @functools.cached_property
    def service(self) -> ReviewService:
        return ReviewService(self.config["api_url"], self.require_token())

    @functools.cached_property
    def gh_repo(self):
        url = self.repo.remote_url()
        slug = parse_repo_slug(url)
        if slug is None:
            raise PlzError(f"remote {self.config['remote']} ({url}) is not a GitHub repository")
        logger.debug("GitHub repository is %s", slug)
        return get_repo(slug, token=self.require_token())

    @functools.cached_property
    def trunk(self) -> str:
        return self.config.get("trunk") or get_default_branch(self.gh_repo)

    def trunk_tip(self) -> str:
        """Hash of the remote-tracking trunk branch."""
        return self.repo.resolve(remote_ref(self.repo.remote, self.trunk))

    def require_clean(self) -> None:
        if not self.repo.is_clean():
            raise DirtyWorktree()

    def load_stack(self, head: str):
        return load_stack(self.repo, self.service, head, self.trunk_tip())

    def close(self) -> None:
        if "service" in self.__dict__:
            self.service.close()
