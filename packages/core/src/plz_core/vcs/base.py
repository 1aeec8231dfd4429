"""Abstract version-control backend.

The stack resolver, synchronizer and publisher depend on BaseRepository, not
on a concrete backend, so they can be exercised against an in-memory
repository in tests and against the git CLI in real use.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from plz_core.models import Commit


def branch_ref(name: str) -> str:
    return f"refs/heads/{name}"


def remote_ref(remote: str, name: str) -> str:
    return f"refs/remotes/{remote}/{name}"


@dataclass(frozen=True)
class Head:
    hash: str
    branch: str | None  # None when HEAD is detached


class BaseRepository(ABC):
    """Operations plz needs from the local repository.

    Implementations raise ObjectNotFound for missing commits and
    ReferenceNotFound for missing refs so callers can tell those apart from
    other failures.
    """

    remote: str = "origin"

    @abstractmethod
    def head(self) -> Head:
        """Return the commit HEAD points at and the checked-out branch, if any."""

    @abstractmethod
    def resolve(self, ref: str) -> str:
        """Resolve any revision expression to a commit hash."""

    @abstractmethod
    def commit(self, hash: str) -> Commit:
        """Read a commit object."""

    @abstractmethod
    def merge_base(self, a: str, b: str) -> str:
        """Return the unique lowest common ancestor of two commits.

        Raises AmbiguousMergeBase when there is not exactly one.
        """

    @abstractmethod
    def read_ref(self, name: str) -> str:
        """Return the hash a fully qualified ref points at."""

    @abstractmethod
    def write_ref(self, name: str, hash: str) -> None:
        """Point a fully qualified ref at an exact hash."""

    @abstractmethod
    def fetch_branch(self, name: str) -> None:
        """Fetch a branch from the remote into its remote-tracking ref.

        Being already up to date is not an error.
        """

    @abstractmethod
    def push_branch(self, name: str) -> None:
        """Force-push a local branch to the same-named remote branch."""

    @abstractmethod
    def is_clean(self) -> bool:
        """Return True when the working tree and index have no changes."""

    @abstractmethod
    def checkout(self, branch: str | None = None, commit: str | None = None) -> None:
        """Check out a branch, or a commit in detached HEAD mode."""

    @abstractmethod
    def reset_hard(self, hash: str) -> None:
        """Reset the working tree and the current branch to a commit."""

    @abstractmethod
    def create_commit(
        self,
        tree: str,
        parents: list[str],
        message: str,
        author: str,
        committer: str,
    ) -> str:
        """Write a new commit object and return its hash."""

    @abstractmethod
    def remote_url(self) -> str | None:
        """Return the URL of the configured remote, or None."""

    # ------------------------------------------------------------------ #
    # Shared helpers                                                       #
    # ------------------------------------------------------------------ #

    def pull_branch(self, name: str) -> str:
        """Fetch a branch and point the same-named local branch at it.

        Returns the fetched hash.
        """
        self.fetch_branch(name)
        fetched = self.read_ref(remote_ref(self.remote, name))
        self.write_ref(branch_ref(name), fetched)
        return fetched

    def has_commit(self, hash: str) -> bool:
        from plz_core.errors import ObjectNotFound

        try:
            self.commit(hash)
        except ObjectNotFound:
            return False
        return True
