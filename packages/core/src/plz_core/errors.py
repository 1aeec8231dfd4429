"""Exception hierarchy for plz.

Every failure the core can raise derives from PlzError so the CLI can turn
any of them into a single terminal message. Nothing here is retried: an
exception ends the current operation, and mutations already issued (branch
pushes, review syncs) stay applied.
"""

from __future__ import annotations


class PlzError(Exception):
    """Base exception for all plz errors."""


class GitCommandError(PlzError):
    """A git subprocess exited with a non-zero status."""

    def __init__(self, args: list[str], returncode: int, stderr: str = "") -> None:
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        command = " ".join(self.args_list)
        message = f"`{command}` failed with exit code {returncode}"
        if self.stderr:
            message += f": {self.stderr}"
        super().__init__(message)


class ObjectNotFound(PlzError):
    """The commit object is not present in the local object store.

    Kept apart from GitCommandError so callers can substitute a placeholder
    commit instead of aborting.
    """

    def __init__(self, hash: str) -> None:
        self.hash = hash
        super().__init__(f"commit {hash} not found in the local repository")


class ReferenceNotFound(PlzError):
    """The named reference does not exist."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"reference {name} not found")


class AmbiguousMergeBase(PlzError):
    """Two commits do not have exactly one lowest common ancestor."""

    def __init__(self, a: str, b: str, count: int) -> None:
        self.a = a
        self.b = b
        self.count = count
        super().__init__(f"cannot find a unique merge base of {a[:8]} and {b[:8]} (found {count})")


class ReviewServiceError(PlzError):
    """The review service could not be reached or rejected the request."""


class DirtyWorktree(PlzError):
    def __init__(self) -> None:
        super().__init__("index is not clean, commit or stash your changes first")


class NotOnBranch(PlzError):
    def __init__(self, message: str = "HEAD is not a branch") -> None:
        super().__init__(message)


class Conflict(PlzError):
    """A merged review's local commit is neither current nor behind."""

    def __init__(self, review_id: str) -> None:
        self.review_id = review_id
        super().__init__(f"merged review {review_id} has local modifications, resolve them manually")


class RemoteInconsistency(PlzError):
    """A freshly fetched branch disagrees with what the review service reported."""

    def __init__(self, branch: str, got: str, want: str) -> None:
        self.branch = branch
        self.got = got
        self.want = want
        super().__init__(f"branch {branch} had wrong hash, got {got}, want {want}")


class MustRebase(PlzError):
    """Unpublished commits sit above a synced review and must be rebased by hand.

    ``target`` is the branch name or commit hash to rebase onto and ``count``
    the number of HEAD-nearest commits that have to move.
    """

    def __init__(self, target: str, count: int, branch: str | None = None) -> None:
        self.target = target
        self.count = count
        self.branch = branch
        super().__init__(f"some commits are ahead, run {self.command()}")

    def command(self) -> str:
        return f"git rebase --onto {self.target} {self.branch or 'HEAD'}~{self.count}"


class GraphLayoutError(PlzError):
    """The graph renderer reached a column layout it cannot draw."""
