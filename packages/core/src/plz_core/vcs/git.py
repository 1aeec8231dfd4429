"""Version-control backend that drives the git CLI.

Every operation is a single synchronous ``git`` subprocess. Ref writes rely on
git's own atomic single-ref update; no extra locking is done.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess

from plz_core.errors import (
    AmbiguousMergeBase,
    GitCommandError,
    ObjectNotFound,
    PlzError,
    ReferenceNotFound,
)
from plz_core.models import Commit
from plz_core.vcs.base import BaseRepository, Head, branch_ref, remote_ref

logger = logging.getLogger(__name__)

_IDENTITY_RE = re.compile(r"^(?P<name>.*) <(?P<email>[^>]*)> (?P<date>\d+ [+-]\d{4})$")


def parse_commit(hash: str, raw: str) -> Commit:
    """Parse the output of ``git cat-file commit``."""
    headers, _, message = raw.partition("\n\n")
    fields: dict[str, str] = {}
    parents: list[str] = []
    last_key = None
    for line in headers.splitlines():
        if line.startswith(" ") and last_key:
            # Continuation of a multi-line header such as gpgsig.
            continue
        key, _, value = line.partition(" ")
        last_key = key
        if key == "parent":
            parents.append(value)
        elif key not in fields:
            fields[key] = value
    return Commit(
        hash=hash,
        message=message,
        parents=tuple(parents),
        tree=fields.get("tree", ""),
        author=fields.get("author", ""),
        committer=fields.get("committer", ""),
    )


def identity_env(prefix: str, identity: str) -> dict[str, str]:
    """Map a raw identity line to GIT_AUTHOR_* / GIT_COMMITTER_* variables."""
    match = _IDENTITY_RE.match(identity)
    if not match:
        return {}
    return {
        f"GIT_{prefix}_NAME": match.group("name"),
        f"GIT_{prefix}_EMAIL": match.group("email"),
        f"GIT_{prefix}_DATE": match.group("date"),
    }


class GitRepository(BaseRepository):
    """BaseRepository backed by the ``git`` executable."""

    def __init__(self, path: str = ".", remote: str = "origin"):
        self.path = path
        self.remote = remote

    def _git(self, *args: str, check: bool = True, input: str | None = None, env: dict | None = None):
        cmd = ["git", *args]
        logger.debug("running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                cwd=self.path,
                capture_output=True,
                text=True,
                input=input,
                env={**os.environ, **env} if env else None,
            )
        except FileNotFoundError:
            raise PlzError("git executable not found on PATH")
        if check and result.returncode != 0:
            raise GitCommandError(cmd, result.returncode, result.stderr)
        return result

    def head(self) -> Head:
        hash = self.resolve("HEAD")
        result = self._git("symbolic-ref", "--quiet", "--short", "HEAD", check=False)
        branch = result.stdout.strip() if result.returncode == 0 else None
        return Head(hash=hash, branch=branch or None)

    def resolve(self, ref: str) -> str:
        result = self._git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}", check=False)
        if result.returncode != 0:
            raise ReferenceNotFound(ref)
        return result.stdout.strip()

    def commit(self, hash: str) -> Commit:
        result = self._git("cat-file", "commit", hash, check=False)
        if result.returncode != 0:
            raise ObjectNotFound(hash)
        return parse_commit(hash, result.stdout)

    def merge_base(self, a: str, b: str) -> str:
        result = self._git("merge-base", "--all", a, b, check=False)
        if result.returncode not in (0, 1):
            raise GitCommandError(["git", "merge-base", "--all", a, b], result.returncode, result.stderr)
        bases = result.stdout.split()
        if len(bases) != 1:
            raise AmbiguousMergeBase(a, b, len(bases))
        logger.debug("merge base of %s and %s is %s", a, b, bases[0])
        return bases[0]

    def read_ref(self, name: str) -> str:
        result = self._git("rev-parse", "--verify", "--quiet", name, check=False)
        if result.returncode != 0:
            raise ReferenceNotFound(name)
        return result.stdout.strip()

    def write_ref(self, name: str, hash: str) -> None:
        logger.debug("repointing %s to %s", name, hash)
        self._git("update-ref", name, hash)

    def fetch_branch(self, name: str) -> None:
        logger.debug("fetching branch %s", name)
        refspec = f"+{branch_ref(name)}:{remote_ref(self.remote, name)}"
        self._git("fetch", self.remote, refspec)

    def push_branch(self, name: str) -> None:
        logger.debug("pushing branch %s", name)
        refspec = f"{branch_ref(name)}:{branch_ref(name)}"
        self._git("push", "--force", self.remote, refspec)

    def is_clean(self) -> bool:
        return self._git("status", "--porcelain").stdout.strip() == ""

    def checkout(self, branch: str | None = None, commit: str | None = None) -> None:
        if branch:
            self._git("checkout", branch)
        elif commit:
            self._git("checkout", "--detach", commit)
        else:
            raise ValueError("checkout needs a branch or a commit")

    def reset_hard(self, hash: str) -> None:
        self._git("reset", "--hard", hash)

    def create_commit(
        self,
        tree: str,
        parents: list[str],
        message: str,
        author: str,
        committer: str,
    ) -> str:
        args = ["commit-tree", tree]
        for parent in parents:
            args += ["-p", parent]
        args += ["-F", "-"]
        env = {**identity_env("AUTHOR", author), **identity_env("COMMITTER", committer)}
        return self._git(*args, input=message, env=env).stdout.strip()

    def remote_url(self) -> str | None:
        result = self._git("remote", "get-url", self.remote, check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None
