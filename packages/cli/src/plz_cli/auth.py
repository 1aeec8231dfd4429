"""Access token resolution with gh CLI fallback.

The same GitHub token authenticates against the review service and GitHub.

Resolution order (stops at first success):
  1. PLZ_TOKEN environment variable
  2. GITHUB_TOKEN environment variable
  3. `gh auth token` (GitHub CLI session, works after `gh auth login`)
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

TOKEN_ENV_VARS = ("PLZ_TOKEN", "GITHUB_TOKEN")


def resolve_token() -> str | None:
    """Return an access token or None if no source is available.

    Never raises; callers check for None and emit a UsageError.
    """
    for name in TOKEN_ENV_VARS:
        token = os.environ.get(name)
        if token:
            logger.debug("Resolved token from %s.", name)
            return token

    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            gh_token = result.stdout.strip()
            if gh_token:
                logger.debug("Resolved token via gh CLI session.")
                return gh_token
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # gh is not installed or timed out.
        pass

    return None
