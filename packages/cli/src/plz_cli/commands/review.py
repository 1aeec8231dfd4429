"""review command: publish the stack as reviews and pull requests."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from plz_cli.session import handle_errors
from plz_core.gh.pull_request import validate_reviewers
from plz_core.picker import truncate_title
from plz_core.publish import Publisher

console = Console()

_OUTCOME_STYLES = {"created": "green", "updated": "yellow", "unchanged": "dim"}


@click.command("review")
@click.option(
    "--reviewer",
    "-r",
    "reviewers",
    multiple=True,
    help="GitHub login to request a review from. Repeat for several reviewers.",
)
@click.pass_context
@handle_errors
def review_cmd(ctx, reviewers: tuple[str, ...]):
    """Publish every commit between trunk and HEAD for review.

    Each commit gets its own review branch and pull request, stacked on the
    one below it. Commits are tagged with a plz-review-url trailer the first
    time they are published; the current branch is moved to the tagged
    commits, which keep their trees.

    \b
    Required environment variables (one of):
      PLZ_TOKEN            Access token for the review service and GitHub
      GITHUB_TOKEN         GitHub personal access token (or use gh CLI)
    """
    session = ctx.obj["session"]
    config = session.config
    session.require_clean()

    if reviewers:
        validate_reviewers(session.require_token(), list(reviewers))

    repo = session.repo
    head = repo.head()
    publisher = Publisher(
        repo,
        session.service,
        session.gh_repo,
        review_host=config["review_host"],
        trunk=session.trunk,
        reviewers=list(reviewers),
        publish_delay=float(config["publish_delay"]),
    )
    entries = publisher.publish(head, session.trunk_tip())

    table = Table(show_header=True, header_style="bold")
    table.add_column("Commit", style="dim")
    table.add_column("Title")
    table.add_column("Review")
    table.add_column("Status")
    for entry in reversed(entries):
        commit = entry.final_commit
        style = _OUTCOME_STYLES[entry.outcome]
        table.add_row(
            commit.short_hash,
            escape(truncate_title(commit.title)),
            publisher.review_url(entry),
            f"[{style}]{entry.outcome}[/{style}]",
        )
    console.print(table)
