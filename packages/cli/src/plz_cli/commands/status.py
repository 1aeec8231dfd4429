"""status command: show where each commit of the stack stands on review."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from plz_cli.session import handle_errors
from plz_core.models import CommitInfo, CommitStatus, PlaceholderCommit, ReviewStatus
from plz_core.picker import truncate_title
from plz_core.trailer import review_url

console = Console()

_STATUS_STYLES = {
    CommitStatus.CURRENT: "green",
    CommitStatus.BEHIND: "yellow",
    CommitStatus.MODIFIED: "red",
    CommitStatus.NEW: "red",
}


def describe_status(ci: CommitInfo, review_host: str) -> tuple[str, str, str]:
    """Return (status text, style, review URL) for one stack entry."""
    status = ci.status
    url = ""
    suffix = None
    state = ci.state
    if status == CommitStatus.CURRENT and state.review.status == ReviewStatus.MERGED:
        text, style = "merged", "cyan"
    elif status == CommitStatus.CURRENT:
        number = (state.local_revision or state.latest_revision).number
        text, style = f"rev {number}, current", _STATUS_STYLES[status]
    elif status == CommitStatus.BEHIND:
        number = state.local_revision.number
        text, style = f"rev {number}, behind", _STATUS_STYLES[status]
        suffix = number
    else:
        text, style = status.value, _STATUS_STYLES[status]
    if ci.review is not None:
        url = review_url(review_host, ci.review.id, revision=suffix)
    return text, style, url


@click.command("status")
@click.pass_context
@handle_errors
def status_cmd(ctx):
    """Show the review status of every commit between trunk and HEAD.

    Entries below the last locally known review come from the review service
    and may not be fetched yet.
    """
    session = ctx.obj["session"]
    repo = session.repo

    if not repo.is_clean():
        console.print("[yellow]Index is not clean.[/yellow]")

    head = repo.head()
    stack = session.load_stack(head.hash)
    if not len(stack):
        console.print("[dim]No commits above trunk.[/dim]")
        return

    review_host = session.config["review_host"]
    table = Table(show_header=True, header_style="bold")
    table.add_column("Commit", style="dim")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Review")

    for ci in stack:
        text, style, url = describe_status(ci, review_host)
        if isinstance(ci.commit, PlaceholderCommit):
            title = "[dim](not fetched)[/dim]"
        else:
            title = escape(truncate_title(ci.commit.title))
        table.add_row(ci.commit.short_hash, title, f"[{style}]{text}[/{style}]", url)

    console.print(table)
