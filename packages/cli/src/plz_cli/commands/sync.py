"""sync command: pull merged and updated reviews into the current stack."""

from __future__ import annotations

import click
from rich.console import Console

from plz_cli.session import handle_errors
from plz_core.errors import MustRebase, NotOnBranch
from plz_core.sync import sync_stack

console = Console()


@click.command("sync")
@click.pass_context
@handle_errors
def sync_cmd(ctx):
    """Sync the stack under HEAD with the review service.

    Reviews updated on the service are fetched and the current branch is
    moved onto them. Local commits that were never published are not
    rewritten: when they sit above something that moved, the command prints
    the rebase to run and exits with an error.
    """
    session = ctx.obj["session"]
    session.require_clean()

    head = session.repo.head()
    if head.branch is None:
        raise NotOnBranch()

    stack = session.load_stack(head.hash)
    try:
        result = sync_stack(session.repo, session.service, stack, head.branch)
    except MustRebase as e:
        console.print(f"[yellow]Some commits are ahead of {e.target}, rebase them with:[/yellow]")
        console.print(f"  {e.command()}")
        ctx.exit(1)

    if result.updated:
        console.print(f"[green]{head.branch} is now at {result.new_head[:8]}[/green] ({result.target})")
    else:
        console.print("[dim]Already up to date.[/dim]")
