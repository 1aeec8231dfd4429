"""switch command: pick a commit of the stack from a graph and check it out."""

from __future__ import annotations

import click
from rich.console import Console

from plz_cli.session import handle_errors
from plz_core.errors import NotOnBranch
from plz_core.picker import SelectItem, build_select_items

console = Console()


def print_items(items: list[SelectItem], current: str) -> None:
    width = len(str(len(items)))
    for number, item in enumerate(items, start=1):
        marker = "[bold]>[/bold]" if item.hash == current else " "
        prefix = f"{marker} {number:>{width}}) "
        indent = " " * (width + 4)
        for i, line in enumerate(item.lines):
            console.print((prefix if i == 0 else indent) + line, highlight=False)


@click.command("switch")
@click.pass_context
@handle_errors
def switch_cmd(ctx):
    """Check out another commit or review branch of the current stack.

    Shows HEAD together with every review branch of the stack as a graph
    and checks out the branch (or, without one, the bare commit) you pick.
    """
    session = ctx.obj["session"]
    repo = session.repo
    session.require_clean()

    head = repo.head()
    trunk_tip = session.trunk_tip()
    if repo.merge_base(head.hash, trunk_tip) == head.hash:
        raise NotOnBranch("HEAD has no commits above trunk")

    stack = session.load_stack(head.hash)
    items = build_select_items(
        repo,
        session.service,
        stack,
        head,
        trunk_tip,
        session.config["review_host"],
    )

    print_items(items, head.hash)
    default = next((n for n, item in enumerate(items, start=1) if item.hash == head.hash), 1)
    choice = click.prompt("\nSwitch to", type=click.IntRange(1, len(items)), default=default)
    item = items[choice - 1]

    if item.hash == head.hash:
        return

    if item.branch:
        repo.checkout(branch=item.branch)
        console.print(item.branch)
    else:
        repo.checkout(commit=item.hash)
        console.print(f"{item.hash[:7]} (detached HEAD)")
