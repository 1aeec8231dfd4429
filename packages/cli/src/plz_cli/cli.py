"""CLI entry point for plz.

Commands:
  status   show the review status of each commit on the current stack
  sync     pull merged and updated reviews into the current stack
  switch   pick a commit of the stack from a graph and check it out
  review   publish the stack as reviews and pull requests
"""

from __future__ import annotations

import importlib.metadata
import logging

import click

from plz_cli.commands.review import review_cmd
from plz_cli.commands.status import status_cmd
from plz_cli.commands.switch import switch_cmd
from plz_cli.commands.sync import sync_cmd


@click.group()
@click.version_option(
    version=importlib.metadata.version("plz-review"),
    prog_name="plz",
)
@click.option(
    "--config",
    "config_path",
    default=".plz.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PLZ_CONFIG",
)
@click.option("--remote", default=None, help="Git remote that hosts review branches. Overrides config file.")
@click.option("--trunk", default=None, help="Trunk branch. Defaults to the repository's default branch.")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output.")
@click.pass_context
def main(ctx: click.Context, config_path: str, remote: str | None, trunk: str | None, verbose: bool):
    """Stacked code review on top of GitHub pull requests."""
    from plz_cli.auth import resolve_token
    from plz_cli.session import Session
    from plz_core.config import load_config

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ctx.ensure_object(dict)
    if "session" in ctx.obj:
        # Already provided by the caller.
        return

    config = load_config(config_path, cli_overrides={"remote": remote, "trunk": trunk})
    session = Session(config, resolve_token())
    ctx.obj["session"] = session
    ctx.obj["config"] = config
    ctx.call_on_close(session.close)


main.add_command(status_cmd)
main.add_command(sync_cmd)
main.add_command(switch_cmd)
main.add_command(review_cmd)
