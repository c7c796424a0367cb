"""
nostr-todo CLI — a todo list kept on Nostr relays.

The main Click group is defined here; the list commands live in
``todo_cmd`` and are registered onto it. Configuration is loaded per
command from the profile chosen with ``-a`` and passed to the engine
explicitly.

Entry point: nostrtodo.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import APP_NAME, __version__
from ..config import LIST_PROFILES, list_profiles
from ._common import console


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name=APP_NAME)
@click.option("-a", "--profile", default="", metavar="NAME",
              help="Profile name ('?' lists profiles).")
@click.option("-v", "--verbose", is_flag=True, help="Log relay traffic.")
@click.pass_context
def main(ctx: click.Context, profile: str, verbose: bool) -> None:
    """A cli application for nostr.

    Keeps your todo list on Nostr relays, signed with your key.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )

    state = ctx.ensure_object(dict)
    state["profile"] = profile

    if profile == LIST_PROFILES:
        for name in list_profiles():
            console.print(name, highlight=False)
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ---------------------------------------------------------------------------
# Register command modules
# ---------------------------------------------------------------------------

from .todo_cmd import register_todo_commands

register_todo_commands(main)
