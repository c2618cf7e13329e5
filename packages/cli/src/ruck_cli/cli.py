"""CLI entry point for ruck.

Commands:
  review     run an LLM review of a diff and reconcile its comments
  reconcile  reconcile an already captured LLM answer against file content
  list-llms  show configured LLM providers and whether their binary is installed
"""

from __future__ import annotations

import importlib.metadata
import logging
import sys

import click

from ruck_cli.commands.list_llms import list_llms_cmd
from ruck_cli.commands.reconcile import reconcile_cmd
from ruck_cli.commands.review import review_cmd


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="[%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("ruck"),
    prog_name="ruck",
)
@click.option(
    "--config",
    "config_path",
    default=".ruck.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="RUCK_CONFIG",
)
@click.option("-v", "--verbose", count=True, help="Log match decisions (-v info, -vv debug).")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: int):
    """Local code review with LLM command-line tools."""
    from ruck_core.config import load_config

    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    try:
        ctx.obj["config"] = load_config(config_path)
    except ValueError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e


main.add_command(review_cmd)
main.add_command(reconcile_cmd)
main.add_command(list_llms_cmd)
