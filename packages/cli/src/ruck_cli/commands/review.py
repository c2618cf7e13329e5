"""review command: run an LLM review of a diff."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from ruck_core.providers.base import LLMInvocationError
from ruck_core.review.extractor import MalformedResponseError
from ruck_core.reviewer import print_review, run_review
from ruck_core.utils.context import changed_files_from_diff


def _read_diff(diff_path: str) -> str:
    if diff_path == "-":
        return sys.stdin.read()
    path = Path(diff_path)
    if not path.exists():
        raise click.UsageError(f"Diff file not found: {diff_path}")
    return path.read_text(encoding="utf-8", errors="replace")


@click.command("review")
@click.argument("files", nargs=-1)
@click.option(
    "--diff",
    "diff_path",
    required=True,
    help="Unified diff to review, or '-' to read it from stdin.",
)
@click.option("--llm", default=None, help="LLM provider to use. Overrides config file.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["cli", "json"]),
    default=None,
    help="Output format. Overrides config file.",
)
@click.option(
    "--repo-root",
    default=".",
    show_default=True,
    type=click.Path(file_okay=False),
    help="Directory the changed file paths are relative to.",
)
@click.option("--context-lines", type=int, default=None, help="Lines of code shown around each comment.")
@click.pass_context
def review_cmd(
    ctx,
    files: tuple[str, ...],
    diff_path: str,
    llm: str | None,
    output_format: str | None,
    repo_root: str,
    context_lines: int | None,
):
    """Review a diff with a local LLM CLI.

    FILES are the changed files whose full content is sent as context.
    When omitted they are taken from the '+++' headers of the diff.

    \b
    Environment variables:
      DEFAULT_LLM_PROVIDER / FORCE_LLM_PROVIDER     provider below / above --llm
      DEFAULT_OUTPUT_FORMAT / FORCE_OUTPUT_FORMAT   format below / above --format
    """
    from ruck_core.config import load_config

    config_path = ctx.obj.get("config_path", ".ruck.yml") if ctx.obj else ".ruck.yml"
    config = load_config(
        config_path,
        cli_overrides={"llm": llm, "output": output_format, "context_lines": context_lines},
    )

    if config["output"] not in ("cli", "json"):
        raise click.UsageError(f"Unsupported output format: {config['output']!r}. Use 'cli' or 'json'.")

    diff = _read_diff(diff_path)
    file_paths = list(files) or changed_files_from_diff(diff)

    try:
        summary = run_review(diff, file_paths, config, llm=config.get("llm"), repo_root=repo_root)
    except (LLMInvocationError, MalformedResponseError) as e:
        raise click.ClickException(str(e)) from e
    except (ValueError, FileNotFoundError) as e:
        raise click.UsageError(str(e)) from e

    if summary is None:
        return

    if config["output"] == "json":
        click.echo(json.dumps(summary.to_dict(), indent=2))
    else:
        print_review(
            summary.review,
            summary.file_contents,
            context_lines=config["context_lines"],
            diagnostics=summary.diagnostics,
        )
