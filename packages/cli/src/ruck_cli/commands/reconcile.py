"""reconcile command: verify an already captured LLM answer."""

from __future__ import annotations

import json

import click

from ruck_core.review.extractor import MalformedResponseError
from ruck_core.reviewer import print_review, reconcile_output
from ruck_core.utils.context import parse_file_contents


@click.command("reconcile")
@click.argument("raw_output", type=click.File("r", encoding="utf-8"))
@click.option(
    "--context",
    "context_file",
    required=True,
    type=click.File("r", encoding="utf-8"),
    help="File context blob ('--- path ---' sections) the review was made against.",
)
@click.option("--llm", default=None, help="Provider that produced RAW_OUTPUT (decides envelope and prose handling).")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["cli", "json"]),
    default=None,
    help="Output format. Overrides config file.",
)
@click.option("--context-lines", type=int, default=None, help="Lines of code shown around each comment.")
@click.pass_context
def reconcile_cmd(ctx, raw_output, context_file, llm: str | None, output_format: str | None, context_lines: int | None):
    """Reconcile a captured LLM review against the files it was made for.

    RAW_OUTPUT is the LLM's stdout as saved to a file, or '-' for stdin.
    Comments whose line cannot be verified are dropped and listed.
    """
    from ruck_core.config import load_config

    config_path = ctx.obj.get("config_path", ".ruck.yml") if ctx.obj else ".ruck.yml"
    config = load_config(
        config_path,
        cli_overrides={"llm": llm, "output": output_format, "context_lines": context_lines},
    )
    provider_hint = (config.get("llm") or "").lower()

    file_contents = parse_file_contents(context_file.read())
    if not file_contents:
        raise click.UsageError("The context file holds no '--- path ---' sections.")

    try:
        review, diagnostics = reconcile_output(raw_output.read(), provider_hint, file_contents, config)
    except MalformedResponseError as e:
        raise click.ClickException(str(e)) from e

    if config["output"] == "json":
        payload = {**review.to_dict(), "dropped": [d.to_dict() for d in diagnostics]}
        click.echo(json.dumps(payload, indent=2))
    else:
        print_review(review, file_contents, context_lines=config["context_lines"], diagnostics=diagnostics)
