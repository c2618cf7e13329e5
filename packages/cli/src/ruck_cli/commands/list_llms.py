"""list-llms command: show configured providers and their availability."""

from __future__ import annotations

import shutil

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command("list-llms")
@click.pass_context
def list_llms_cmd(ctx):
    """List configured LLM providers and whether their binary is on PATH."""
    from ruck_core.config import DEFAULT_CONFIG

    config = ctx.obj.get("config") if ctx.obj else None
    llms = (config or DEFAULT_CONFIG)["llms"]
    default = (config or {}).get("llm")

    table = Table(title="LLM providers", show_header=True)
    table.add_column("Name", style="bold")
    table.add_column("Binary")
    table.add_column("Input")
    table.add_column("Timeout", justify="right")
    table.add_column("Installed")

    installed = 0
    for name, entry in llms.items():
        cli_path = entry.get("cli_path", name)
        found = shutil.which(cli_path) is not None
        installed += found
        label = f"{name} (default)" if name == default else name
        table.add_row(
            label,
            cli_path,
            "stdin" if entry.get("use_stdin", True) else "argument",
            f"{entry.get('timeout', 300)}s",
            "[green]yes[/green]" if found else "[dim]no[/dim]",
        )

    console.print(table)
    if not installed:
        console.print("[yellow]No LLM binaries found on PATH.[/yellow]")
