"""Core review orchestration: file context, LLM call, reconciliation and console output."""

from __future__ import annotations

import fnmatch
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ruck_core.config import load_prompt_template
from ruck_core.models import CorrectionMethod, Diagnostic, ParsedReview
from ruck_core.providers.base import BaseProvider
from ruck_core.providers.cli import CLIProvider, available_llms
from ruck_core.review.extractor import get_review_statistics
from ruck_core.review.matcher import MatcherSettings
from ruck_core.review.reconciler import reconcile
from ruck_core.review.snippet import extract_snippet
from ruck_core.utils.code import index_lines, is_code_file
from ruck_core.utils.context import build_context_blob, parse_file_contents
from ruck_core.utils.language import detect_language

console = Console()
# Progress goes to stderr so `--format json` output stays machine-readable.
status = Console(stderr=True)
logger = logging.getLogger(__name__)

_METHOD_COLOR = {
    CorrectionMethod.EXACT_MATCH: "green",
    CorrectionMethod.FUZZY_MATCH: "cyan",
    CorrectionMethod.KEYWORD_MATCH: "yellow",
    CorrectionMethod.ORIGINAL_LINE_KEPT: "red",
}


@dataclass
class ReviewSummary:
    """Result returned by run_review: the reconciled review plus run metadata."""

    llm: str
    review: ParsedReview
    file_contents: dict[str, str] = field(default_factory=dict)
    reviewed_files: list[str] = field(default_factory=list)
    skipped_files: list[str] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    elapsed_seconds: float = 0.0
    reviewed_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict:
        return {
            "llm": self.llm,
            "reviewed_at": self.reviewed_at,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            "reviewed_files": self.reviewed_files,
            "skipped_files": self.skipped_files,
            **self.review.to_dict(),
            "dropped": [d.to_dict() for d in self.diagnostics],
        }


def select_llm(config: dict, requested: str | None, available: list[str]) -> str:
    """Pick the provider to run: explicit choice, configured default, then first available binary."""
    if not available:
        raise ValueError(
            "No LLM binaries found. Please install one of: " + ", ".join(sorted(config.get("llms", {}))) + "."
        )
    choice = (requested or config.get("llm") or available[0]).lower()
    if choice not in config.get("llms", {}):
        raise ValueError(f"Unknown LLM provider: {choice!r}. Configured providers: {', '.join(config['llms'])}.")
    if choice not in available:
        raise ValueError(f"Invalid LLM choice {choice!r}. Available options: {', '.join(available)}")
    return choice


def _get_provider(config: dict, llm: str) -> BaseProvider:
    llm_config = config["llms"].get(llm)
    if llm_config is None:
        raise ValueError(f"Unknown LLM provider: {llm!r}.")
    return CLIProvider.from_config(
        llm, llm_config, prompt_template=load_prompt_template(config), retries=config.get("retries")
    )


def _is_excluded(filename: str, patterns: list[str]) -> bool:
    """Return True if filename matches any exclude pattern.

    Supports:
    - fnmatch globs on the full path: "src/generated/*.py"
    - fnmatch globs on the basename: "*.lock", "*.min.js"
    - Directory names/prefixes: "migrations/", "tests" (matches any file within that tree)
    """
    for pattern in patterns:
        if fnmatch.fnmatch(filename, pattern) or fnmatch.fnmatch(filename.rsplit("/", 1)[-1], pattern):
            return True
        prefix = pattern.rstrip("/") + "/"
        if filename.startswith(prefix) or ("/" + prefix) in filename:
            return True
    return False


def reconcile_output(raw: str, llm: str, file_contents: dict[str, str], config: dict) -> tuple[ParsedReview, list[Diagnostic]]:
    """Reconcile captured LLM output using the matcher and provider settings from config."""
    llm_config = config.get("llms", {}).get(llm, {})
    diagnostics: list[Diagnostic] = []
    review = reconcile(
        raw,
        llm,
        file_contents,
        settings=MatcherSettings.from_config(config.get("matcher")),
        diagnostics=diagnostics,
        envelope=llm_config.get("envelope"),
        prose_fallback=llm_config.get("prose_fallback"),
    )
    return review, diagnostics


def run_review(
    diff: str,
    file_paths: list[str],
    config: dict,
    llm: str | None = None,
    repo_root: str = ".",
    provider: BaseProvider | None = None,
) -> ReviewSummary | None:
    """Run the full review pipeline and return a ReviewSummary.

    Returns None when there is nothing to review (empty diff or no reviewable files).
    Raises LLMInvocationError when the LLM cannot be run and
    MalformedResponseError when its answer holds no review.
    """
    if not diff.strip():
        status.print("[yellow]No differences found. Nothing to review.[/yellow]")
        return None

    exclude_patterns = config.get("exclude", [])
    reviewed = [p for p in file_paths if not _is_excluded(p, exclude_patterns) and is_code_file(p)]
    skipped = [p for p in file_paths if p not in reviewed]
    for path in skipped:
        status.print(f"  Skipping: {path}")
    if not reviewed:
        status.print("[yellow]No reviewable files in this change set.[/yellow]")
        return None

    if provider is None:
        llm = select_llm(config, llm, available_llms(config["llms"]))
        provider = _get_provider(config, llm)
    llm = llm or provider.name

    file_context = build_context_blob(reviewed, repo_root=repo_root, max_chars=config.get("max_chars_per_file"))
    status.print(
        f"[dim]{len(reviewed)} file(s), diff {len(diff)} chars, context {len(file_context)} chars[/dim]"
    )

    start = time.monotonic()
    status.print(f"Running {llm.upper()} code review...")
    raw = provider.review(diff, file_context)
    elapsed = time.monotonic() - start
    status.print(f"[green]{llm.upper()} code review completed in {elapsed:.1f}s[/green]")

    file_contents = parse_file_contents(file_context)
    review, diagnostics = reconcile_output(raw, llm, file_contents, config)

    return ReviewSummary(
        llm=llm,
        review=review,
        file_contents=file_contents,
        reviewed_files=reviewed,
        skipped_files=skipped,
        diagnostics=diagnostics,
        elapsed_seconds=elapsed,
    )


def print_review(
    review: ParsedReview,
    file_contents: dict[str, str],
    context_lines: int = 3,
    diagnostics: list[Diagnostic] | None = None,
) -> None:
    """Print a reconciled review to the terminal, linter style, with code snippets."""
    console.print("\n[bold]Summary[/bold]")
    console.print(escape(review.summary or "(no summary)"))

    if not review.comments:
        console.print("\n[green]No issues found.[/green]")
    else:
        console.print(f"\n[bold]{len(review.comments)} comment(s)[/bold]\n")

    for c in review.comments:
        color = _METHOD_COLOR.get(c.correction_method, "white")
        method = c.correction_method.value if c.correction_method else "unverified"
        confidence = f" {c.confidence:.2f}" if c.confidence is not None else ""
        console.print(
            f"[bold cyan]{escape(c.file)}[/bold cyan]:[bold]{c.line}[/bold]  [{color}]{method}{confidence}[/{color}]"
            + (f"  [dim](claimed line {c.original_line})[/dim]" if c.original_line not in (None, c.line) else "")
        )
        if c.line_warning:
            console.print("  [yellow]⚠ line could not be verified against the comment; shown at the claimed line[/yellow]")

        content = file_contents.get(c.file, "")
        language = detect_language(c.file, content.splitlines()[:50])
        snippet = extract_snippet(content, c.line, context_lines, language)
        if snippet:
            if snippet.adjusted:
                console.print(
                    f"  [dim]snippet centred on line {snippet.target_line}: {escape(snippet.adjustment_reason or '')}[/dim]"
                )
            file_lines = index_lines(content)
            first = min(snippet.start_line, c.line)
            last = min(len(file_lines), max(snippet.end_line, c.line))
            for number in range(first, last + 1):
                marker = ">" if number == c.line else " "
                style = "bold" if number == c.line else "dim"
                console.print(f"  [{style}]{marker} {number:>5} | {escape(file_lines[number - 1])}[/{style}]")
        console.print(f"  {escape(c.comment)}")
        console.print()

    stats = get_review_statistics(review)
    if stats["total"]:
        table = Table(title="Comment labels", show_header=True)
        table.add_column("Label", style="bold")
        table.add_column("Count", justify="right")
        for label, count in stats.items():
            if label != "total" and count:
                table.add_row(label, str(count))
        console.print(table)

    if diagnostics:
        console.print(f"[yellow]{len(diagnostics)} comment(s) dropped:[/yellow]")
        for d in diagnostics:
            console.print(f"  [dim]{escape(d.file)}:{d.line}: {d.message}[/dim]")
