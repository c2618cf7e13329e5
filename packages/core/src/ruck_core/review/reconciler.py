"""Reconcile an LLM review against the files it talks about.

Pure, synchronous, single pass: extract the review, then verify every
comment's line against the file content. Comments that cannot be verified
are dropped and reported as diagnostics; reconciliation itself never fails
once extraction has succeeded.
"""

from __future__ import annotations

import logging

from ruck_core.models import Diagnostic, DiagnosticKind, ParsedReview
from ruck_core.review.extractor import extract
from ruck_core.review.matcher import MatcherSettings, resolve
from ruck_core.utils.code import CodeIndex

logger = logging.getLogger(__name__)


def _drop(diagnostics: list[Diagnostic] | None, kind: DiagnosticKind, file: str, line: int, message: str) -> None:
    logger.warning("Dropping comment on %s:%s: %s", file, line, message)
    if diagnostics is not None:
        diagnostics.append(Diagnostic(kind=kind, file=file, line=line, message=message))


def validate_line_numbers(
    review: ParsedReview,
    file_contents: dict[str, str],
    settings: MatcherSettings | None = None,
    diagnostics: list[Diagnostic] | None = None,
) -> ParsedReview:
    """Return a new review whose comments all sit on verified, in-range lines."""
    settings = settings or MatcherSettings()
    indexes: dict[str, CodeIndex] = {}
    validated = []

    for comment in review.comments:
        content = file_contents.get(comment.file)
        if content is None:
            _drop(diagnostics, DiagnosticKind.FILE_NOT_IN_CONTEXT, comment.file, comment.line, "file not found in context")
            continue

        index = indexes.get(comment.file)
        if index is None:
            index = indexes[comment.file] = CodeIndex(content)

        corrected = resolve(comment, index, settings)
        if corrected is None:
            _drop(
                diagnostics,
                DiagnosticKind.UNRESOLVABLE_COMMENT,
                comment.file,
                comment.line,
                "could not locate code for comment",
            )
            continue
        validated.append(corrected)

    return ParsedReview(summary=review.summary, comments=validated)


def reconcile(
    raw_output: str,
    provider_hint: str,
    file_contents: dict[str, str],
    settings: MatcherSettings | None = None,
    diagnostics: list[Diagnostic] | None = None,
    envelope: bool | None = None,
    prose_fallback: bool | None = None,
) -> ParsedReview:
    """Extract a review from raw LLM output and verify every comment's line.

    Raises MalformedResponseError only when no review can be extracted at all.
    Dropped comments are logged and, when ``diagnostics`` is given, appended to it.
    """
    parsed = extract(
        raw_output,
        provider_hint,
        known_files=list(file_contents),
        envelope=envelope,
        prose_fallback=prose_fallback,
    )
    validated = validate_line_numbers(parsed, file_contents, settings, diagnostics)
    logger.info(
        "Reconciled %d of %d comment(s) from %s",
        len(validated.comments),
        len(parsed.comments),
        provider_hint or "LLM",
    )
    return validated
