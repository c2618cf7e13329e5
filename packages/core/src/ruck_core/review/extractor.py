"""Turn an LLM's raw stdout into a ParsedReview.

Attempts, first success wins:
  1. unwrap a provider envelope (``{"result": "..."}``) for providers known to emit one
  2. slice a ```json fenced block
  3. slice from the first ``{`` to the last ``}``
  4. parse and validate ``{summary, comments: [{file, line, comment}]}``

Providers that do not honour the JSON contract get a prose fallback that
synthesises comments from filename-like tokens, so the pipeline always has
something structured to work with.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence

from ruck_core.models import ParsedReview, ReviewComment

logger = logging.getLogger(__name__)

ENVELOPE_PROVIDERS = frozenset({"claude"})
PROSE_FALLBACK_PROVIDERS = frozenset({"gemini", "ollama", "llama", "chatgpt"})

_FENCE_OPEN = "```json"
_FENCE_CLOSE = "```"

_FILENAME_RE = re.compile(r"(?<![\w/.-])((?:[\w.-]+/)*[\w.-]*\w\.[A-Za-z][A-Za-z0-9]{0,9})(?!\w|\.\w)")
_LINE_NUMBER_RE = re.compile(r"\blines?\s*:?\s*(\d+)", re.IGNORECASE)
_SUMMARY_MARKER_RE = re.compile(r"\b(summary|overview)\b\s*:?\s*", re.IGNORECASE)
_BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")
_NOT_FILENAMES = frozenset({"e.g", "i.e", "etc", "vs"})

_SHORT_COMMENT = 40
_EXCERPT_CHARS = 500

REVIEW_LABELS = ("issue", "suggestion", "praise", "todo", "question", "nitpick", "note")


class MalformedResponseError(ValueError):
    """No usable review could be isolated from the LLM output."""

    def __init__(self, message: str, raw: str = "", provider: str = ""):
        super().__init__(message)
        self.raw = raw
        self.provider = provider


# ---------------------------------------------------------------------------
# JSON path
# ---------------------------------------------------------------------------


def _unwrap_envelope(text: str) -> str:
    try:
        wrapper = json.loads(text)
    except json.JSONDecodeError:
        return text
    if isinstance(wrapper, dict) and wrapper.get("result"):
        result = wrapper["result"]
        return result if isinstance(result, str) else json.dumps(result)
    return text


def _slice_json(text: str) -> str:
    start = text.find(_FENCE_OPEN)
    if start != -1:
        end = text.rfind(_FENCE_CLOSE)
        if end > start:
            return text[start + len(_FENCE_OPEN) : end].strip()

    first, last = text.find("{"), text.rfind("}")
    if first != -1 and last > first:
        return text[first : last + 1]
    return text


def _coerce_line(value) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


def _to_review(data) -> ParsedReview:
    if not isinstance(data, dict):
        raise ValueError("top-level JSON value is not an object")
    if "summary" not in data:
        raise ValueError("missing 'summary'")
    raw_comments = data.get("comments")
    if not isinstance(raw_comments, list):
        raise ValueError("'comments' is not a list")

    comments = []
    for position, item in enumerate(raw_comments):
        if not isinstance(item, dict) or not {"file", "line", "comment"} <= item.keys():
            raise ValueError(f"comment #{position} lacks file/line/comment")
        comments.append(
            ReviewComment(file=str(item["file"]), line=_coerce_line(item["line"]), comment=str(item["comment"]))
        )
    summary = data["summary"]
    return ParsedReview(summary=summary if isinstance(summary, str) else json.dumps(summary), comments=comments)


def _parse_json_review(raw: str, envelope: bool) -> ParsedReview:
    text = raw.strip()
    if envelope and text.startswith("{") and '"result"' in text:
        text = _unwrap_envelope(text).strip()
    return _to_review(json.loads(_slice_json(text)))


# ---------------------------------------------------------------------------
# Prose fallback
# ---------------------------------------------------------------------------


def _match_known_file(token: str, known_files: Sequence[str]) -> str:
    if token in known_files:
        return token
    for known in known_files:
        if known.endswith("/" + token) or token.endswith("/" + known):
            return known
    return token


def _find_filename(line: str) -> re.Match | None:
    for match in _FILENAME_RE.finditer(line):
        if match.group(1).lower() not in _NOT_FILENAMES:
            return match
    return None


def _is_issue_line(line: str) -> bool:
    return bool(_find_filename(line) or _BULLET_RE.match(line))


def _prose_summary(lines: list[str]) -> str:
    for index, line in enumerate(lines):
        marker = _SUMMARY_MARKER_RE.search(line)
        if not marker:
            continue
        parts = [line[marker.end() :].strip(" #*:")]
        for following in lines[index + 1 :]:
            if _is_issue_line(following):
                break
            parts.append(following.strip())
        summary = " ".join(p for p in parts if p).strip()
        if summary:
            return summary

    paragraph: list[str] = []
    for line in lines:
        if not line.strip():
            if paragraph:
                break
            continue
        paragraph.append(line.strip())
    return " ".join(paragraph)[:_EXCERPT_CHARS]


def _prose_comments(lines: list[str], known_files: Sequence[str]) -> list[ReviewComment]:
    comments = []
    for index, line in enumerate(lines):
        match = _find_filename(line)
        if not match:
            continue
        line_match = _LINE_NUMBER_RE.search(line)
        line_number = int(line_match.group(1)) if line_match else 1

        text = line[match.end() :]
        if line_match and line_match.start() >= match.end():
            text = line[match.end() : line_match.start()] + line[line_match.end() :]
        text = text.strip(" \t:-,()`*")
        if len(text) < _SHORT_COMMENT and index + 1 < len(lines):
            text = f"{text} {lines[index + 1].strip()}".strip()
        if not text:
            text = line.strip()
        comments.append(
            ReviewComment(file=_match_known_file(match.group(1), known_files), line=line_number, comment=text)
        )
    return comments


def parse_prose_review(raw: str, known_files: Sequence[str] | None = None) -> ParsedReview:
    """Build a best-effort review from unstructured prose."""
    known_files = list(known_files or [])
    lines = raw.strip().splitlines()
    summary = _prose_summary(lines)
    comments = _prose_comments(lines, known_files)

    if not comments:
        if not known_files:
            raise MalformedResponseError("No JSON and no file references found in response.", raw=raw)
        excerpt = raw.strip()
        if len(excerpt) > _EXCERPT_CHARS:
            excerpt = excerpt[:_EXCERPT_CHARS] + "..."
        comments = [ReviewComment(file=known_files[0], line=1, comment=excerpt)]

    return ParsedReview(summary=summary, comments=comments)


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def extract(
    raw_text: str,
    provider_hint: str = "",
    known_files: Sequence[str] | None = None,
    envelope: bool | None = None,
    prose_fallback: bool | None = None,
) -> ParsedReview:
    """Parse raw LLM output into a ParsedReview.

    ``envelope`` and ``prose_fallback`` default to the built-in provider sets
    and can be forced either way by configuration.
    """
    provider = (provider_hint or "").lower()
    if envelope is None:
        envelope = provider in ENVELOPE_PROVIDERS
    if prose_fallback is None:
        prose_fallback = provider in PROSE_FALLBACK_PROVIDERS

    if not raw_text or not raw_text.strip():
        raise MalformedResponseError(f"Empty response from {provider or 'LLM'} CLI.", raw=raw_text or "", provider=provider)

    try:
        return _parse_json_review(raw_text, envelope)
    except (json.JSONDecodeError, ValueError) as e:
        if not prose_fallback:
            logger.error("Failed to parse %s review as JSON (%s). Raw output: %s", provider, e, raw_text[:500])
            raise MalformedResponseError(
                f"Invalid JSON response from {provider or 'LLM'} CLI: {e}", raw=raw_text, provider=provider
            ) from e
        logger.info("%s response is not JSON (%s); falling back to prose parsing", provider, e)

    try:
        return parse_prose_review(raw_text, known_files)
    except MalformedResponseError as e:
        e.provider = provider
        raise


def get_review_statistics(review: ParsedReview) -> dict[str, int]:
    """Count comments by conventional-comment label (``issue:``, ``nitpick:`` ...)."""
    stats = {"total": len(review.comments)}
    for label in REVIEW_LABELS:
        pattern = re.compile(rf"\b{label}", re.IGNORECASE)
        stats[label] = sum(1 for c in review.comments if pattern.search(c.comment))
    return stats
