"""Readable code context around a reviewed line.

Rather than a fixed N-line window, the snippet is widened to logical block
boundaries: back to the enclosing declaration or statement start, forward
to the end of the brace block or statement. This is a heuristic, not a
parser; for languages that do not fit the brace/keyword model the window
simply stays close to its base size.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ruck_core.utils.code import index_lines, is_significant_code
from ruck_core.utils.language import Language, declaration_patterns, issue_patterns

DECLARATION_LOOKBACK = 10
STATEMENT_LOOKBACK = 5
BLOCK_LOOKAHEAD = 10
ADJUST_RANGE = 5

_STATEMENT_START_RE = re.compile(
    r"^\s*(?:\$\w+|[A-Za-z_][\w.\[\]'\"]*\s*(?:[-+*/%|&]?=)(?!=))|^\s*(?:if|for|while|switch|try)\s*\(",
    re.IGNORECASE,
)
_CONTROL_BLOCK_RE = re.compile(r"^\s*(?:class|interface|trait)\s+\w+|^\s*(?:if|for|while|switch|try|catch)\s*\(")


@dataclass
class SnippetLine:
    line_number: int
    content: str
    is_target: bool = False


@dataclass
class Snippet:
    start_line: int
    end_line: int
    target_line: int
    original_target_line: int
    adjusted: bool = False
    adjustment_reason: str | None = None
    confidence: float = 1.0
    lines: list[SnippetLine] = field(default_factory=list)


@dataclass
class _BestMatch:
    index: int
    reason: str | None
    confidence: float


def _pattern_match(lines: list[str], origin: int, language: Language) -> _BestMatch | None:
    start, end = max(0, origin - ADJUST_RANGE), min(len(lines) - 1, origin + ADJUST_RANGE)
    patterns = issue_patterns(language)
    for i in range(start, end + 1):
        if not lines[i].strip():
            continue
        for pattern in patterns:
            if pattern.regex.search(lines[i]):
                return _BestMatch(i, pattern.reason, pattern.confidence)
    return None


def _nearest_significant(lines: list[str], origin: int) -> _BestMatch | None:
    start, end = max(0, origin - ADJUST_RANGE), min(len(lines) - 1, origin + ADJUST_RANGE)
    for i in range(origin - 1, start - 1, -1):
        if is_significant_code(lines[i]):
            return _BestMatch(i, "Found significant code above", 0.7)
    for i in range(origin + 1, end + 1):
        if is_significant_code(lines[i]):
            return _BestMatch(i, "Found significant code below", 0.6)
    return None


def _relevant_block(lines: list[str], origin: int, language: Language) -> _BestMatch | None:
    start, end = max(0, origin - ADJUST_RANGE), min(len(lines) - 1, origin + ADJUST_RANGE)
    patterns = declaration_patterns(language) + (_CONTROL_BLOCK_RE,)
    for i in range(start, end + 1):
        if lines[i] and any(p.search(lines[i]) for p in patterns):
            return _BestMatch(i, "Found relevant code block", 0.75)
    return None


def find_best_code_match(lines: list[str], origin: int, language: Language = Language.TEXT) -> _BestMatch:
    """Move an insignificant target (blank, comment, brace) onto nearby real code."""
    if is_significant_code(lines[origin]):
        return _BestMatch(origin, None, 1.0)
    return (
        _pattern_match(lines, origin, language)
        or _nearest_significant(lines, origin)
        or _relevant_block(lines, origin, language)
        or _BestMatch(origin, "No better match found", 0.3)
    )


def expand_backward(lines: list[str], start: int, target: int, language: Language = Language.TEXT) -> int:
    declarations = declaration_patterns(language)
    for i in range(start, max(0, target - DECLARATION_LOOKBACK) - 1, -1):
        if lines[i] and any(p.search(lines[i]) for p in declarations):
            return i

    for i in range(start, max(0, target - STATEMENT_LOOKBACK) - 1, -1):
        stripped = lines[i].strip()
        if not stripped or stripped.startswith(("*", "//", "#")):
            continue
        if _STATEMENT_START_RE.search(lines[i]):
            return i
    return start


def expand_forward(lines: list[str], end: int, target: int) -> int:
    last = len(lines) - 1
    limit = min(last, target + BLOCK_LOOKAHEAD)

    depth = 0
    opened = False
    for i in range(target, limit + 1):
        for char in lines[i]:
            if char == "{":
                depth += 1
                opened = True
            elif char == "}" and opened:
                depth -= 1
                if depth == 0:
                    return max(end, min(last, i + 1))

    for i in range(end, limit + 1):
        if lines[i].rstrip().endswith((";", "}")):
            return i
    return end


def extract_snippet(
    file_text: str,
    target_line: int,
    context_lines: int = 3,
    language: Language = Language.TEXT,
) -> Snippet | None:
    """Return the context window around ``target_line`` (1-based), or None when it is out of bounds."""
    if not file_text or isinstance(target_line, bool) or not isinstance(target_line, int):
        return None
    if target_line < 1 or context_lines < 0:
        return None

    lines = index_lines(file_text)
    origin = target_line - 1
    if origin >= len(lines):
        return None

    best = find_best_code_match(lines, origin, language)
    target = best.index

    start = max(0, target - context_lines)
    end = min(len(lines) - 1, target + context_lines)
    start = expand_backward(lines, start, target, language)
    end = expand_forward(lines, end, target)

    return Snippet(
        start_line=start + 1,
        end_line=end + 1,
        target_line=target + 1,
        original_target_line=target_line,
        adjusted=target != origin,
        adjustment_reason=best.reason,
        confidence=best.confidence,
        lines=[SnippetLine(i + 1, lines[i], i == target) for i in range(start, end + 1)],
    )
