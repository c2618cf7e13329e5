"""Re-derive the line a review comment is really about.

LLMs are handed a diff plus full file contents and asked to cite a line
number, but the number they report drifts: hunk headers get counted,
off-by-one errors creep in, or the model simply miscounts. Trusting it
puts comments on blank lines or unrelated code. The matcher instead treats
the comment *prose* as the source of truth and looks for the code it talks
about, walking a ladder of strategies from most to least trustworthy:

    exact snippet match   → confidence 1.0
    fuzzy snippet match   → confidence > fuzzy_threshold
    original line kept    → confidence 0.5, flagged with line_warning
    keyword overlap       → confidence min(cap, score)

A comment that no strategy can place is dropped by the caller: a comment on
the wrong line is worse than a missing comment.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace

from ruck_core.models import CorrectionMethod, MatchCandidate, ReviewComment
from ruck_core.utils.code import CodeIndex

logger = logging.getLogger(__name__)

ORIGINAL_LINE_CONFIDENCE = 0.5

DEFAULT_STOPWORDS = frozenset(
    {
        "the", "this", "that", "these", "those", "with", "from", "into", "onto", "have", "has", "had",
        "should", "would", "could", "will", "shall", "must", "might", "being", "been", "were", "what",
        "when", "where", "which", "while", "there", "their", "then", "than", "they", "them", "here",
        "also", "only", "just", "more", "most", "some", "such", "very", "each", "other", "about",
        "after", "before", "because", "consider", "using", "used", "instead", "make", "sure", "line",
        "code", "value", "values", "function", "method", "variable", "file", "issue", "suggestion",
        "nitpick", "question", "praise", "note", "todo", "blocking", "non", "does", "doesn", "isn",
        "aren", "don", "can", "cannot", "need", "needs", "like", "your",
    }
)

_BACKTICK_RE = re.compile(r"`([^`\n]+)`")
_CALL_RE = re.compile(r"(?<![\w$])([A-Za-z_$][\w$]*)\(")
_SIGIL_RE = re.compile(r"\$[A-Za-z_]\w*")
_ASSIGNMENT_RE = re.compile(r"\b([A-Za-z_][\w.]*)\s*=(?!=)")
_BARE_NUMBER_RE = re.compile(r"(?<![\w.])(\d{2,3})(?![\w.])")
_PAREN_NUMBER_RE = re.compile(r"\((\d+)\)")
_COMPARISON = r"(?:===|!==|==|!=|<=|>=|<|>)"
_OPERATOR_NUMBER_RE = re.compile(rf"{_COMPARISON}\s*(\d+)(?![\w.])|(?<![\w.])(\d+)\s*{_COMPARISON}")
_WORD_RE = re.compile(r"[a-z0-9]+")
_INTEGER_RE = re.compile(r"^\d+$")
_WORD_PAIR_RE = re.compile(r"\w\w")


@dataclass(frozen=True)
class MatcherSettings:
    """Tuning knobs for the matching ladder; all are configurable via ``matcher:``."""

    fuzzy_threshold: float = 0.8
    keyword_threshold: float = 0.5
    keyword_confidence_cap: float = 0.8
    max_keywords: int = 10
    min_keywords: int = 4
    min_keyword_length: int = 4
    min_snippet_length: int = 2
    stopwords: frozenset[str] = DEFAULT_STOPWORDS

    @classmethod
    def from_config(cls, matcher_config: dict | None) -> MatcherSettings:
        if not matcher_config:
            return cls()
        known = {k: v for k, v in matcher_config.items() if k in cls.__dataclass_fields__ and v is not None}
        if "stopwords" in known:
            known["stopwords"] = frozenset(w.lower() for w in known["stopwords"])
        return cls(**known)


# ---------------------------------------------------------------------------
# Snippet extraction
# ---------------------------------------------------------------------------


def extract_code_snippets(comment_text: str, min_length: int = 2) -> list[str]:
    """Pull candidate code fragments out of comment prose.

    Candidates are pooled in extractor order (backtick spans first, so a
    quoted line is always tried before fragments of it) and de-duplicated.
    Pure integers are kept whatever their length; they go through a
    stricter adjacency check at match time.
    """
    if not comment_text:
        return []

    candidates: list[str] = []
    candidates.extend(m.group(1).strip() for m in _BACKTICK_RE.finditer(comment_text))
    candidates.extend(f"{m.group(1)}(" for m in _CALL_RE.finditer(comment_text))
    candidates.extend(m.group(0) for m in _SIGIL_RE.finditer(comment_text))
    candidates.extend(f"{m.group(1)} =" for m in _ASSIGNMENT_RE.finditer(comment_text))
    candidates.extend(m.group(1) for m in _BARE_NUMBER_RE.finditer(comment_text))
    candidates.extend(m.group(1) for m in _PAREN_NUMBER_RE.finditer(comment_text))
    candidates.extend(m.group(1) or m.group(2) for m in _OPERATOR_NUMBER_RE.finditer(comment_text))

    snippets: list[str] = []
    seen: set[str] = set()
    for candidate in candidates:
        if not candidate or candidate in seen:
            continue
        if len(candidate) < min_length and not _INTEGER_RE.match(candidate):
            continue
        seen.add(candidate)
        snippets.append(candidate)
    return snippets


def extract_keywords(comment_text: str, settings: MatcherSettings) -> list[str]:
    keywords: list[str] = []
    for word in _WORD_RE.findall((comment_text or "").lower()):
        if len(word) < settings.min_keyword_length or word in settings.stopwords or word in keywords:
            continue
        keywords.append(word)
        if len(keywords) >= settings.max_keywords:
            break
    return keywords


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


def _number_in_context(number: str, line: str) -> bool:
    """True when a bare integer appears next to a comparison operator or inside parentheses."""
    n = re.escape(number)
    patterns = (
        rf"{_COMPARISON}\s*{n}(?![\w.])",
        rf"(?<![\w.]){n}\s*{_COMPARISON}",
        rf"\(\s*{n}\s*[),]",
        rf"[(,]\s*{n}\s*\)",
    )
    return any(re.search(p, line) for p in patterns)


def _snippet_pattern(snippet: str) -> re.Pattern:
    """Compile a snippet so whitespace between tokens is optional; assignments never match `==`."""
    parts = snippet.split()
    pattern = re.escape(parts[0])
    for prev, part in zip(parts, parts[1:]):
        gap = r"\s+" if _WORD_PAIR_RE.fullmatch(prev[-1] + part[0]) else r"\s*"
        pattern += gap + re.escape(part)
    if snippet.endswith("=") and not snippet.endswith(("==", "!=", "<=", ">=")):
        pattern = rf"(?<![\w.]){pattern}(?!=)"
    return re.compile(pattern)


def _similarity(a: str, b: str) -> float:
    if not a or not b:
        return 0.0
    if a in b or b in a:
        return min(len(a), len(b)) / max(len(a), len(b))
    set_a, set_b = set(a), set(b)
    return len(set_a & set_b) / len(set_a | set_b)


def find_exact_match(snippets: list[str], index: CodeIndex) -> MatchCandidate | None:
    for snippet in snippets:
        is_number = bool(_INTEGER_RE.match(snippet))
        pattern = None if is_number else _snippet_pattern(snippet)
        for number, line in enumerate(index.lines, 1):
            if is_number:
                if _number_in_context(snippet, line):
                    return MatchCandidate(number, 1.0, f"number {snippet} used in comparison or call")
            elif pattern.search(line):
                return MatchCandidate(number, 1.0, f"exact snippet {snippet!r}")
    return None


def find_fuzzy_match(snippets: list[str], index: CodeIndex, threshold: float) -> MatchCandidate | None:
    best: MatchCandidate | None = None
    for snippet in snippets:
        for number, line in enumerate(index.lines, 1):
            stripped = line.strip()
            if not stripped:
                continue
            score = _similarity(snippet, stripped)
            if best is None or score > best.confidence:
                best = MatchCandidate(number, score, f"similar to {snippet!r}")
    if best is not None and best.confidence > threshold:
        return best
    return None


def find_keyword_match(comment_text: str, index: CodeIndex, settings: MatcherSettings) -> MatchCandidate | None:
    keywords = extract_keywords(comment_text, settings)
    if len(keywords) < max(1, settings.min_keywords):
        return None

    best_line, best_score = 0, 0.0
    for number, line in enumerate(index.lines, 1):
        lowered = line.lower()
        if not lowered.strip():
            continue
        score = sum(1 for k in keywords if k in lowered) / len(keywords)
        if score > best_score:
            best_line, best_score = number, score

    if best_score > settings.keyword_threshold:
        return MatchCandidate(
            best_line,
            min(settings.keyword_confidence_cap, best_score),
            f"{round(best_score * len(keywords))}/{len(keywords)} keywords",
        )
    return None


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def _corrected(comment: ReviewComment, candidate: MatchCandidate, method: CorrectionMethod) -> ReviewComment:
    if candidate.line_number != comment.line:
        logger.debug(
            "%s: moved comment from line %s to %d (%s, %s)",
            comment.file,
            comment.line,
            candidate.line_number,
            method.value,
            candidate.reason,
        )
    return replace(
        comment,
        line=candidate.line_number,
        original_line=comment.line,
        correction_method=method,
        confidence=round(candidate.confidence, 3),
        line_warning=method is CorrectionMethod.ORIGINAL_LINE_KEPT,
    )


def resolve(comment: ReviewComment, index: CodeIndex, settings: MatcherSettings | None = None) -> ReviewComment | None:
    """Return a corrected copy of ``comment``, or None when its line cannot be verified."""
    settings = settings or MatcherSettings()
    snippets = extract_code_snippets(comment.comment, settings.min_snippet_length)

    exact = find_exact_match(snippets, index)
    if exact:
        return _corrected(comment, exact, CorrectionMethod.EXACT_MATCH)

    fuzzy = find_fuzzy_match(snippets, index, settings.fuzzy_threshold)
    if fuzzy:
        return _corrected(comment, fuzzy, CorrectionMethod.FUZZY_MATCH)

    if index.in_range(comment.line) and index.line(comment.line).strip():
        kept = MatchCandidate(comment.line, ORIGINAL_LINE_CONFIDENCE, "original line has content")
        return _corrected(comment, kept, CorrectionMethod.ORIGINAL_LINE_KEPT)

    keyword = find_keyword_match(comment.comment, index, settings)
    if keyword:
        return _corrected(comment, keyword, CorrectionMethod.KEYWORD_MATCH)

    return None
