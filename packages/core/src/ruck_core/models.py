"""Review data models shared by the extractor, the matcher and the output layer.

A review moves through three shapes:

    raw LLM text → ParsedReview (as claimed by the model)
                 → ParsedReview (lines verified against real file content)

ReviewComment is mutated only by the line matcher, which returns a corrected
copy carrying provenance fields. Everything downstream treats the reconciled
ParsedReview as read-only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class CorrectionMethod(str, Enum):
    """How the final line number of a comment was established."""

    EXACT_MATCH = "exact_match"
    FUZZY_MATCH = "fuzzy_match"
    KEYWORD_MATCH = "keyword_match"
    ORIGINAL_LINE_KEPT = "original_line_kept"


class DiagnosticKind(str, Enum):
    FILE_NOT_IN_CONTEXT = "file_not_in_context"
    UNRESOLVABLE_COMMENT = "unresolvable_comment"


@dataclass
class ReviewComment:
    """A single inline finding.

    ``file``/``line``/``comment`` are what the model claimed. The remaining
    fields are only populated once the line matcher has verified the line.
    """

    file: str
    line: int
    comment: str
    original_line: int | None = None
    correction_method: CorrectionMethod | None = None
    confidence: float | None = None
    # True when the line could not be verified against the comment text
    # and output layers should present it with caution.
    line_warning: bool = False

    def to_dict(self) -> dict:
        data: dict = {"file": self.file, "line": self.line, "comment": self.comment}
        if self.correction_method is not None:
            data["original_line"] = self.original_line
            data["correction_method"] = self.correction_method.value
            data["confidence"] = self.confidence
        if self.line_warning:
            data["line_warning"] = True
        return data


@dataclass
class ParsedReview:
    summary: str
    comments: list[ReviewComment] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"summary": self.summary, "comments": [c.to_dict() for c in self.comments]}


@dataclass
class MatchCandidate:
    """Result of one matching strategy. Never leaves the matcher."""

    line_number: int
    confidence: float
    reason: str


@dataclass
class Diagnostic:
    """Advisory record of a comment dropped during reconciliation."""

    kind: DiagnosticKind
    file: str
    line: int
    message: str

    def to_dict(self) -> dict:
        return {"file": self.file, "line": self.line, "reason": self.kind.value, "message": self.message}
