from __future__ import annotations

import re

NON_CODE_EXTENSIONS = {
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".ico",
    ".webp",
    ".bmp",
    ".pdf",
    ".woff",
    ".woff2",
    ".ttf",
    ".eot",
    ".otf",
    ".mp4",
    ".mp3",
    ".wav",
    ".ogg",
    ".zip",
    ".tar",
    ".gz",
    ".rar",
    ".7z",
    ".lock",  # e.g. package-lock.json, Pipfile.lock
}

# Line-comment and block-comment openers/closers across C-like, shell and markup syntaxes.
_COMMENT_PREFIX_RE = re.compile(r"^(//|#|\*|/\*|\*/|<!--)")
# Docblock continuation lines: " * @param ..." or a bare " *".
_DOCBLOCK_RE = re.compile(r"^\s*\*\s*(@\w+|$)")
_CLOSING_ONLY_RE = re.compile(r"^[\s})\];]*$")
_OPENING_ONLY_RE = re.compile(r"^[\s{(,]*$")


def is_code_file(file_name: str) -> bool:
    return not any(file_name.lower().endswith(ext) for ext in NON_CODE_EXTENSIONS)


def get_file_extension(file_path: str) -> str:
    """Return the lowercased extension without the dot, or '' when there is none."""
    name = file_path.rsplit("/", 1)[-1]
    dot = name.rfind(".")
    if dot <= 0 or dot == len(name) - 1:
        return ""
    return name[dot + 1 :].lower()


def is_significant_code(line: str | None) -> bool:
    """Return True if the line holds real code rather than blanks, comments or bare punctuation."""
    if not line or not isinstance(line, str):
        return False
    stripped = line.strip()
    if not stripped:
        return False
    if _COMMENT_PREFIX_RE.match(stripped):
        return False
    if _DOCBLOCK_RE.match(line):
        return False
    if _CLOSING_ONLY_RE.match(stripped):
        return False
    if _OPENING_ONLY_RE.match(stripped):
        return False
    return True


def index_lines(text: str) -> list[str]:
    return text.replace("\r\n", "\n").split("\n")


class CodeIndex:
    """A file's text split into 1-based addressable lines."""

    def __init__(self, text: str):
        self.lines = index_lines(text or "")

    def __len__(self) -> int:
        return len(self.lines)

    def in_range(self, line_number: int) -> bool:
        return isinstance(line_number, int) and 1 <= line_number <= len(self.lines)

    def line(self, line_number: int) -> str:
        """Return the text of a 1-based line, or '' when out of range."""
        if not self.in_range(line_number):
            return ""
        return self.lines[line_number - 1]

    def is_significant(self, line_number: int) -> bool:
        return is_significant_code(self.line(line_number))
