"""File-context blob: the concatenated full text of every changed file.

The blob is what the LLM sees next to the diff, and it is also the only
source of truth the reconciler has for verifying line numbers. Both sides
therefore use the same delimiter convention:

    --- path/to/file.py ---
    <file content>

Paths in the headers are the same change-set paths the model is asked to
cite, so the keys of parse_file_contents() line up with comment ``file``
values.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from ruck_core.utils.code import is_code_file

logger = logging.getLogger(__name__)

_HEADER_RE = re.compile(r"^--- (.+?) ---$", re.MULTILINE)
_LEADING_BLANK_RE = re.compile(r"^(?:[ \t]*\n)+")
_TRAILING_BLANK_RE = re.compile(r"(?:\n[ \t]*)+$")
_DIFF_NEW_PATH_RE = re.compile(r"^\+\+\+ (?:b/)?(.+?)\s*$", re.MULTILINE)

_TRUNCATION_MARKER = "\n... [file truncated]"


def build_context_blob(paths: list[str], repo_root: str = ".", max_chars: int | None = None) -> str:
    """Read each changed file and join them under ``--- <path> ---`` headers.

    Unreadable and non-code files are skipped with a warning rather than
    aborting the review; the model simply gets less context.
    """
    root = Path(repo_root)
    parts: list[str] = []
    for path in paths:
        if not is_code_file(path):
            logger.info("Skipping non-code file %s", path)
            continue
        try:
            content = (root / path).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning("Could not read file %s: %s", path, e)
            continue
        if max_chars is not None and len(content) > max_chars:
            content = content[:max_chars] + _TRUNCATION_MARKER
        parts.append(f"--- {path} ---\n{content}\n\n")
    return "".join(parts)


def parse_file_contents(file_context: str | None) -> dict[str, str]:
    """Split a context blob back into ``{path: content}`` in blob order.

    Leading and trailing blank lines of every section are trimmed; sections
    whose body is empty are dropped.
    """
    file_contents: dict[str, str] = {}
    if not file_context:
        return file_contents

    sections = _HEADER_RE.split(file_context.replace("\r\n", "\n"))
    # split() with one capture group yields [preamble, name, body, name, body, ...]
    for index in range(1, len(sections), 2):
        file_name = sections[index]
        body = sections[index + 1] if index + 1 < len(sections) else ""
        if not file_name or not body:
            continue
        clean = _TRAILING_BLANK_RE.sub("", _LEADING_BLANK_RE.sub("", body))
        if clean.strip():
            file_contents[file_name] = clean
    return file_contents


def changed_files_from_diff(diff: str) -> list[str]:
    """Return new-side paths named by ``+++`` headers of a unified diff, in order."""
    files: list[str] = []
    for match in _DIFF_NEW_PATH_RE.finditer(diff or ""):
        path = match.group(1)
        if path == "/dev/null" or path in files:
            continue
        files.append(path)
    return files
