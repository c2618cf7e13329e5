"""Language detection and per-language heuristic pattern tables.

Every table here is keyed by the closed ``Language`` enum and built once at
import time. A language with no specific heuristics maps to an empty tuple,
so a lookup never falls through silently.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

from ruck_core.utils.code import get_file_extension


class Language(str, Enum):
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    PYTHON = "python"
    RUBY = "ruby"
    PHP = "php"
    JAVA = "java"
    C = "c"
    CPP = "cpp"
    CSHARP = "csharp"
    GO = "go"
    RUST = "rust"
    SWIFT = "swift"
    KOTLIN = "kotlin"
    SCALA = "scala"
    BASH = "bash"
    POWERSHELL = "powershell"
    SQL = "sql"
    HTML = "html"
    XML = "xml"
    CSS = "css"
    SCSS = "scss"
    SASS = "sass"
    LESS = "less"
    JSON = "json"
    YAML = "yaml"
    TOML = "toml"
    INI = "ini"
    MARKDOWN = "markdown"
    TEXT = "text"


@dataclass(frozen=True)
class IssuePattern:
    """A regex that flags a line as the likely subject of a review comment."""

    regex: re.Pattern
    reason: str
    confidence: float


EXTENSION_LANGUAGES: Mapping[str, Language] = MappingProxyType(
    {
        "js": Language.JAVASCRIPT,
        "jsx": Language.JAVASCRIPT,
        "mjs": Language.JAVASCRIPT,
        "cjs": Language.JAVASCRIPT,
        "ts": Language.TYPESCRIPT,
        "tsx": Language.TYPESCRIPT,
        "py": Language.PYTHON,
        "rb": Language.RUBY,
        "php": Language.PHP,
        "java": Language.JAVA,
        "c": Language.C,
        "h": Language.C,
        "cpp": Language.CPP,
        "cc": Language.CPP,
        "cxx": Language.CPP,
        "hpp": Language.CPP,
        "cs": Language.CSHARP,
        "go": Language.GO,
        "rs": Language.RUST,
        "swift": Language.SWIFT,
        "kt": Language.KOTLIN,
        "scala": Language.SCALA,
        "sh": Language.BASH,
        "bash": Language.BASH,
        "zsh": Language.BASH,
        "fish": Language.BASH,
        "ps1": Language.POWERSHELL,
        "sql": Language.SQL,
        "html": Language.HTML,
        "htm": Language.HTML,
        "xml": Language.XML,
        "css": Language.CSS,
        "scss": Language.SCSS,
        "sass": Language.SASS,
        "less": Language.LESS,
        "json": Language.JSON,
        "yaml": Language.YAML,
        "yml": Language.YAML,
        "toml": Language.TOML,
        "ini": Language.INI,
        "conf": Language.INI,
        "config": Language.INI,
        "md": Language.MARKDOWN,
        "markdown": Language.MARKDOWN,
        "txt": Language.TEXT,
    }
)

_SHEBANG_LANGUAGES = (
    ("python", Language.PYTHON),
    ("node", Language.JAVASCRIPT),
    ("ruby", Language.RUBY),
    ("php", Language.PHP),
    ("bash", Language.BASH),
    ("/sh", Language.BASH),
    ("zsh", Language.BASH),
)

# Tokens whose frequency in a content sample votes for a language. Order
# matters only for ties: the earlier language wins.
_KEYWORD_SIGNALS: tuple[tuple[Language, tuple[str, ...]], ...] = (
    (Language.PHP, ("<?php", "$this->", "->", "namespace ", "echo ")),
    (Language.PYTHON, ("def ", "import ", "self.", "elif ", "None", "__init__")),
    (Language.TYPESCRIPT, ("interface ", ": string", ": number", "export type ", "readonly ")),
    (Language.JAVASCRIPT, ("const ", "let ", "function ", "=>", "require(", "console.log")),
    (Language.GO, ("func ", "package ", ":=", "fmt.", "go ")),
    (Language.RUST, ("fn ", "let mut ", "impl ", "pub fn", "::")),
    (Language.JAVA, ("public class", "private ", "System.out", "@Override", "extends ")),
    (Language.RUBY, ("end", "puts ", "attr_accessor", "do |", "require '")),
    (Language.BASH, ("#!/bin", "echo ", "fi", "then", "esac")),
    (Language.SQL, ("SELECT ", "INSERT ", "UPDATE ", "FROM ", "WHERE ")),
)


def _patterns(*entries: tuple[str, str, float]) -> tuple[IssuePattern, ...]:
    return tuple(IssuePattern(re.compile(regex, re.IGNORECASE), reason, confidence) for regex, reason, confidence in entries)


_PHP_PATTERNS = _patterns(
    (r"DateTime::createFromFormat|date_create_from_format|\$.*->format\(", "Found date parsing code", 0.95),
    (r"mail\(|setFrom|setBcc|setTo|@.*\..*['\"]", "Found email handling code", 0.9),
    (r"\$.*query.*\$|\$.*sql.*\$|mysql_query|executeQuery", "Found SQL query code", 0.9),
    (r"array_combine|array_merge|array_intersect", "Found array operation code", 0.9),
    (r"file_get_contents|fopen|include.*\$|require.*\$", "Found file operation code", 0.85),
    (r"\$_GET|\$_POST|\$_REQUEST|filter_var|htmlspecialchars", "Found input handling code", 0.8),
)

_JS_PATTERNS = _patterns(
    (r"\beval\(|new Function\(|innerHTML\s*=|dangerouslySetInnerHTML", "Found dynamic code or HTML injection", 0.95),
    (r"\.query\(|\.execute\(|\bknex\(|\bsequelize\.", "Found SQL query code", 0.9),
    (r"JSON\.parse\(|parseInt\(|parseFloat\(|new Date\(", "Found parsing code", 0.85),
    (r"\bfetch\(|axios\.|XMLHttpRequest", "Found network call", 0.85),
    (r"req\.(body|query|params)|process\.env", "Found input handling code", 0.8),
    (r"\bawait\b|\.then\(|\.catch\(", "Found async code", 0.75),
)

_PYTHON_PATTERNS = _patterns(
    (r"\beval\(|\bexec\(|pickle\.loads?|yaml\.load\(", "Found unsafe deserialisation or eval", 0.95),
    (r"subprocess\.|os\.system\(|shell\s*=\s*True", "Found process execution code", 0.9),
    (r"\.execute\(|cursor\.|\.raw\(", "Found SQL query code", 0.9),
    (r"\bopen\(|Path\(.*\)\.(read|write)_", "Found file operation code", 0.85),
    (r"datetime\.strptime|datetime\.fromisoformat|int\(|float\(", "Found parsing code", 0.85),
    (r"request\.(args|form|json|GET|POST)|os\.environ", "Found input handling code", 0.8),
    (r"except\s*:|except\s+Exception", "Found broad exception handling", 0.8),
)

_RUBY_PATTERNS = _patterns(
    (r"\beval\(|\bsend\(|instance_eval|Marshal\.load", "Found dynamic code execution", 0.95),
    (r"find_by_sql|\.where\(.*#\{|execute\(", "Found SQL query code", 0.9),
    (r"params\[|request\.", "Found input handling code", 0.8),
)

_JAVA_PATTERNS = _patterns(
    (r"Statement\.execute|createQuery\(|executeQuery|prepareStatement", "Found SQL query code", 0.9),
    (r"Runtime\.getRuntime\(\)\.exec|ProcessBuilder", "Found process execution code", 0.9),
    (r"SimpleDateFormat|LocalDate\.parse|Integer\.parseInt", "Found parsing code", 0.85),
    (r"catch\s*\(\s*(Exception|Throwable)", "Found broad exception handling", 0.8),
)

_GO_PATTERNS = _patterns(
    (r"db\.(Query|Exec)|sql\.Open", "Found SQL query code", 0.9),
    (r"exec\.Command", "Found process execution code", 0.9),
    (r"if err != nil|_ = err|, _ :?= ", "Found error handling code", 0.8),
    (r"strconv\.|time\.Parse", "Found parsing code", 0.85),
)

_BASH_PATTERNS = _patterns(
    (r"\beval\b|`.*\$", "Found dynamic command execution", 0.9),
    (r"rm\s+-rf|chmod\s+777", "Found destructive file operation", 0.9),
    (r"\$\{?\w+\}?[^\"']*$", "Found unquoted variable expansion", 0.75),
)

_SQL_PATTERNS = _patterns(
    (r"\bDELETE\s+FROM\b|\bDROP\s+|\bTRUNCATE\b", "Found destructive statement", 0.9),
    (r"\bSELECT\s+\*", "Found unbounded select", 0.85),
    (r"\bUPDATE\s+\w+\s+SET\b", "Found update statement", 0.85),
)

# Applied after the language-specific table for every language.
GENERIC_ISSUE_PATTERNS = _patterns(
    (r"['\"].*@.*\..*['\"]|['\"]https?://|define\(|const\s+\w+\s*=", "Found configuration/hardcoded values", 0.85),
    (r"password|secret|api[_-]?key|token", "Found credential handling code", 0.85),
    (r"\bTODO\b|\bFIXME\b|\bXXX\b", "Found unfinished code marker", 0.75),
)

_SPECIFIC_ISSUE_PATTERNS: dict[Language, tuple[IssuePattern, ...]] = {
    Language.PHP: _PHP_PATTERNS,
    Language.JAVASCRIPT: _JS_PATTERNS,
    Language.TYPESCRIPT: _JS_PATTERNS,
    Language.PYTHON: _PYTHON_PATTERNS,
    Language.RUBY: _RUBY_PATTERNS,
    Language.JAVA: _JAVA_PATTERNS,
    Language.KOTLIN: _JAVA_PATTERNS,
    Language.GO: _GO_PATTERNS,
    Language.BASH: _BASH_PATTERNS,
    Language.SQL: _SQL_PATTERNS,
}

ISSUE_PATTERNS: Mapping[Language, tuple[IssuePattern, ...]] = MappingProxyType(
    {language: _SPECIFIC_ISSUE_PATTERNS.get(language, ()) + GENERIC_ISSUE_PATTERNS for language in Language}
)

# Visibility keywords and function/def declarations, shared by C-like and scripting languages.
GENERIC_DECLARATION = re.compile(r"^\s*(public|private|protected|function|def)\s+\w+", re.IGNORECASE)

_SPECIFIC_DECLARATIONS: dict[Language, tuple[str, ...]] = {
    Language.PYTHON: (r"^\s*(async\s+def|def|class)\s+\w+",),
    Language.JAVASCRIPT: (
        r"^\s*(export\s+)?(default\s+)?(async\s+)?function\*?\s+\w+",
        r"^\s*(export\s+)?(const|let|var)\s+\w+\s*=\s*(async\s*)?(\([^)]*\)|\w+)\s*=>",
        r"^\s*(export\s+)?class\s+\w+",
    ),
    Language.TYPESCRIPT: (
        r"^\s*(export\s+)?(default\s+)?(async\s+)?function\*?\s+\w+",
        r"^\s*(export\s+)?(const|let|var)\s+\w+(\s*:[^=]+)?\s*=\s*(async\s*)?\(",
        r"^\s*(export\s+)?(abstract\s+)?class\s+\w+",
        r"^\s*(export\s+)?interface\s+\w+",
    ),
    Language.PHP: (r"^\s*(abstract\s+|final\s+)?(class|interface|trait)\s+\w+", r"^\s*(static\s+)?function\s+\w+"),
    Language.RUBY: (r"^\s*(def|class|module)\s+\w+",),
    Language.GO: (r"^\s*func\s+(\([^)]*\)\s*)?\w+",),
    Language.RUST: (r"^\s*(pub(\([^)]*\))?\s+)?(async\s+)?fn\s+\w+", r"^\s*(pub\s+)?(struct|enum|trait|impl)\b"),
    Language.JAVA: (r"^\s*(public|private|protected|static|final|\s)*[\w<>\[\]]+\s+\w+\s*\([^;]*$",),
    Language.KOTLIN: (r"^\s*(private\s+|public\s+|internal\s+)?(suspend\s+)?fun\s+\w+",),
    Language.SWIFT: (r"^\s*(private\s+|public\s+)?func\s+\w+",),
    Language.BASH: (r"^\s*(function\s+)?\w+\s*\(\)\s*\{?",),
}

DECLARATION_PATTERNS: Mapping[Language, tuple[re.Pattern, ...]] = MappingProxyType(
    {
        language: (GENERIC_DECLARATION,)
        + tuple(re.compile(p, re.IGNORECASE) for p in _SPECIFIC_DECLARATIONS.get(language, ()))
        for language in Language
    }
)


def issue_patterns(language: Language) -> tuple[IssuePattern, ...]:
    return ISSUE_PATTERNS[language]


def declaration_patterns(language: Language) -> tuple[re.Pattern, ...]:
    return DECLARATION_PATTERNS[language]


@lru_cache(maxsize=256)
def language_for_extension(extension: str) -> Language | None:
    return EXTENSION_LANGUAGES.get(extension.lower())


def detect_language(path: str, sample_lines: list[str] | None = None) -> Language:
    """Guess the language of a file.

    Extension lookup wins. Without a known extension the first line is
    checked for a shebang, then tokens in the sample are counted per
    language and the highest score wins. Returns Language.TEXT when no
    signal is found.
    """
    language = language_for_extension(get_file_extension(path))
    if language is not None and language is not Language.TEXT:
        return language

    if not sample_lines:
        return Language.TEXT

    first = sample_lines[0].strip()
    if first.startswith("#!"):
        for needle, shebang_language in _SHEBANG_LANGUAGES:
            if needle in first:
                return shebang_language

    sample = "\n".join(sample_lines)
    best, best_score = Language.TEXT, 0
    for candidate, tokens in _KEYWORD_SIGNALS:
        score = sum(sample.count(token) for token in tokens)
        if score > best_score:
            best, best_score = candidate, score
    return best
