"""Tests for language detection and the per-language pattern tables."""

import pytest

from ruck_core.utils.language import (
    DECLARATION_PATTERNS,
    GENERIC_ISSUE_PATTERNS,
    ISSUE_PATTERNS,
    Language,
    declaration_patterns,
    detect_language,
    issue_patterns,
    language_for_extension,
)


class TestDetectLanguage:
    @pytest.mark.parametrize(
        "path, expected",
        [
            ("src/app.js", Language.JAVASCRIPT),
            ("src/App.TSX", Language.TYPESCRIPT),
            ("lib/tool.py", Language.PYTHON),
            ("index.php", Language.PHP),
            ("cmd/main.go", Language.GO),
            ("deploy.sh", Language.BASH),
            ("config.yml", Language.YAML),
            ("README.md", Language.MARKDOWN),
        ],
    )
    def test_extension_wins(self, path, expected):
        assert detect_language(path, ["<?php echo 1;"]) is expected

    def test_shebang_without_extension(self):
        assert detect_language("bin/run", ["#!/usr/bin/env python3", "print(1)"]) is Language.PYTHON

    def test_bash_shebang(self):
        assert detect_language("scripts/build", ["#!/bin/sh", "set -e"]) is Language.BASH

    def test_keyword_scoring_fallback(self):
        sample = ["<?php", "namespace App;", "class A {", "  public function b() { return $this->c; }", "}"]
        assert detect_language("Dockerfile", sample) is Language.PHP

    def test_unknown_without_sample_is_text(self):
        assert detect_language("LICENSE") is Language.TEXT

    def test_unknown_without_signal_is_text(self):
        assert detect_language("NOTES", ["hello world", "nothing here"]) is Language.TEXT

    def test_text_extension_still_sniffed(self):
        assert detect_language("snippet.txt", ["def main():", "    import os", "    self.x = None"]) is Language.PYTHON


class TestLanguageForExtension:
    def test_known(self):
        assert language_for_extension("rb") is Language.RUBY

    def test_case_insensitive(self):
        assert language_for_extension("PY") is Language.PYTHON

    def test_unknown(self):
        assert language_for_extension("xyz") is None


class TestPatternTables:
    def test_every_language_has_entries(self):
        for language in Language:
            assert language in ISSUE_PATTERNS
            assert language in DECLARATION_PATTERNS

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            ISSUE_PATTERNS[Language.TEXT] = ()  # type: ignore[index]

    def test_generic_patterns_apply_everywhere(self):
        assert issue_patterns(Language.TEXT) == GENERIC_ISSUE_PATTERNS
        assert issue_patterns(Language.PHP)[-len(GENERIC_ISSUE_PATTERNS) :] == GENERIC_ISSUE_PATTERNS

    def test_php_specific_patterns_come_first(self):
        first = issue_patterns(Language.PHP)[0]
        assert first.regex.search("$date = DateTime::createFromFormat('Y-m-d', $s);")
        assert first.confidence == 0.95

    def test_python_declaration(self):
        assert any(p.search("async def fetch(url):") for p in declaration_patterns(Language.PYTHON))

    def test_generic_declaration_everywhere(self):
        assert any(p.search("public function handle()") for p in declaration_patterns(Language.MARKDOWN))
