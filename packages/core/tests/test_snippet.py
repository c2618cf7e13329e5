"""Tests for smart snippet extraction around a reviewed line."""

import pytest

from ruck_core.review.snippet import extract_snippet, find_best_code_match
from ruck_core.utils.language import Language

JS_FILE = """import x from 'y';

function total(items) {
  let sum = 0;
  for (const item of items) {
    sum += item.price;
  }
  return sum;
}

export default total;"""


class TestExtractSnippetBounds:
    def test_empty_file(self):
        assert extract_snippet("", 1) is None

    @pytest.mark.parametrize("line", [0, -1, 99])
    def test_out_of_range(self, line):
        assert extract_snippet(JS_FILE, line) is None

    def test_non_integer_line(self):
        assert extract_snippet(JS_FILE, "3") is None
        assert extract_snippet(JS_FILE, True) is None

    def test_negative_context(self):
        assert extract_snippet(JS_FILE, 3, context_lines=-1) is None

    def test_lines_stay_inside_file(self):
        for target in range(1, 12):
            snippet = extract_snippet(JS_FILE, target, context_lines=5, language=Language.JAVASCRIPT)
            assert 1 <= snippet.start_line <= snippet.target_line <= snippet.end_line <= 11
            assert [l.line_number for l in snippet.lines] == list(range(snippet.start_line, snippet.end_line + 1))


class TestExtractSnippetShape:
    def test_significant_target_not_adjusted(self):
        snippet = extract_snippet(JS_FILE, 6, context_lines=1, language=Language.JAVASCRIPT)
        assert snippet.target_line == 6
        assert snippet.adjusted is False
        assert snippet.confidence == 1.0
        assert [l.is_target for l in snippet.lines].count(True) == 1

    def test_expands_back_to_declaration(self):
        snippet = extract_snippet(JS_FILE, 6, context_lines=1, language=Language.JAVASCRIPT)
        assert snippet.start_line == 3
        assert snippet.lines[0].content == "function total(items) {"

    def test_expands_forward_to_block_end(self):
        snippet = extract_snippet(JS_FILE, 5, context_lines=0, language=Language.JAVASCRIPT)
        assert snippet.end_line == 8
        assert snippet.lines[-1].content == "  return sum;"

    def test_pulls_back_to_statement_start_and_forward_to_semicolon(self):
        text = "a\nb\n$total = compute(\n  x,\n  y\n);\nz"
        snippet = extract_snippet(text, 5, context_lines=0)
        assert (snippet.start_line, snippet.end_line) == (3, 6)
        assert snippet.lines[0].content == "$total = compute("
        assert snippet.lines[-1].content == ");"

    def test_no_terminator_keeps_window(self):
        snippet = extract_snippet("a\nb\nc\nd\ne", 3, context_lines=1)
        assert (snippet.start_line, snippet.end_line) == (2, 4)

    def test_blank_target_moves_to_code(self):
        snippet = extract_snippet(JS_FILE, 2, context_lines=1, language=Language.JAVASCRIPT)
        assert snippet.adjusted is True
        assert snippet.original_target_line == 2
        assert snippet.target_line != 2
        assert snippet.adjustment_reason


class TestFindBestCodeMatch:
    def test_issue_pattern_preferred(self):
        lines = ["", "// loading", "", "const data = JSON.parse(raw);", "done();"]
        best = find_best_code_match(lines, 2, Language.JAVASCRIPT)
        assert best.index == 3
        assert best.reason == "Found parsing code"

    def test_nearest_code_above(self):
        lines = ["let a = 1;", "", ""]
        best = find_best_code_match(lines, 2)
        assert best.index == 0
        assert best.confidence == 0.7

    def test_nearest_code_below(self):
        lines = ["", "", "let a = 1;"]
        best = find_best_code_match(lines, 0)
        assert best.index == 2
        assert best.confidence == 0.6

    def test_nothing_found(self):
        lines = ["", "}", ""]
        best = find_best_code_match(lines, 0)
        assert best.index == 0
        assert best.confidence == 0.3
