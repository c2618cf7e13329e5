"""Tests for file filtering and line-indexing utilities."""

import pytest

from ruck_core.utils.code import CodeIndex, get_file_extension, index_lines, is_code_file, is_significant_code


class TestIsCodeFile:
    def test_python_file_is_code(self):
        assert is_code_file("app/services/user.py") is True

    def test_js_file_is_code(self):
        assert is_code_file("src/components/Button.tsx") is True

    def test_image_is_not_code(self):
        assert is_code_file("assets/logo.png") is False

    def test_archive_is_not_code(self):
        assert is_code_file("dist/bundle.tar.gz") is False

    def test_lock_file_is_not_code(self):
        assert is_code_file("poetry.lock") is False

    def test_case_insensitive(self):
        assert is_code_file("image.PNG") is False


class TestGetFileExtension:
    def test_simple_extension(self):
        assert get_file_extension("src/app.js") == "js"

    def test_lowercased(self):
        assert get_file_extension("Main.JAVA") == "java"

    def test_last_extension_wins(self):
        assert get_file_extension("dist/app.min.js") == "js"

    def test_no_extension(self):
        assert get_file_extension("Makefile") == ""

    def test_dotfile_has_no_extension(self):
        assert get_file_extension(".bashrc") == ""

    def test_trailing_dot(self):
        assert get_file_extension("weird.") == ""

    def test_dot_in_directory_ignored(self):
        assert get_file_extension("v1.2/README") == ""


class TestIsSignificantCode:
    @pytest.mark.parametrize(
        "line",
        [
            "if (retries == 3) {",
            "    return total;",
            "x = compute(y)",
            "} else {",
        ],
    )
    def test_real_code(self, line):
        assert is_significant_code(line) is True

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "    ",
            "// a comment",
            "# python comment",
            "/* block start",
            " * @param int $x",
            " *",
            "*/",
            "<!-- html -->",
            "}",
            "  });",
            "]",
            "{",
            "(",
        ],
    )
    def test_not_significant(self, line):
        assert is_significant_code(line) is False

    def test_none_is_not_significant(self):
        assert is_significant_code(None) is False


class TestCodeIndex:
    def test_lines_are_one_based(self):
        index = CodeIndex("a\nb\nc")
        assert index.line(1) == "a"
        assert index.line(3) == "c"

    def test_out_of_range_returns_empty(self):
        index = CodeIndex("a\nb")
        assert index.line(0) == ""
        assert index.line(3) == ""
        assert index.line(-1) == ""

    def test_in_range(self):
        index = CodeIndex("a\nb")
        assert index.in_range(1) is True
        assert index.in_range(2) is True
        assert index.in_range(3) is False
        assert index.in_range(0) is False

    def test_crlf_normalised(self):
        assert index_lines("a\r\nb\r\n") == ["a", "b", ""]

    def test_len(self):
        assert len(CodeIndex("one\ntwo\nthree")) == 3

    def test_empty_text(self):
        index = CodeIndex("")
        assert len(index) == 1
        assert index.line(1) == ""

    def test_is_significant(self):
        index = CodeIndex("x = 1\n\n// note")
        assert index.is_significant(1) is True
        assert index.is_significant(2) is False
        assert index.is_significant(3) is False
        assert index.is_significant(9) is False
