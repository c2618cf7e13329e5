"""Tests for the file-context blob: building, splitting and diff path discovery."""

from ruck_core.utils.context import build_context_blob, changed_files_from_diff, parse_file_contents

# ---------------------------------------------------------------------------
# parse_file_contents
# ---------------------------------------------------------------------------


class TestParseFileContents:
    def test_splits_sections_in_order(self):
        blob = "--- src/a.js ---\nconst a = 1;\n\n--- src/b.js ---\nconst b = 2;\n"
        result = parse_file_contents(blob)
        assert list(result) == ["src/a.js", "src/b.js"]
        assert result["src/a.js"] == "const a = 1;"
        assert result["src/b.js"] == "const b = 2;"

    def test_trims_leading_and_trailing_blank_lines(self):
        blob = "--- a.py ---\n\n\nx = 1\ny = 2\n\n  \n\n"
        assert parse_file_contents(blob)["a.py"] == "x = 1\ny = 2"

    def test_keeps_inner_blank_lines(self):
        blob = "--- a.py ---\nx = 1\n\ny = 2\n"
        assert parse_file_contents(blob)["a.py"] == "x = 1\n\ny = 2"

    def test_empty_section_skipped(self):
        blob = "--- empty.js ---\n\n\n--- full.js ---\nlet x;\n"
        assert list(parse_file_contents(blob)) == ["full.js"]

    def test_preamble_ignored(self):
        blob = "Some header text\n--- a.js ---\nlet x;\n"
        assert list(parse_file_contents(blob)) == ["a.js"]

    def test_crlf_input(self):
        blob = "--- a.js ---\r\nlet x;\r\nlet y;\r\n"
        assert parse_file_contents(blob)["a.js"] == "let x;\nlet y;"

    def test_empty_and_none(self):
        assert parse_file_contents("") == {}
        assert parse_file_contents(None) == {}

    def test_header_must_fill_the_line(self):
        blob = "--- a.js ---\nconst s = '--- not a header ---';\n"
        assert parse_file_contents(blob) == {"a.js": "const s = '--- not a header ---';"}


# ---------------------------------------------------------------------------
# build_context_blob
# ---------------------------------------------------------------------------


class TestBuildContextBlob:
    def test_reads_files_under_headers(self, tmp_path):
        (tmp_path / "src").mkdir()
        (tmp_path / "src" / "app.js").write_text("let a = 1;\n")
        blob = build_context_blob(["src/app.js"], repo_root=str(tmp_path))
        assert blob == "--- src/app.js ---\nlet a = 1;\n\n\n"

    def test_round_trips_through_parser(self, tmp_path):
        (tmp_path / "a.py").write_text("x = 1\ny = 2\n")
        (tmp_path / "b.py").write_text("z = 3\n")
        blob = build_context_blob(["a.py", "b.py"], repo_root=str(tmp_path))
        assert parse_file_contents(blob) == {"a.py": "x = 1\ny = 2", "b.py": "z = 3"}

    def test_missing_file_skipped(self, tmp_path):
        (tmp_path / "a.py").write_text("x = 1\n")
        blob = build_context_blob(["gone.py", "a.py"], repo_root=str(tmp_path))
        assert "gone.py" not in blob
        assert "--- a.py ---" in blob

    def test_non_code_file_skipped(self, tmp_path):
        (tmp_path / "logo.png").write_bytes(b"\x89PNG")
        assert build_context_blob(["logo.png"], repo_root=str(tmp_path)) == ""

    def test_truncates_long_files(self, tmp_path):
        (tmp_path / "big.py").write_text("x" * 100)
        blob = build_context_blob(["big.py"], repo_root=str(tmp_path), max_chars=10)
        assert "x" * 10 + "\n... [file truncated]" in blob
        assert "x" * 11 not in blob


# ---------------------------------------------------------------------------
# changed_files_from_diff
# ---------------------------------------------------------------------------


class TestChangedFilesFromDiff:
    def test_new_side_paths(self):
        diff = (
            "diff --git a/src/a.js b/src/a.js\n"
            "--- a/src/a.js\n"
            "+++ b/src/a.js\n"
            "@@ -1 +1 @@\n"
            "-old\n"
            "+new\n"
            "diff --git a/lib/b.py b/lib/b.py\n"
            "--- a/lib/b.py\n"
            "+++ b/lib/b.py\n"
        )
        assert changed_files_from_diff(diff) == ["src/a.js", "lib/b.py"]

    def test_deleted_file_skipped(self):
        diff = "--- a/old.js\n+++ /dev/null\n"
        assert changed_files_from_diff(diff) == []

    def test_without_prefix(self):
        assert changed_files_from_diff("+++ plain/path.rb\n") == ["plain/path.rb"]

    def test_duplicates_removed(self):
        assert changed_files_from_diff("+++ b/a.js\n+++ b/a.js\n") == ["a.js"]

    def test_empty(self):
        assert changed_files_from_diff("") == []
