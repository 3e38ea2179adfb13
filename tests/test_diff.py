"""Tests for dry-run diff output."""

from marginalia.core.diff import unified_diff


def test_no_changes_is_empty():
    assert unified_diff("same\n", "same\n", "a.md") == ""


def test_line_endings_do_not_count_as_changes():
    assert unified_diff("a\r\nb\r\n", "a\nb\n", "a.md") == ""


def test_headers_use_note_path():
    diff = unified_diff("one\ntwo\n", "one\n2\n", "notes/x.md")
    lines = diff.splitlines()
    assert lines[0].startswith("--- notes/x.md")
    assert lines[1].startswith("+++ notes/x.md")
    assert "-two" in lines
    assert "+2" in lines


def test_missing_final_newline_marker():
    diff = unified_diff("a\nb", "a\nc", "n.md")
    assert "\\ No newline at end of file" in diff
    assert diff.endswith("\n")
