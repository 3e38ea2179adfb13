"""Tests for edit parsing and the sequential edit applier."""

import pytest

from marginalia.adapters.markdown_parser import parse_elements
from marginalia.core.edits import (
    EditApplier,
    apply_edits,
    insert_lines,
    parse_edit,
    parse_edits,
    replace_text,
)
from marginalia.core.errors import NoteError
from marginalia.core.model import BlockTarget, HeadingTarget, InsertEdit, ReplaceEdit

NOTE = """# Plan

## Goals
- ship it

## Risks
Too slow.

# Log
Started."""


def test_mode_inferred_as_replace():
    """oldText plus newText without a mode is a replace."""
    edit = parse_edit({"oldText": "a", "newText": "b"})
    assert edit == ReplaceEdit(old_text="a", new_text="b")


def test_mode_inferred_as_insert():
    edit = parse_edit({"heading": "Goals", "content": "- more", "level": 2})
    assert edit == InsertEdit(
        target=HeadingTarget(name="Goals", level=2), content="- more", position="after"
    )


def test_block_id_caret_is_stripped():
    edit = parse_edit({"blockId": "^abc", "content": "x", "position": "before"})
    assert isinstance(edit, InsertEdit)
    assert edit.target == BlockTarget(id="abc")
    assert edit.position == "before"


def test_insert_validation_collects_all_problems():
    """Every problem is listed in one message."""
    with pytest.raises(NoteError) as exc:
        parse_edit({"mode": "insert", "position": "sideways", "level": 9})
    err = exc.value
    assert err.kind == "validation"
    assert err.message.startswith("Invalid edit operation: ")
    assert "heading or blockId" in err.message
    assert "requires content" in err.message
    assert "level" in err.message
    assert "Position" in err.message


def test_insert_rejects_heading_and_block():
    with pytest.raises(NoteError) as exc:
        parse_edit({"heading": "A", "blockId": "b", "content": "x"})
    assert "cannot have both" in exc.value.message


def test_boolean_level_rejected():
    with pytest.raises(NoteError):
        parse_edit({"heading": "A", "content": "x", "level": True})


def test_explicit_replace_requires_both_texts():
    with pytest.raises(NoteError) as exc:
        parse_edit({"mode": "replace", "oldText": "a"})
    assert "newText" in exc.value.message


def test_unknown_mode():
    with pytest.raises(NoteError):
        parse_edit({"mode": "delete", "oldText": "a", "newText": "b"})


def test_edits_must_be_a_list():
    with pytest.raises(NoteError):
        parse_edits({"oldText": "a", "newText": "b"})
    with pytest.raises(NoteError):
        parse_edits("not a list")


def test_replace_exact_first_occurrence_only():
    edit = ReplaceEdit(old_text="cat", new_text="dog")
    assert replace_text("cat cat", edit) == "dog cat"


def test_replace_line_window_keeps_indentation():
    """Whitespace-insensitive match re-indents replacement lines from the matched window."""
    text = "def f():\n    a = 1\n    b = 2\nrest"
    edit = ReplaceEdit(old_text="a = 1\n  b = 2", new_text="a = 10\nb = 20\nc = 30")
    result = replace_text(text, edit)
    assert result == "def f():\n    a = 10\n    b = 20\nc = 30\nrest"


def test_replace_not_found():
    with pytest.raises(NoteError) as exc:
        replace_text("hello", ReplaceEdit(old_text="x" * 80, new_text="y"))
    assert exc.value.kind == "replace_not_found"
    assert "x" * 50 in exc.value.message
    assert "x" * 51 not in exc.value.message


def test_insert_lines_clamps_index():
    assert insert_lines(["a"], 99, "b\nc") == ["a", "b", "c"]
    assert insert_lines(["a"], -3, "z") == ["z", "a"]


def test_insert_after_heading():
    result = apply_edits(NOTE, [{"heading": "Goals", "content": "Intro to goals."}])
    lines = result.split("\n")
    assert lines[lines.index("## Goals") + 1] == "Intro to goals."


def test_append_lands_before_next_sibling_heading():
    """Append puts content at the end of the section, right above the next heading."""
    result = apply_edits(NOTE, [{"heading": "Goals", "content": "- more", "position": "append"}])
    lines = result.split("\n")
    assert lines[lines.index("## Risks") - 1] == "- more"


def test_append_to_last_section():
    result = apply_edits(NOTE, [{"heading": "Log", "content": "Done.", "position": "append"}])
    assert result.endswith("Started.\nDone.")


def test_prepend_and_before():
    result = apply_edits(
        NOTE,
        [
            {"heading": "Risks", "content": "First risk.", "position": "prepend"},
            {"heading": "Risks", "content": "<!-- risks -->", "position": "before"},
        ],
    )
    lines = result.split("\n")
    i = lines.index("## Risks")
    assert lines[i - 1] == "<!-- risks -->"
    assert lines[i + 1] == "First risk."


def test_insert_relative_to_block():
    text = "Para one\n^p1\n\nPara two"
    result = apply_edits(text, [{"blockId": "p1", "content": "Inserted", "position": "after"}])
    assert result == "Para one\n^p1\nInserted\n\nPara two"


def test_edits_see_previous_edits():
    """The second edit targets a heading the first edit created."""
    result = apply_edits(
        NOTE,
        [
            {"heading": "Log", "content": "## Today", "position": "append"},
            {"heading": "Today", "content": "- fixed bug", "level": 2},
        ],
    )
    assert result.endswith("## Today\n- fixed bug")


def test_batch_failure_raises_without_partial_result():
    """A later failing edit aborts the whole batch."""
    applier = EditApplier()
    with pytest.raises(NoteError) as exc:
        applier.run(NOTE, [
            {"oldText": "Too slow.", "newText": "Fast enough."},
            {"heading": "Nowhere", "content": "x"},
        ])
    assert exc.value.kind == "target_not_found"
    assert applier.state == "failed"


def test_validation_happens_before_any_edit():
    applier = EditApplier()
    with pytest.raises(NoteError):
        applier.run(NOTE, [{"oldText": "Plan", "newText": "Roadmap"}, {"mode": "insert"}])
    assert applier.state == "failed"
    assert applier.buffer == ""


def test_applier_success_state():
    applier = EditApplier()
    applier.run(NOTE, [{"oldText": "Started.", "newText": "Begun."}])
    assert applier.state == "success"


def test_noop_replace_leaves_text():
    assert apply_edits(NOTE, [{"oldText": "Plan", "newText": "Plan"}]) == NOTE


def test_crlf_input_is_normalized():
    result = apply_edits("# A\r\nbody\r\n", [{"oldText": "body", "newText": "text"}])
    assert result == "# A\ntext\n"


def test_replace_round_trip():
    """Replacing X with Y and back restores the text."""
    there = apply_edits(NOTE, [{"oldText": "ship it", "newText": "ship it soon"}])
    back = apply_edits(there, [{"oldText": "ship it soon", "newText": "ship it"}])
    assert back == NOTE


def test_structure_covers_text_after_edits():
    """After a batch the parsed model still covers every non-blank line."""
    result = apply_edits(
        NOTE,
        [
            {"heading": "Goals", "content": "- extra\n- items", "position": "append"},
            {"heading": "Plan", "content": "Summary line.", "level": 1},
            {"oldText": "Too slow.", "newText": "Too slow.\nAnd costly."},
        ],
    )
    elements = parse_elements(result)
    covered = {n for e in elements for n in range(e.start_line, e.end_line + 1)}
    for i, line in enumerate(result.split("\n")):
        if line.strip():
            assert i in covered


def test_append_goes_directly_above_next_heading():
    text = "# A\nline one\nline two\n# B\nb body"
    result = apply_edits(text, [{"heading": "A", "position": "append", "content": "X"}])
    assert result.split("\n")[3] == "X"
    assert result.split("\n")[4] == "# B"
