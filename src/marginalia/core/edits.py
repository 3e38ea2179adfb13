"""Sequential edit engine: validate a batch, then apply it to an in-memory buffer."""

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Literal

from .anchors import insertion_line, resolve_target
from .errors import NoteError
from .model import (
    POSITIONS,
    BlockTarget,
    EditOperation,
    HeadingTarget,
    InsertEdit,
    ReplaceEdit,
    StructuralElement,
)
from .ports import ParserStrategy
from .utils import normalize_line_endings

logger = logging.getLogger(__name__)

ApplierState = Literal["idle", "validating", "mutating", "success", "failed"]

_INDENT_RE = re.compile(r"^(\s*)")


def _validation_error(problems: list[str], target: str) -> NoteError:
    return NoteError(
        "validation",
        f"Invalid edit operation: {'; '.join(problems)}",
        operation="validation",
        target=target,
    )


def parse_edit(raw: Mapping[str, Any] | EditOperation, index: int = 0) -> EditOperation:
    """
    Turn one wire-format edit into a ReplaceEdit or InsertEdit.

    Wire keys: oldText, newText, mode, heading, blockId, content, position, level.
    Without an explicit mode the edit is a replace when both oldText and
    newText are present, otherwise an insert. All problems are reported at
    once in a single NoteError("validation").
    """
    if isinstance(raw, (ReplaceEdit, InsertEdit)):
        return raw
    if not isinstance(raw, Mapping):
        raise _validation_error(["Edit must be an object"], f"edits[{index}]")

    old_text = raw.get("oldText")
    new_text = raw.get("newText")
    mode = raw.get("mode") or ("replace" if old_text and new_text else "insert")
    problems: list[str] = []

    if mode == "replace":
        if not old_text or not isinstance(old_text, str):
            problems.append("Replace mode requires oldText")
        if not new_text or not isinstance(new_text, str):
            problems.append("Replace mode requires newText")
        if problems:
            raise _validation_error(problems, f"edits[{index}]")
        return ReplaceEdit(old_text=old_text, new_text=new_text)

    if mode != "insert":
        raise _validation_error([f"Unknown mode: {mode}"], f"edits[{index}]")

    heading = raw.get("heading")
    block_id = raw.get("blockId")
    content = raw.get("content")
    position = raw.get("position") or "after"
    level = raw.get("level")

    if not heading and not block_id:
        problems.append("Insert mode requires either heading or blockId")
    if heading and block_id:
        problems.append("Insert mode cannot have both heading and blockId")
    if heading is not None and not isinstance(heading, str):
        problems.append("heading must be a string")
    if block_id is not None and not isinstance(block_id, str):
        problems.append("blockId must be a string")
    if not content or not isinstance(content, str):
        problems.append("Insert mode requires content")
    if level is not None and (
        isinstance(level, bool) or not isinstance(level, int) or not 1 <= level <= 6
    ):
        problems.append("Heading level must be between 1 and 6")
    if position not in POSITIONS:
        problems.append("Position must be one of: before, after, append, prepend")

    if problems:
        raise _validation_error(problems, str(heading or block_id or f"edits[{index}]"))

    if heading:
        target = HeadingTarget(name=heading, level=level)
    else:
        target = BlockTarget(id=block_id.lstrip("^"))
    return InsertEdit(target=target, content=content, position=position)


def parse_edits(raw_edits: Iterable[Mapping[str, Any] | EditOperation]) -> list[EditOperation]:
    if isinstance(raw_edits, (str, bytes, Mapping)):
        raise _validation_error(["Edits must be an array"], "edits")
    return [parse_edit(raw, i) for i, raw in enumerate(raw_edits)]


def replace_text(text: str, edit: ReplaceEdit) -> str:
    """
    Replace the first occurrence of edit.old_text.

    Falls back to a whitespace-insensitive line-window search; the matched
    window's indentation is carried over to the replacement line by line.
    Raises NoteError("replace_not_found") when neither finds anything.
    """
    if edit.old_text in text:
        return text.replace(edit.old_text, edit.new_text, 1)

    lines = text.split("\n")
    old_lines = edit.old_text.split("\n")
    new_lines = edit.new_text.split("\n")
    window = len(old_lines)

    for start in range(len(lines) - window + 1):
        indents: list[str] = []
        for offset, old_line in enumerate(old_lines):
            line = lines[start + offset]
            if line.strip() != old_line.strip():
                break
            indents.append(_INDENT_RE.match(line).group(1))
        else:
            replacement = [
                indents[i] + line.lstrip() if i < len(indents) else line
                for i, line in enumerate(new_lines)
            ]
            lines[start : start + window] = replacement
            return "\n".join(lines)

    raise NoteError(
        "replace_not_found",
        f'Could not find matching text for edit: "{edit.old_text[:50]}..."',
        operation="replace",
        target=edit.old_text[:50],
    )


def insert_lines(lines: Sequence[str], line: int, content: str) -> list[str]:
    """Splice content (split on newlines) into lines at a clamped index."""
    index = max(0, min(line, len(lines)))
    result = list(lines)
    result[index:index] = content.split("\n")
    return result


class EditApplier:
    """
    Applies an ordered edit batch to one document.

    idle -> validating -> mutating -> success | failed

    Every edit is validated before the first mutation. Edits run strictly in
    order; after each one the structural model is rebuilt from the buffer so
    the next edit sees current line numbers. Any failure leaves the caller's
    text untouched and raises.
    """

    def __init__(self, parser: ParserStrategy | None = None):
        if parser is None:
            from ..adapters.markdown_parser import MarkdownParser

            parser = MarkdownParser()
        self.parser = parser
        self.state: ApplierState = "idle"
        self.buffer = ""
        self.elements: list[StructuralElement] = []

    def run(self, text: str, raw_edits: Iterable[Mapping[str, Any] | EditOperation]) -> str:
        self.state = "validating"
        try:
            edits = parse_edits(raw_edits)
        except NoteError:
            self.state = "failed"
            raise

        self.state = "mutating"
        self.buffer = normalize_line_endings(text)
        self.elements = self.parser.parse(self.buffer)
        try:
            for step, edit in enumerate(edits):
                if self._apply(edit):
                    self.elements = self.parser.parse(self.buffer)
                    logger.debug("edit %d applied (%s)", step, type(edit).__name__)
        except NoteError:
            self.state = "failed"
            raise

        self.state = "success"
        return self.buffer

    def _apply(self, edit: EditOperation) -> bool:
        if isinstance(edit, ReplaceEdit):
            if edit.old_text == edit.new_text:
                return False
            self.buffer = replace_text(self.buffer, edit)
            return True

        index = resolve_target(self.elements, edit.target)
        line = insertion_line(self.elements, index, edit.position)
        self.buffer = "\n".join(insert_lines(self.buffer.split("\n"), line, edit.content))
        return True


def apply_edits(
    text: str,
    raw_edits: Iterable[Mapping[str, Any] | EditOperation],
    parser: ParserStrategy | None = None,
) -> str:
    """Apply an edit batch to text and return the new text."""
    return EditApplier(parser).run(text, raw_edits)
