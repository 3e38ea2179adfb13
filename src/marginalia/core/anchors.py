"""Target resolution and insertion-line arithmetic over structural elements."""

from collections.abc import Callable, Sequence

from .errors import NoteError
from .model import BlockTarget, HeadingTarget, Position, StructuralElement, Target
from .utils import normalize_heading


def find_heading(
    elements: Sequence[StructuralElement], name: str, level: int | None = None
) -> int:
    """
    Find a heading element by its text.

    Tiers, first hit wins (each restricted to `level` when given):
    1. exact match on lower-cased, trimmed text
    2. heading text contains the name
    3. same containment after normalize_heading() on both sides

    Returns the element index; raises NoteError("target_not_found").
    """
    wanted = name.lower().strip()
    loose = normalize_heading(wanted)

    tiers: list[Callable[[str], bool]] = [
        lambda text: text.lower().strip() == wanted,
        lambda text: wanted in text.lower(),
        lambda text: loose in normalize_heading(text),
    ]
    for matches in tiers:
        for i, element in enumerate(elements):
            if element.kind != "heading":
                continue
            if level is not None and element.level != level:
                continue
            if matches(element.text):
                return i

    suffix = f" (level {level})" if level is not None else ""
    raise NoteError(
        "target_not_found",
        f"Heading not found: {name}{suffix}",
        operation="heading_search",
        target=name,
    )


def find_block(elements: Sequence[StructuralElement], block_id: str) -> int:
    """Find the element carrying ^block_id; raises NoteError("target_not_found")."""
    for i, element in enumerate(elements):
        if element.block_id == block_id:
            return i
    raise NoteError(
        "target_not_found",
        f"Block ID not found: {block_id}",
        operation="block_search",
        target=block_id,
    )


def resolve_target(elements: Sequence[StructuralElement], target: Target) -> int:
    if isinstance(target, HeadingTarget):
        return find_heading(elements, target.name, target.level)
    if isinstance(target, BlockTarget):
        return find_block(elements, target.id)
    raise TypeError(f"Unknown target type: {type(target).__name__}")


def section_end(elements: Sequence[StructuralElement], index: int) -> int:
    """
    Line where the section opened by elements[index] ends (exclusive).

    That is the start of the next heading of the same or higher level, or one
    past the last element when the section runs to the end of the document.
    Non-heading elements end right after themselves.
    """
    element = elements[index]
    if element.kind != "heading" or element.level is None:
        return element.end_line + 1

    for following in elements[index + 1 :]:
        if following.kind == "heading" and following.level is not None:
            if following.level <= element.level:
                return following.start_line

    return elements[-1].end_line + 1


def insertion_line(
    elements: Sequence[StructuralElement], index: int, position: Position
) -> int:
    """
    Absolute line index at which inserted lines start.

    - before:  the target's first line
    - after:   the line below the target (for a heading: above its body)
    - prepend: headings -> first body line; other elements -> their first line
    - append:  headings -> end of section; other elements -> the line below

    For block targets append and after therefore resolve to the same line.
    """
    element = elements[index]
    if position == "before":
        return element.start_line
    if position == "after":
        return element.end_line + 1
    if position == "prepend":
        if element.kind == "heading":
            return element.end_line + 1
        return element.start_line
    if position == "append":
        return section_end(elements, index)
    raise NoteError(
        "validation",
        f"Position must be one of: before, after, append, prepend (got {position!r})",
        operation="validation",
        target=str(position),
    )
