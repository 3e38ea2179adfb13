import re
from dataclasses import dataclass, field

from ..core.model import StructuralElement
from ..core.ports import ParserStrategy

HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
HEADING_ID_RE = re.compile(r"^(.+?)\s*\^([A-Za-z0-9_-]+)$")
BLOCK_ID_LINE_RE = re.compile(r"^\s*\^([A-Za-z0-9_-]+)\s*$")
LIST_ITEM_RE = re.compile(r"^(\s*)([-*+]|\d+\.)\s+(.+)$")
FENCES = ("```", "~~~")


@dataclass
class _Open:
    kind: str
    start_line: int
    end_line: int
    lines: list[str] = field(default_factory=list)
    fence: str = ""

    def add(self, line: str, i: int) -> None:
        self.lines.append(line)
        self.end_line = i

    def close(self) -> StructuralElement:
        return StructuralElement(
            kind=self.kind,  # type: ignore[arg-type]
            text="\n".join(self.lines),
            start_line=self.start_line,
            end_line=self.end_line,
        )


class MarkdownParser(ParserStrategy):
    """
    Line-oriented structural parser.

    Produces headings, paragraphs, list blocks and fenced code blocks with
    0-based inclusive line spans. Input must already use "\\n" line endings.
    """

    def parse(self, text: str) -> list[StructuralElement]:
        elements: list[StructuralElement] = []
        if not text:
            return elements

        lines = text.split("\n")
        current: _Open | None = None

        def flush() -> None:
            nonlocal current
            if current is not None:
                elements.append(current.close())
                current = None

        for i, line in enumerate(lines):
            stripped = line.strip()

            # Fenced code: everything up to the matching fence is one element
            if current is not None and current.kind == "code":
                current.add(line, i)
                if stripped.startswith(current.fence):
                    flush()
                continue

            if stripped.startswith(FENCES):
                flush()
                current = _Open(kind="code", start_line=i, end_line=i, fence=stripped[:3])
                current.lines.append(line)
                continue

            heading_match = HEADING_RE.match(line)
            if heading_match:
                flush()
                raw_text = heading_match.group(2)
                id_match = HEADING_ID_RE.match(raw_text)
                if id_match:
                    heading_text = id_match.group(1).strip()
                    block_id = id_match.group(2)
                else:
                    heading_text = raw_text.strip()
                    block_id = None
                elements.append(
                    StructuralElement(
                        kind="heading",
                        text=heading_text,
                        start_line=i,
                        end_line=i,
                        level=len(heading_match.group(1)),
                        block_id=block_id,
                    )
                )
                continue

            id_line = BLOCK_ID_LINE_RE.match(line)
            if id_line:
                if current is not None and current.kind == "paragraph":
                    flush()
                if current is None:
                    last = elements[-1] if elements else None
                    if last is not None and last.kind == "paragraph" and last.block_id is None:
                        elements[-1] = StructuralElement(
                            kind=last.kind,
                            text=last.text,
                            start_line=last.start_line,
                            end_line=i,
                            block_id=id_line.group(1),
                        )
                else:
                    # Inside an open list block the id line is a continuation line
                    current.add(line, i)
                continue

            if not stripped:
                flush()
                continue

            if LIST_ITEM_RE.match(line):
                if current is None or current.kind != "list":
                    flush()
                    current = _Open(kind="list", start_line=i, end_line=i)
                current.add(line, i)
                continue

            if current is None:
                current = _Open(kind="paragraph", start_line=i, end_line=i)
            current.add(line, i)

        flush()
        return elements


def parse_elements(text: str) -> list[StructuralElement]:
    """Parse text with the default parser."""
    return MarkdownParser().parse(text)
