from typing import Any

import yaml

from ..core.errors import NoteError
from ..core.ports import FrontmatterCodec

DELIMITER = "---"
CLOSERS = ("---", "...")


def split_frontmatter(text: str) -> tuple[str | None, str]:
    """
    Split a note into its raw YAML header and body.

    The header must open on the very first line; returns (None, text) when
    there is no complete header.

    >>> split_frontmatter("---\\na: 1\\n---\\nbody")
    ('a: 1', 'body')
    >>> split_frontmatter("body")
    (None, 'body')
    """
    lines = text.split("\n")
    if not lines or lines[0].rstrip() != DELIMITER:
        return None, text
    for i in range(1, len(lines)):
        if lines[i].rstrip() in CLOSERS:
            return "\n".join(lines[1:i]), "\n".join(lines[i + 1 :])
    return None, text


class YamlFrontmatter(FrontmatterCodec):
    """Obsidian-style `---` YAML properties at the top of a note."""

    def decode(self, text: str) -> tuple[dict[str, Any], str]:
        header, body = split_frontmatter(text)
        if header is None:
            return {}, text
        try:
            meta = yaml.safe_load(header)
        except yaml.YAMLError as e:
            raise NoteError("validation", f"Invalid frontmatter: {e}", operation="frontmatter") from e
        # A scalar or list header carries no properties
        return (meta if isinstance(meta, dict) else {}), body

    def encode(self, meta: dict[str, Any]) -> str:
        if not meta:
            return ""
        dumped = yaml.safe_dump(meta, sort_keys=False, allow_unicode=True)
        return f"{DELIMITER}\n{dumped}{DELIMITER}\n"

    def merge(self, text: str, meta: dict[str, Any]) -> str:
        """Overlay meta on the note's existing properties and re-render the header."""
        existing, body = self.decode(text)
        return self.encode({**existing, **meta}) + body
