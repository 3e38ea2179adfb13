"""Utility functions for marginalia."""

import posixpath
import re


def normalize_line_endings(text: str) -> str:
    """Convert CRLF and lone CR line endings to LF."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def normalize_heading(text: str) -> str:
    """
    Loosen heading text for the last matching tier.

    - Lowercase
    - Remove everything except word characters and whitespace
    - Collapse whitespace runs to a single space

    Examples:
        >>> normalize_heading("Q&A: Open  Questions")
        'qa open questions'
    """
    text = text.lower()
    text = re.sub(r"[^\w\s]", "", text)
    return re.sub(r"\s+", " ", text)


def normalize_note_path(path: str) -> str:
    """Vault-relative path with forward slashes and no leading slash."""
    path = path.replace("\\", "/").strip()
    path = posixpath.normpath(path) if path else ""
    if path == ".":
        return ""
    return path.lstrip("/")


def note_stem(path: str) -> str:
    """File name without folder and extension: "a/Project Plan.md" -> "Project Plan"."""
    name = posixpath.basename(path)
    stem, _ext = posixpath.splitext(name)
    return stem
