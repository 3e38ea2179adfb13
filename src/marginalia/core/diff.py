import difflib

from .utils import normalize_line_endings


def unified_diff(original: str, modified: str, path: str) -> str:
    """
    Unified diff of a note before and after an edit batch.

    Both sides are labelled with the note path. Empty string when nothing changed.
    """
    before = normalize_line_endings(original)
    after = normalize_line_endings(modified)
    if before == after:
        return ""
    lines = difflib.unified_diff(
        before.splitlines(keepends=True),
        after.splitlines(keepends=True),
        fromfile=path,
        tofile=path,
        fromfiledate="original",
        tofiledate="modified",
    )
    out = []
    for line in lines:
        if not line.endswith("\n"):
            # difflib leaves the last line bare when the text has no final newline
            line += "\n\\ No newline at end of file\n"
        out.append(line)
    return "".join(out)
