"""Vault exclusion list: built-in defaults plus the user's ignore filters."""

import json
import logging
import posixpath
from collections.abc import Iterable, Iterator
from pathlib import Path

from ..core.utils import normalize_note_path

logger = logging.getLogger(__name__)

DEFAULT_EXCLUSIONS = (".obsidian", ".git", ".DS_Store", ".trash")
ALWAYS_EXCLUDED_NAMES = (".DS_Store", ".git")


class Exclusions:
    """
    Exclusion entries are vault-relative. "archive/" excludes the folder and
    everything below it; "archive" excludes the exact path and its children.
    """

    def __init__(self, entries: Iterable[str] = DEFAULT_EXCLUSIONS):
        self.entries = [e.replace("\\", "/") for e in entries if e]

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def is_excluded(self, path: str) -> bool:
        normalized = normalize_note_path(path).rstrip("/")
        if posixpath.basename(normalized) in ALWAYS_EXCLUDED_NAMES:
            return True

        for entry in self.entries:
            if entry.endswith("/"):
                if normalized == entry[:-1] or normalized.startswith(entry):
                    return True
            elif normalized == entry or normalized.startswith(entry + "/"):
                return True
        return False


def load_exclusions(vault_root: Path, extra: Iterable[str] = ()) -> Exclusions:
    """
    Defaults + `userIgnoreFilters` from <vault>/.obsidian/app.json + extra.

    An unreadable or malformed app.json is logged and ignored.
    """
    entries = list(DEFAULT_EXCLUSIONS)
    app_json = vault_root / ".obsidian" / "app.json"
    if app_json.exists():
        try:
            data = json.loads(app_json.read_text(encoding="utf-8"))
            filters = data.get("userIgnoreFilters") if isinstance(data, dict) else None
            if isinstance(filters, list):
                entries.extend(f for f in filters if isinstance(f, str))
        except (OSError, ValueError) as e:
            logger.warning("Failed to load exclusions from %s: %s", app_json, e)
    entries.extend(extra)
    return Exclusions(entries)
