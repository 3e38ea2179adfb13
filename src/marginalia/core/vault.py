import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .backlinks import process_vault_backlinks
from .diff import unified_diff
from .edits import EditApplier, EditOperation
from .errors import NoteError
from .model import BacklinkOptions, BacklinkReport, EditResult, NotePath
from .ports import FrontmatterCodec, NoteStore, ParserStrategy
from .utils import normalize_line_endings, normalize_note_path

logger = logging.getLogger(__name__)


class Vault:
    """Note operations over a store: read, create, move, edit, link."""

    def __init__(self, store: NoteStore, parser: ParserStrategy, codec: FrontmatterCodec):
        self.store = store
        self.parser = parser
        self.codec = codec

    def list_notes(self, folder: str = "", recursive: bool = True) -> list[NotePath]:
        return self.store.list_paths(normalize_note_path(folder), recursive)

    def read_note(self, path: NotePath) -> str:
        return self.store.read(normalize_note_path(path))

    def read_many(self, paths: Iterable[NotePath]) -> dict[NotePath, dict[str, str]]:
        """Each path maps to {"content": ...} or {"error": ...}; one failure never sinks the rest."""
        out: dict[NotePath, dict[str, str]] = {}
        for path in paths:
            try:
                out[path] = {"content": self.read_note(path)}
            except NoteError as e:
                out[path] = {"error": str(e)}
        return out

    def create_note(self, path: NotePath, content: str = "", meta: dict[str, Any] | None = None) -> None:
        path = normalize_note_path(path)
        if not path:
            raise NoteError("validation", "Note path must not be empty", operation="create")
        if self.store.exists(path):
            raise NoteError("validation", f"Note already exists: {path}", operation="create", target=path)
        if meta:
            content = self.codec.merge(content, meta)
        self.store.write(path, content)

    def delete_note(self, path: NotePath) -> None:
        self.store.delete(normalize_note_path(path))

    def move_note(self, src: NotePath, dst: NotePath) -> None:
        self.store.move(normalize_note_path(src), normalize_note_path(dst))

    def create_folder(self, folder: str) -> None:
        self.store.create_folder(normalize_note_path(folder))

    def rename_folder(self, folder: str, new_folder: str) -> None:
        self.store.rename_folder(normalize_note_path(folder), normalize_note_path(new_folder))

    def delete_folder(self, folder: str) -> None:
        self.store.delete_folder(normalize_note_path(folder))

    def search(self, query: str) -> list[dict[str, Any]]:
        if not query.strip():
            raise NoteError("validation", "Search query must not be empty", operation="search")
        return self.store.search(query)

    def edit_note(
        self,
        path: NotePath,
        edits: Iterable[Mapping[str, Any] | EditOperation],
        dry_run: bool = False,
    ) -> EditResult:
        """
        Apply an edit batch to one note.

        The note is written once, after every edit succeeded, and only when
        the text actually changed. On a dry run the store is never touched
        beyond the initial read.
        """
        path = normalize_note_path(path)
        original = normalize_line_endings(self.store.read(path))
        modified = EditApplier(self.parser).run(original, edits)
        result = EditResult(path=path, original=original, modified=modified)
        if not dry_run and result.changed:
            self.store.write(path, modified)
            logger.info("Updated %s", path)
        return result

    def update_note(
        self,
        path: NotePath,
        edits: Iterable[Mapping[str, Any] | EditOperation],
        dry_run: bool = False,
    ) -> str:
        """Diff text on a dry run, a confirmation line otherwise."""
        result = self.edit_note(path, edits, dry_run=dry_run)
        if dry_run:
            return unified_diff(result.original, result.modified, result.path)
        return f"File {result.path} updated successfully"

    async def auto_backlink(self, options: BacklinkOptions | None = None) -> BacklinkReport:
        return await process_vault_backlinks(self.store, options)
