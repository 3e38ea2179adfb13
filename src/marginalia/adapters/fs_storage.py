import shutil
from pathlib import Path
from typing import Any

from ..core.errors import NoteError
from ..core.ports import NoteStore
from ..core.utils import normalize_note_path
from .exclusions import Exclusions


class FsStorage(NoteStore):
    """
    Vault on the local filesystem. Paths are relative to `root`; excluded
    paths behave as if they did not exist.
    """

    def __init__(self, root: Path, exclusions: Exclusions | None = None):
        self.root = root
        self.exclusions = exclusions if exclusions is not None else Exclusions()

    def _path(self, path: str) -> Path:
        rel = normalize_note_path(path)
        if rel == ".." or rel.startswith("../"):
            raise NoteError("validation", f"Path escapes the vault: {path}", target=path)
        return self.root / rel if rel else self.root

    def _check(self, path: str, verb: str = "Note not found") -> Path:
        if self.exclusions.is_excluded(path):
            raise NoteError("not_found", f"{verb}: {path}", target=path)
        return self._path(path)

    def _rel(self, p: Path) -> str:
        return p.relative_to(self.root).as_posix()

    def list_paths(self, folder: str = "", recursive: bool = True) -> list[str]:
        base = self._path(folder)
        if not base.is_dir():
            return []
        out: list[str] = []
        stack = [base]
        while stack:
            current = stack.pop()
            for p in sorted(current.iterdir()):
                rel = self._rel(p)
                if self.exclusions.is_excluded(rel):
                    continue
                if p.is_dir():
                    if recursive:
                        stack.append(p)
                else:
                    out.append(rel)
        return sorted(out)

    def exists(self, path: str) -> bool:
        if self.exclusions.is_excluded(path):
            return False
        return self._path(path).is_file()

    def read(self, path: str) -> str:
        p = self._check(path)
        if not p.is_file():
            raise NoteError("not_found", f"Note not found: {path}", target=path)
        try:
            return p.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise NoteError("io", f"Failed to read file {path}: {e}", operation="read", target=path) from e

    def write(self, path: str, text: str) -> None:
        p = self._check(path, "Cannot write to excluded path")
        # Atomic write via temp file
        tmp_path = p.with_name(p.name + ".tmp")
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(text, encoding="utf-8")
            tmp_path.replace(p)
        except (OSError, ValueError) as e:
            if tmp_path.exists():
                tmp_path.unlink()
            raise NoteError("io", f"Failed to write file {path}: {e}", operation="write", target=path) from e

    def delete(self, path: str) -> None:
        p = self._check(path)
        if not p.is_file():
            raise NoteError("not_found", f"Note not found: {path}", target=path)
        try:
            p.unlink()
            self._prune_empty(p.parent)
        except OSError as e:
            raise NoteError("io", f"Failed to delete {path}: {e}", operation="delete", target=path) from e

    def move(self, src: str, dst: str) -> None:
        source = self._check(src, "Source note not found")
        dest = self._check(dst, "Cannot move note to excluded path")
        if not source.is_file():
            raise NoteError("not_found", f"Source note not found: {src}", target=src)
        if dest.exists():
            raise NoteError("validation", f"Destination already exists: {dst}", target=dst)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            source.replace(dest)
        except OSError as e:
            raise NoteError("io", f"Failed to move file: {e}", operation="move", target=src) from e
        self._prune_empty(source.parent)

    def create_folder(self, folder: str) -> None:
        p = self._check(folder, "Cannot create excluded folder")
        try:
            p.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise NoteError("io", f"Failed to create folder {folder}: {e}", target=folder) from e

    def rename_folder(self, folder: str, new_folder: str) -> None:
        source = self._check(folder, "Folder not found")
        dest = self._check(new_folder, "Cannot move/rename to excluded path")
        if not source.is_dir():
            raise NoteError("not_found", f"Folder not found: {folder}", target=folder)
        if dest.exists():
            raise NoteError("validation", f"Destination folder already exists: {new_folder}", target=new_folder)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            source.rename(dest)
        except OSError as e:
            raise NoteError("io", f"Failed to rename folder {folder}: {e}", target=folder) from e

    def delete_folder(self, folder: str) -> None:
        p = self._check(folder, "Folder not found")
        if p == self.root or not p.is_dir():
            raise NoteError("not_found", f"Folder not found: {folder}", target=folder)
        try:
            shutil.rmtree(p)
        except OSError as e:
            raise NoteError("io", f"Failed to delete folder {folder}: {e}", target=folder) from e

    def search(self, query: str) -> list[dict[str, Any]]:
        """Filename hits score 2, content hits 1; unreadable files match by name only."""
        needle = query.lower()
        results: list[dict[str, Any]] = []
        for rel in self.list_paths():
            by_name = needle in rel.lower()
            line = -1
            try:
                content = self._path(rel).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                content = ""
            for i, text_line in enumerate(content.split("\n")):
                if needle in text_line.lower():
                    line = i
                    break
            if not by_name and line < 0:
                continue
            results.append({
                "path": rel,
                "score": 2 if by_name else 1,
                "matches": [{"line": line, "type": "filename" if by_name else "content"}],
            })
        results.sort(key=lambda r: r["score"], reverse=True)
        return results

    def _prune_empty(self, folder: Path) -> None:
        # never removes the vault root itself
        if folder != self.root and folder.is_dir() and not any(folder.iterdir()):
            folder.rmdir()
