from typing import Protocol, Any
from .model import NotePath, StructuralElement


class NoteStore(Protocol):
    """
    Where note text lives. Paths are vault-relative with forward slashes.

    read() raises NoteError("not_found"); write() raises NoteError("io") and
    must look atomic to the caller.
    """

    def list_paths(self, folder: str = "", recursive: bool = True) -> list[NotePath]:
        pass

    def read(self, path: NotePath) -> str:
        pass

    def write(self, path: NotePath, text: str) -> None:
        pass

    def exists(self, path: NotePath) -> bool:
        pass

    def delete(self, path: NotePath) -> None:
        pass

    def move(self, src: NotePath, dst: NotePath) -> None:
        pass

    def create_folder(self, folder: str) -> None:
        pass

    def rename_folder(self, folder: str, new_folder: str) -> None:
        pass

    def delete_folder(self, folder: str) -> None:
        pass

    def search(self, query: str) -> list[dict[str, Any]]:
        pass


class ParserStrategy(Protocol):
    """
    Parse Markdown into structural elements. The result is derived state:
    cheap to rebuild, never patched in place.
    """

    def parse(self, text: str) -> list[StructuralElement]:
        pass


class FrontmatterCodec(Protocol):
    """
    Render optional frontmatter without enforcing schema.
    """

    def decode(self, text: str) -> tuple[dict[str, Any], str]:
        pass

    def encode(self, meta: dict[str, Any]) -> str:
        pass

    def merge(self, text: str, meta: dict[str, Any]) -> str:
        pass

