"""Client for a note store reachable over HTTP (Obsidian Local REST API style)."""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..core.errors import NoteError
from ..core.ports import NoteStore
from ..core.utils import normalize_note_path
from .exclusions import Exclusions

logger = logging.getLogger(__name__)


class RestNoteStore(NoteStore):
    """
    GET/PUT/DELETE /vault/{path} for notes, GET /vault/{folder}/ for listings
    ({"files": [...]}, sub-folders end in "/"), GET /search?query= for search.

    HTTP and transport failures surface as NoteError("io") so a caller can
    fall back to another store; a 404 on a note is NoteError("not_found").
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 10.0,
        exclusions: Exclusions | None = None,
        client: httpx.Client | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.exclusions = exclusions if exclusions is not None else Exclusions()
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if client is None:
            client = httpx.Client(base_url=self.base_url, headers=headers, timeout=timeout)
        else:
            client.headers.update(headers)
        self.client = client

    def close(self) -> None:
        self.client.close()

    def _url(self, path: str, folder: bool = False) -> str:
        rel = normalize_note_path(path)
        if not rel:
            return "/vault/"
        return "/vault/" + quote(rel, safe="/") + ("/" if folder else "")

    def _request(self, method: str, url: str, target: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise NoteError("io", f"API request failed: {e}", operation=method.lower(), target=target) from e
        if response.status_code == 404:
            raise NoteError("not_found", f"Note not found: {target}", operation=method.lower(), target=target)
        if response.is_error:
            raise NoteError(
                "io",
                f"API request failed with status {response.status_code}",
                operation=method.lower(),
                target=target,
            )
        return response

    def _guard(self, path: str) -> None:
        if self.exclusions.is_excluded(path):
            raise NoteError("not_found", f"Note not found: {path}", target=path)

    def list_paths(self, folder: str = "", recursive: bool = True) -> list[str]:
        folder = normalize_note_path(folder).rstrip("/")
        response = self._request("GET", self._url(folder, folder=True), folder or "/")
        try:
            items = response.json().get("files", [])
        except (ValueError, AttributeError) as e:
            raise NoteError("io", f"Unexpected listing for {folder or '/'}: {e}", target=folder) from e

        out: list[str] = []
        for item in items:
            full = f"{folder}/{item}" if folder else item
            if self.exclusions.is_excluded(full.rstrip("/")):
                continue
            if item.endswith("/"):
                if recursive:
                    out.extend(self.list_paths(full.rstrip("/"), recursive))
            else:
                out.append(full)
        return out

    def exists(self, path: str) -> bool:
        try:
            self.read(path)
        except NoteError as e:
            if e.kind == "not_found":
                return False
            raise
        return True

    def read(self, path: str) -> str:
        self._guard(path)
        response = self._request(
            "GET", self._url(path), path, headers={"Accept": "text/markdown"}
        )
        return response.text

    def write(self, path: str, text: str) -> None:
        self._guard(path)
        self._request(
            "PUT",
            self._url(path),
            path,
            content=text.encode("utf-8"),
            headers={"Content-Type": "text/markdown"},
        )

    def delete(self, path: str) -> None:
        self._guard(path)
        self._request("DELETE", self._url(path), path)

    def move(self, src: str, dst: str) -> None:
        # no native move: copy, then delete the source
        if self.exists(dst):
            raise NoteError("validation", f"Destination already exists: {dst}", target=dst)
        content = self.read(src)
        self.write(dst, content)
        self.delete(src)

    def _no_folders(self, folder: str) -> None:
        raise NoteError(
            "io",
            "Folder operations are not supported by the REST API",
            operation="folder",
            target=folder,
        )

    def create_folder(self, folder: str) -> None:
        self._no_folders(folder)

    def rename_folder(self, folder: str, new_folder: str) -> None:
        self._no_folders(folder)

    def delete_folder(self, folder: str) -> None:
        self._no_folders(folder)

    def search(self, query: str) -> list[dict[str, Any]]:
        response = self._request("GET", "/search", query, params={"query": query})
        try:
            data = response.json()
        except ValueError as e:
            raise NoteError("io", f"Unexpected search response: {e}", target=query) from e
        results = data.get("results", data) if isinstance(data, dict) else data
        out = []
        for result in results or []:
            path = result.get("path") or result.get("filename")
            if not path or self.exclusions.is_excluded(path):
                continue
            out.append({
                "path": path,
                "score": result.get("score", 0),
                "matches": result.get("matches", []),
            })
        return out


class FallbackNoteStore(NoteStore):
    """
    Try `primary` (usually the REST API) first and fall back to `secondary`
    (the filesystem) when the primary is unreachable. Reads also fall back on
    not_found, since the API may lag behind the files on disk.
    """

    def __init__(self, primary: NoteStore, secondary: NoteStore):
        self.primary = primary
        self.secondary = secondary

    def _call(self, name: str, *args: Any, fallback_on: tuple[str, ...] = ("io",)) -> Any:
        try:
            return getattr(self.primary, name)(*args)
        except NoteError as e:
            if e.kind not in fallback_on:
                raise
            logger.warning("API request failed, falling back to file system: %s", e)
            return getattr(self.secondary, name)(*args)

    def list_paths(self, folder: str = "", recursive: bool = True) -> list[str]:
        return self._call("list_paths", folder, recursive)

    def exists(self, path: str) -> bool:
        return self._call("exists", path)

    def read(self, path: str) -> str:
        return self._call("read", path, fallback_on=("io", "not_found"))

    def write(self, path: str, text: str) -> None:
        self._call("write", path, text)

    def delete(self, path: str) -> None:
        self._call("delete", path)

    def move(self, src: str, dst: str) -> None:
        self._call("move", src, dst)

    def create_folder(self, folder: str) -> None:
        self._call("create_folder", folder)

    def rename_folder(self, folder: str, new_folder: str) -> None:
        self._call("rename_folder", folder, new_folder)

    def delete_folder(self, folder: str) -> None:
        self._call("delete_folder", folder)

    def search(self, query: str) -> list[dict[str, Any]]:
        return self._call("search", query)
