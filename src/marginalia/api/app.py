"""FastAPI application for the marginalia local JSON API."""

import secrets
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .. import __version__
from ..core.backlinks import backlink_options_from_wire
from ..core.errors import NoteError

STATUS_BY_KIND = {
    "validation": 400,
    "not_found": 404,
    "target_not_found": 422,
    "replace_not_found": 422,
    "io": 500,
}


def create_app(runtime: Any, token: str | None = None, enable_cors: bool = False) -> FastAPI:
    """
    Create FastAPI application with runtime injected.

    Args:
        runtime: Runtime instance with vault and config
        token: Bearer token for authentication (None to disable auth)
        enable_cors: Enable CORS middleware

    Returns:
        FastAPI application instance
    """
    app = FastAPI(
        title="Marginalia API",
        description="Local JSON API for a Markdown vault",
        version=__version__,
        docs_url="/docs" if token is None else None,
        redoc_url="/redoc" if token is None else None,
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    if token:
        security_scheme = HTTPBearer(auto_error=False)

        async def verify_token(
            credentials: HTTPAuthorizationCredentials | None = Security(security_scheme),  # noqa: B008
        ) -> None:
            """Verify bearer token."""
            if credentials is None or credentials.credentials != token:
                raise HTTPException(status_code=401, detail="Invalid or missing token")
    else:

        async def verify_token() -> None:
            """No-op when auth is disabled."""
            return None

    @app.exception_handler(NoteError)
    async def note_error(request: Request, exc: NoteError) -> JSONResponse:
        return JSONResponse(
            status_code=STATUS_BY_KIND.get(exc.kind, 500),
            content={
                "error": exc.kind,
                "detail": str(exc),
                "operation": exc.operation,
                "target": exc.target,
            },
        )

    vault = runtime.vault

    @app.get("/health")
    async def health(auth: None = Depends(verify_token)) -> dict[str, Any]:
        """Health check endpoint."""
        return {"status": "ok", "version": __version__}

    @app.get("/notes")
    async def list_notes(
        folder: str = Query("", description="Folder to list, vault root when empty"),
        recursive: bool = Query(True, description="Descend into sub-folders"),
        auth: None = Depends(verify_token),
    ) -> dict[str, Any]:
        """List note paths."""
        return {"files": vault.list_notes(folder, recursive)}

    @app.post("/notes/move")
    async def move_note(
        payload: dict[str, Any] = Body(...),  # noqa: B008
        auth: None = Depends(verify_token),
    ) -> dict[str, Any]:
        """Move or rename a note: {source, destination}."""
        source = _required(payload, "source")
        destination = _required(payload, "destination")
        vault.move_note(source, destination)
        return {"message": f"Note moved from {source} to {destination}"}

    @app.post("/notes/read")
    async def read_many(
        payload: dict[str, Any] = Body(...),  # noqa: B008
        auth: None = Depends(verify_token),
    ) -> dict[str, Any]:
        """Read several notes at once: {paths: [...]}."""
        paths = payload.get("paths")
        if not isinstance(paths, list) or not all(isinstance(p, str) for p in paths):
            raise NoteError("validation", "paths must be a list of strings", operation="read")
        return {"notes": vault.read_many(paths)}

    @app.get("/notes/{path:path}")
    async def get_note(path: str, auth: None = Depends(verify_token)) -> dict[str, Any]:
        """Get a note's text."""
        return {"path": path, "content": vault.read_note(path)}

    @app.put("/notes/{path:path}", status_code=201)
    async def create_note(
        path: str,
        payload: dict[str, Any] | None = Body(None),  # noqa: B008
        auth: None = Depends(verify_token),
    ) -> dict[str, Any]:
        """Create a note: {content?, meta?}."""
        payload = payload or {}
        content = payload.get("content", "")
        meta = payload.get("meta")
        if not isinstance(content, str):
            raise NoteError("validation", "content must be a string", operation="create", target=path)
        if meta is not None and not isinstance(meta, dict):
            raise NoteError("validation", "meta must be an object", operation="create", target=path)
        vault.create_note(path, content, meta)
        return {"message": f"Note created: {path}"}

    @app.delete("/notes/{path:path}")
    async def delete_note(path: str, auth: None = Depends(verify_token)) -> dict[str, Any]:
        """Delete a note."""
        vault.delete_note(path)
        return {"message": f"Note deleted: {path}"}

    @app.post("/folders")
    async def folders(
        payload: dict[str, Any] = Body(...),  # noqa: B008
        auth: None = Depends(verify_token),
    ) -> dict[str, Any]:
        """Folder operations: {action: create|rename|move|delete, folder, newFolder?}."""
        action = payload.get("action")
        folder = _required(payload, "folder")
        if action == "create":
            vault.create_folder(folder)
            return {"message": f"Folder created: {folder}"}
        if action in ("rename", "move"):
            new_folder = _required(payload, "newFolder")
            vault.rename_folder(folder, new_folder)
            verb = "renamed" if action == "rename" else "moved"
            return {"message": f"Folder {verb} from {folder} to {new_folder}"}
        if action == "delete":
            vault.delete_folder(folder)
            return {"message": f"Folder deleted: {folder}"}
        raise NoteError("validation", f"Unknown folder action: {action}", operation="folder", target=folder)

    @app.get("/search")
    async def search(
        q: str = Query(..., description="Search query"),
        limit: int = Query(50, description="Maximum results", ge=1, le=100),
        auth: None = Depends(verify_token),
    ) -> list[dict[str, Any]]:
        """Filename and content search."""
        return vault.search(q)[:limit]

    @app.post("/edit")
    async def edit(
        payload: dict[str, Any] = Body(...),  # noqa: B008
        auth: None = Depends(verify_token),
    ) -> dict[str, Any]:
        """Apply an edit batch: {path, edits, dryRun?}."""
        path = _required(payload, "path")
        edits = payload.get("edits")
        if not isinstance(edits, list):
            raise NoteError("validation", "edits must be an array", operation="edit", target=path)
        dry_run = bool(payload.get("dryRun", False))
        return {"result": vault.update_note(path, edits, dry_run=dry_run)}

    @app.post("/backlinks")
    async def backlinks(
        payload: dict[str, Any] | None = Body(None),  # noqa: B008
        auth: None = Depends(verify_token),
    ) -> dict[str, Any]:
        """Scan the vault and convert note-name mentions to links."""
        payload = payload or {}
        defaults = runtime.config.backlinks.to_options()
        options = backlink_options_from_wire(payload, defaults)
        report = await vault.auto_backlink(options)
        return report.to_dict()

    return app


def _required(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value:
        raise NoteError("validation", f"{key} must be a non-empty string", target=key)
    return value


def generate_token() -> str:
    """Generate a random bearer token."""
    return secrets.token_urlsafe(32)
