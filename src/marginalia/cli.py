"""CLI for marginalia - structural editing and auto-linking for Markdown vaults."""

import argparse
import asyncio
import json
import logging
import platform
import subprocess
import sys
from pathlib import Path
from typing import Any

import yaml

from . import __version__
from .core.backlinks import validate_backlink_options
from .runtime import build_runtime


def version_text() -> str:
    """Version banner with interpreter, platform and source commit."""
    try:
        commit = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            capture_output=True,
            text=True,
            cwd=Path(__file__).parent,
            check=True,
        ).stdout.strip()
    except (OSError, subprocess.CalledProcessError):
        commit = "unknown"
    return (
        f"marginalia {__version__}\n"
        f"python {platform.python_version()}\n"
        f"platform {platform.platform()}\n"
        f"commit {commit or 'unknown'}"
    )


class _VersionAction(argparse.Action):
    def __init__(self, option_strings: list[str], dest: str, **kwargs: Any):
        super().__init__(option_strings, dest, nargs=0, default=argparse.SUPPRESS, **kwargs)

    def __call__(
        self,
        parser: argparse.ArgumentParser,
        namespace: argparse.Namespace,
        values: Any,
        option_string: str | None = None,
    ) -> None:
        print(version_text())
        parser.exit()


def cmd_ls(args: argparse.Namespace, rt: Any) -> int:
    """List notes in the vault or a folder."""
    paths = rt.vault.list_notes(args.folder or "", recursive=not args.no_recursive)
    if args.json:
        print(json.dumps(paths, indent=2))
    else:
        for path in paths:
            print(path)
    return 0


def cmd_open(args: argparse.Namespace, rt: Any) -> int:
    """Print a note's text."""
    sys.stdout.write(rt.vault.read_note(args.path))
    return 0


def cmd_cat(args: argparse.Namespace, rt: Any) -> int:
    """Print several notes, each under a header line."""
    results = rt.vault.read_many(args.paths)
    failed = 0
    for path, result in results.items():
        if "error" in result:
            print(f"Error: {path}: {result['error']}", file=sys.stderr)
            failed += 1
            continue
        if not args.quiet:
            print(f"=== {path} ===")
        print(result["content"])
    return 1 if failed == len(results) and failed else 0


def cmd_new(args: argparse.Namespace, rt: Any) -> int:
    """Create a new note."""
    content = sys.stdin.read() if args.stdin else (args.content or "")

    meta: dict[str, Any] = {}
    for kv in args.meta:
        k, sep, val = kv.partition("=")
        if not sep or not k.strip():
            print(f"Error: Invalid --meta value (expected key=value): {kv}", file=sys.stderr)
            return 1
        meta[k.strip()] = val.strip()

    rt.vault.create_note(args.path, content, meta or None)
    if not args.quiet:
        print(f"Created {args.path}")
    return 0


def cmd_rm(args: argparse.Namespace, rt: Any) -> int:
    """Delete a note."""
    if not rt.store.exists(args.path):
        print(f"Note {args.path} not found", file=sys.stderr)
        return 1

    if not args.yes:
        response = input(f"Delete note {args.path}? [y/N] ")
        if response.lower() not in ("y", "yes"):
            print("Aborted")
            return 0

    rt.vault.delete_note(args.path)
    if not args.quiet:
        print(f"Deleted {args.path}")
    return 0


def cmd_mv(args: argparse.Namespace, rt: Any) -> int:
    """Move or rename a note."""
    rt.vault.move_note(args.src, args.dst)
    if not args.quiet:
        print(f"Moved {args.src} -> {args.dst}")
    return 0


def cmd_folder(args: argparse.Namespace, rt: Any) -> int:
    """Create, rename, move or delete a folder."""
    action = args.folder_cmd
    if action == "create":
        rt.vault.create_folder(args.folder)
        message = f"Created folder {args.folder}"
    elif action in ("rename", "move"):
        rt.vault.rename_folder(args.folder, args.new_folder)
        message = f"Moved folder {args.folder} -> {args.new_folder}"
    else:
        if not args.yes:
            response = input(f"Delete folder {args.folder} and everything in it? [y/N] ")
            if response.lower() not in ("y", "yes"):
                print("Aborted")
                return 0
        rt.vault.delete_folder(args.folder)
        message = f"Deleted folder {args.folder}"

    if not args.quiet:
        print(message)
    return 0


def cmd_find(args: argparse.Namespace, rt: Any) -> int:
    """Search note names and contents."""
    results = rt.vault.search(args.query)
    if args.limit:
        results = results[: args.limit]

    if args.json:
        print(json.dumps(results, indent=2))
        return 0

    for result in results:
        match = result["matches"][0] if result.get("matches") else {}
        line = match.get("line", -1)
        where = f":{line + 1}" if line is not None and line >= 0 else ""
        print(f"{result['path']}{where}\t{result['score']}")
    return 0


def _load_edits(source: str) -> Any:
    text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    # YAML is a superset of JSON, so one loader covers both file kinds
    data = yaml.safe_load(text)
    if isinstance(data, dict) and "edits" in data:
        data = data["edits"]
    return data


def cmd_edit(args: argparse.Namespace, rt: Any) -> int:
    """Apply a batch of structural edits to one note."""
    try:
        edits = _load_edits(args.edits)
    except (OSError, yaml.YAMLError) as e:
        print(f"Error: Could not load edits from {args.edits}: {e}", file=sys.stderr)
        return 1
    if not isinstance(edits, list):
        print("Error: Edits must be a list of edit operations", file=sys.stderr)
        return 1

    output = rt.vault.update_note(args.path, edits, dry_run=args.dry_run)
    if args.dry_run:
        sys.stdout.write(output)
    elif not args.quiet:
        print(output)
    return 0


def cmd_backlinks(args: argparse.Namespace, rt: Any) -> int:
    """Convert note-name mentions across the vault into [[links]]."""
    options = rt.config.backlinks.to_options(dry_run=not args.apply)
    if args.exclude:
        options.exclude_patterns = list(options.exclude_patterns) + list(args.exclude)
    if args.min_length is not None:
        options.min_length = args.min_length
    if args.case_sensitive:
        options.case_sensitive = True
    if args.partial_words:
        options.whole_words = False
    if args.batch_size is not None:
        options.batch_size = args.batch_size
    validate_backlink_options(options)

    report = asyncio.run(rt.vault.auto_backlink(options))

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
        return 1 if report.errors else 0

    for change in report.changes:
        print(f"{change.path}: {change.old_text} -> {change.new_text}")
    if not args.quiet:
        mode = "Would add" if options.dry_run else "Added"
        print(
            f"{mode} {report.total_links_added} links in {report.modified_documents} "
            f"of {report.processed_documents}/{report.total_documents} notes"
        )
    for error in report.errors:
        print(f"Error: {error}", file=sys.stderr)
    return 1 if report.errors else 0


def cmd_serve(args: argparse.Namespace, rt: Any) -> int:
    """Start local JSON API server."""
    import uvicorn

    from .api.app import create_app, generate_token

    token_arg = args.token
    token = None

    if token_arg == "auto":
        token = generate_token()
        print(f"Generated bearer token: {token}")
        print(f"Use in requests: Authorization: Bearer {token}")
    elif token_arg == "none":
        print("Warning: Running without authentication. Only use in trusted environments.")
    else:
        token = token_arg

    app = create_app(rt, token=token, enable_cors=args.cors)

    host = args.host or rt.config.server.host
    port = args.port or rt.config.server.port

    print(f"Starting server on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level="info")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="marginalia", description="Structural editing and auto-linking for Markdown vaults"
    )
    parser.add_argument(
        "--version", action=_VersionAction, help="Show version information and exit"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config file (default: search cwd/marginalia.toml, vault/marginalia.toml)",
    )
    parser.add_argument(
        "--vault",
        type=Path,
        default=None,
        help="Path to vault directory (overrides config and MARGINALIA_VAULT)",
    )
    parser.add_argument(
        "--api-url",
        default=None,
        help="Note API base URL; the file system is used when it is unreachable",
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Minimize output"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging"
    )

    subparsers = parser.add_subparsers(dest="cmd", required=True)

    parser_ls = subparsers.add_parser("ls", help="List notes")
    parser_ls.add_argument("folder", nargs="?", default="", help="Folder to list")
    parser_ls.add_argument("--no-recursive", action="store_true", help="Only list the folder itself")
    parser_ls.add_argument("--json", action="store_true", help="Machine-readable output")

    parser_open = subparsers.add_parser("open", help="Print a note")
    parser_open.add_argument("path", help="Note path, relative to the vault")

    parser_cat = subparsers.add_parser("cat", help="Print several notes")
    parser_cat.add_argument("paths", nargs="+", help="Note paths")

    parser_new = subparsers.add_parser("new", help="Create a new note")
    parser_new.add_argument("path", help="Note path, relative to the vault")
    source = parser_new.add_mutually_exclusive_group()
    source.add_argument("--content", default=None, help="Initial note text")
    source.add_argument("--stdin", action="store_true", help="Read note text from stdin")
    parser_new.add_argument(
        "--meta", action="append", default=[], help="Frontmatter key=value (repeatable)"
    )

    parser_rm = subparsers.add_parser("rm", help="Delete a note")
    parser_rm.add_argument("path", help="Note path")
    parser_rm.add_argument("--yes", action="store_true", help="Skip confirmation")

    parser_mv = subparsers.add_parser("mv", help="Move or rename a note")
    parser_mv.add_argument("src", help="Current note path")
    parser_mv.add_argument("dst", help="New note path")

    parser_folder = subparsers.add_parser("folder", help="Manage folders")
    folder_sub = parser_folder.add_subparsers(dest="folder_cmd", required=True)
    parser_folder_create = folder_sub.add_parser("create", help="Create a folder")
    parser_folder_create.add_argument("folder")
    for name in ("rename", "move"):
        p = folder_sub.add_parser(name, help=f"{name.capitalize()} a folder")
        p.add_argument("folder")
        p.add_argument("new_folder")
    parser_folder_delete = folder_sub.add_parser("delete", help="Delete a folder and its contents")
    parser_folder_delete.add_argument("folder")
    parser_folder_delete.add_argument("--yes", action="store_true", help="Skip confirmation")

    parser_find = subparsers.add_parser("find", help="Search note names and contents")
    parser_find.add_argument("query", help="Search text")
    parser_find.add_argument("--limit", type=int, default=50, help="Maximum results")
    parser_find.add_argument("--json", action="store_true", help="Machine-readable output")

    parser_edit = subparsers.add_parser("edit", help="Apply structural edits to a note")
    parser_edit.add_argument("path", help="Note path")
    parser_edit.add_argument(
        "--edits", required=True, help="JSON or YAML file with a list of edits ('-' for stdin)"
    )
    parser_edit.add_argument("--dry-run", action="store_true", help="Print a diff instead of writing")

    parser_backlinks = subparsers.add_parser(
        "backlinks", help="Turn note-name mentions into [[links]]"
    )
    parser_backlinks.add_argument(
        "--apply", action="store_true", help="Write changes (default is a dry run)"
    )
    parser_backlinks.add_argument(
        "--exclude", action="append", default=[], help="Path pattern to skip, '*' matches anything"
    )
    parser_backlinks.add_argument("--min-length", type=int, default=None, help="Shortest note name to link")
    parser_backlinks.add_argument("--case-sensitive", action="store_true", help="Match names case-sensitively")
    parser_backlinks.add_argument(
        "--partial-words", action="store_true", help="Do not require word boundaries"
    )
    parser_backlinks.add_argument("--batch-size", type=int, default=None, help="Notes per batch")
    parser_backlinks.add_argument("--json", action="store_true", help="Machine-readable output")

    parser_serve = subparsers.add_parser("serve", help="Start local JSON API server")
    parser_serve.add_argument("--host", default=None, help="Bind address")
    parser_serve.add_argument("--port", type=int, default=None, help="Port")
    parser_serve.add_argument(
        "--token",
        default="auto",
        help="Bearer token: 'auto' to generate, 'none' to disable, or a literal token",
    )
    parser_serve.add_argument("--cors", action="store_true", help="Enable CORS")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    handlers = {
        "ls": cmd_ls,
        "open": cmd_open,
        "cat": cmd_cat,
        "new": cmd_new,
        "rm": cmd_rm,
        "mv": cmd_mv,
        "folder": cmd_folder,
        "find": cmd_find,
        "edit": cmd_edit,
        "backlinks": cmd_backlinks,
        "serve": cmd_serve,
    }
    handler = handlers[args.cmd]

    try:
        rt = build_runtime(
            vault_path=args.vault,
            config_path=args.config,
            api_url=args.api_url,
        )
        exit_code = handler(args, rt)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
