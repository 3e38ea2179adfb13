"""Automatic [[wiki-link]] insertion for note names mentioned in plain text."""

import asyncio
import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .errors import NoteError
from .model import (
    BacklinkCandidate,
    BacklinkChange,
    BacklinkMatch,
    BacklinkOptions,
    BacklinkReport,
    NotePath,
)
from .ports import NoteStore
from .utils import normalize_line_endings, note_stem

logger = logging.getLogger(__name__)

SKIP_PATTERNS = [
    re.compile(r"```[\s\S]*?```"),  # fenced code
    re.compile(r"~~~[\s\S]*?~~~"),  # fenced code, tilde style
    re.compile(r"`[^`]*`"),  # inline code
    re.compile(r"\[\[[^\]]*\]\]"),  # wiki links
    re.compile(r"\[[^\]]*\]\([^)]*\)"),  # markdown links
    re.compile(r"https?://[^\s]*"),  # bare URLs
    re.compile(r"!\[\[[^\]]*\]\]"),  # embeds
]

STOP_WORDS = frozenset(
    "the and or but in on at to for of with by from up about into over after".split()
)

BATCH_PAUSE_SECONDS = 0.01


@dataclass
class BacklinkScan:
    """Result of scanning one document."""

    matches: list[BacklinkMatch]
    text: str  # the document with every accepted match converted to a link

    @property
    def changed(self) -> bool:
        return bool(self.matches)


def build_corpus(paths: Iterable[NotePath]) -> list[BacklinkCandidate]:
    """Markdown notes only, longest name first."""
    corpus = [
        BacklinkCandidate(name=note_stem(p), path=p)
        for p in paths
        if p.lower().endswith(".md")
    ]
    # stable sort keeps listing order among equal lengths
    corpus.sort(key=lambda c: len(c.name), reverse=True)
    return corpus


def skip_regions(text: str) -> list[tuple[int, int]]:
    """Spans that never receive links: code, existing links, URLs, embeds."""
    regions = [
        (m.start(), m.end()) for pattern in SKIP_PATTERNS for m in pattern.finditer(text)
    ]
    regions.sort()
    return regions


def _overlaps(start: int, end: int, regions: Sequence[tuple[int, int]]) -> bool:
    for region_start, region_end in regions:
        if region_start >= end:
            break
        if (
            (region_start <= start < region_end)
            or (region_start < end <= region_end)
            or (start <= region_start and end >= region_end)
        ):
            return True
    return False


def _is_candidate(candidate: BacklinkCandidate, options: BacklinkOptions) -> bool:
    if len(candidate.name) < options.min_length:
        return False
    return candidate.name.lower() not in STOP_WORDS


def _pattern(name: str, options: BacklinkOptions) -> re.Pattern[str]:
    boundary = r"\b" if options.whole_words else ""
    flags = 0 if options.case_sensitive else re.IGNORECASE
    return re.compile(f"{boundary}{re.escape(name)}{boundary}", flags)


def scan_backlinks(
    text: str,
    corpus: Sequence[BacklinkCandidate],
    options: BacklinkOptions | None = None,
    source_path: NotePath | None = None,
) -> BacklinkScan:
    """
    Find note names in text and convert them to [[name]] links.

    Candidates are tried in corpus order (longest first). Each accepted match
    is written into the scan buffer straight away, so shorter names can no
    longer match inside text that just became a link. Mentions of the note
    at `source_path` itself are claimed (shorter names cannot take them) but
    left as plain text and not reported.
    """
    if options is None:
        options = BacklinkOptions()

    matches: list[BacklinkMatch] = []
    if not text or not text.strip():
        return BacklinkScan(matches=matches, text=text)

    buffer = text
    regions = skip_regions(buffer)
    claimed: list[tuple[int, int]] = []

    for candidate in corpus:
        if not _is_candidate(candidate, options):
            continue
        pattern = _pattern(candidate.name, options)
        link = f"[[{candidate.name}]]"
        is_self = source_path is not None and candidate.path == source_path

        pos = 0
        while True:
            m = pattern.search(buffer, pos)
            if m is None:
                break
            start, end = m.span()
            pos = end

            if _overlaps(start, end, regions) or _overlaps(start, end, claimed):
                continue

            before = buffer[max(0, start - 2) : start]
            after = buffer[end : end + 2]
            if "[[" in before or "]]" in after:
                continue

            if not options.whole_words:
                char_before = buffer[start - 1] if start > 0 else " "
                char_after = buffer[end] if end < len(buffer) else " "
                if re.match(r"\w", char_before) or re.match(r"\w", char_after):
                    continue

            if is_self:
                claimed.append((start, end))
                claimed.sort()
                continue

            matches.append(
                BacklinkMatch(old_text=m.group(0), new_text=link, source_path=candidate.path)
            )
            buffer = buffer[:start] + link + buffer[end:]
            shift = len(link) - (end - start)
            claimed = [(s + shift, e + shift) if s >= end else (s, e) for s, e in claimed]
            regions = skip_regions(buffer)
            pos = start + len(link)

    return BacklinkScan(matches=matches, text=buffer)


def find_backlink_matches(
    text: str,
    corpus: Sequence[BacklinkCandidate],
    options: BacklinkOptions | None = None,
) -> list[BacklinkMatch]:
    """Proposed replacements for text, self-references included."""
    return scan_backlinks(text, corpus, options).matches


def compile_exclude_patterns(patterns: Iterable[Any]) -> list[re.Pattern[str]]:
    """Glob-ish patterns ("archive/*") to regexes; "*" means any run of characters."""
    compiled = []
    for pattern in patterns:
        if not isinstance(pattern, str):
            raise NoteError(
                "validation",
                "All exclude patterns must be strings",
                operation="validation",
                target=str(pattern),
            )
        try:
            compiled.append(re.compile(pattern.replace("*", ".*")))
        except re.error as e:
            raise NoteError(
                "validation",
                f'Invalid exclude pattern "{pattern}": {e}',
                operation="validation",
                target=pattern,
            ) from e
    return compiled


def validate_backlink_options(options: BacklinkOptions) -> None:
    """Reject the whole call before anything is scanned."""
    if not isinstance(options.exclude_patterns, (list, tuple)):
        raise NoteError("validation", "excludePatterns must be an array", operation="validation")
    if (
        isinstance(options.min_length, bool)
        or not isinstance(options.min_length, int)
        or not 1 <= options.min_length <= 100
    ):
        raise NoteError(
            "validation",
            "minLength must be a positive number between 1 and 100",
            operation="validation",
        )
    if (
        isinstance(options.batch_size, bool)
        or not isinstance(options.batch_size, int)
        or not 1 <= options.batch_size <= 500
    ):
        raise NoteError(
            "validation",
            "batchSize must be a positive number between 1 and 500",
            operation="validation",
        )
    compile_exclude_patterns(options.exclude_patterns)


def backlink_options_from_wire(
    args: Mapping[str, Any] | None,
    defaults: BacklinkOptions | None = None,
) -> BacklinkOptions:
    """Options from the camelCase call shape; missing keys come from `defaults`."""
    args = args or {}
    if defaults is None:
        defaults = BacklinkOptions()

    def pick(key: str, default: Any) -> Any:
        value = args.get(key)
        return default if value is None else value

    return BacklinkOptions(
        dry_run=pick("dryRun", defaults.dry_run),
        exclude_patterns=pick("excludePatterns", list(defaults.exclude_patterns)),
        min_length=pick("minLength", defaults.min_length),
        case_sensitive=pick("caseSensitive", defaults.case_sensitive),
        whole_words=pick("wholeWords", defaults.whole_words),
        batch_size=pick("batchSize", defaults.batch_size),
    )


async def process_vault_backlinks(
    store: NoteStore,
    options: BacklinkOptions | None = None,
    pause: float = BATCH_PAUSE_SECONDS,
) -> BacklinkReport:
    """
    Run the backlink scan over every note in the store.

    Notes are processed in groups of options.batch_size with a short
    cooperative pause between groups. A note that fails is recorded in
    report.errors and the batch moves on. Nothing is written on a dry run.
    """
    if options is None:
        options = BacklinkOptions()
    validate_backlink_options(options)
    excludes = compile_exclude_patterns(options.exclude_patterns)

    report = BacklinkReport()
    if not options.dry_run:
        logger.warning("Backlink run will modify notes in place")

    try:
        corpus = build_corpus(store.list_paths())
    except NoteError as e:
        message = f"Error in vault processing: {e}"
        logger.error(message)
        report.errors.append(message)
        return report

    documents = [c for c in corpus if not any(rx.search(c.path) for rx in excludes)]
    report.total_documents = len(documents)
    logger.info(
        "Scanning %d notes against %d names (dry_run=%s)",
        len(documents), len(corpus), options.dry_run,
    )

    for offset in range(0, len(documents), options.batch_size):
        batch = documents[offset : offset + options.batch_size]
        logger.debug("Backlink batch %d-%d", offset, offset + len(batch) - 1)

        for document in batch:
            try:
                original = store.read(document.path)
                content = normalize_line_endings(original)
                scan = scan_backlinks(content, corpus, options, source_path=document.path)
                valid = [m for m in scan.matches if m.source_path != document.path]

                if valid:
                    report.modified_documents += 1
                    report.total_links_added += len(valid)
                    report.changes.extend(
                        BacklinkChange(path=document.path, old_text=m.old_text, new_text=m.new_text)
                        for m in valid
                    )
                    if not options.dry_run:
                        store.write(document.path, scan.text)

                report.processed_documents += 1
            except Exception as e:
                message = f"Error processing note {document.path}: {e}"
                logger.warning(message)
                report.errors.append(message)

        if offset + options.batch_size < len(documents):
            await asyncio.sleep(pause)

    return report
