from __future__ import annotations
from dataclasses import dataclass, field
from typing import Literal, Union

NotePath = str  # vault-relative, forward slashes, e.g. "projects/Plan.md"

ElementKind = Literal["heading", "paragraph", "list", "code"]
Position = Literal["before", "after", "append", "prepend"]

POSITIONS: tuple[str, ...] = ("before", "after", "append", "prepend")


@dataclass(frozen=True)
class StructuralElement:
    kind: ElementKind
    text: str
    start_line: int  # 0-based, inclusive
    end_line: int  # 0-based, inclusive
    level: int | None = None  # headings only
    block_id: str | None = None  # "abc" for "^abc"


@dataclass(frozen=True)
class HeadingTarget:
    name: str
    level: int | None = None


@dataclass(frozen=True)
class BlockTarget:
    id: str


Target = Union[HeadingTarget, BlockTarget]


@dataclass(frozen=True)
class ReplaceEdit:
    old_text: str
    new_text: str


@dataclass(frozen=True)
class InsertEdit:
    target: Target
    content: str
    position: Position = "after"


EditOperation = Union[ReplaceEdit, InsertEdit]


@dataclass
class EditResult:
    path: NotePath
    original: str
    modified: str

    @property
    def changed(self) -> bool:
        return self.original != self.modified


@dataclass(frozen=True)
class BacklinkCandidate:
    name: str  # file stem, e.g. "Project Plan"
    path: NotePath


@dataclass(frozen=True)
class BacklinkMatch:
    old_text: str
    new_text: str
    source_path: NotePath  # the note the link points at


@dataclass
class BacklinkOptions:
    dry_run: bool = True
    exclude_patterns: list[str] = field(default_factory=list)
    min_length: int = 3
    case_sensitive: bool = False
    whole_words: bool = True
    batch_size: int = 50


@dataclass
class BacklinkChange:
    path: NotePath
    old_text: str
    new_text: str


@dataclass
class BacklinkReport:
    total_documents: int = 0
    processed_documents: int = 0
    modified_documents: int = 0
    total_links_added: int = 0
    errors: list[str] = field(default_factory=list)
    changes: list[BacklinkChange] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalDocuments": self.total_documents,
            "processedDocuments": self.processed_documents,
            "modifiedDocuments": self.modified_documents,
            "totalLinksAdded": self.total_links_added,
            "errors": list(self.errors),
            "changes": [
                {"path": c.path, "oldText": c.old_text, "newText": c.new_text}
                for c in self.changes
            ],
        }
