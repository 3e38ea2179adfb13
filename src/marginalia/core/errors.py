"""Error type shared by the edit engine, the stores and the backlink driver."""

from typing import Literal

ErrorKind = Literal[
    "validation",
    "target_not_found",
    "replace_not_found",
    "not_found",
    "io",
]


class NoteError(Exception):
    """
    Tagged error carrying the failing operation and its target.

    `kind` is one of ErrorKind; callers branch on it instead of on subclasses.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        operation: str | None = None,
        target: str | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.operation = operation
        self.target = target

    def __str__(self) -> str:
        if self.operation and self.target:
            return f"{self.operation} failed: {self.message} (target: {self.target})"
        return self.message

    def __repr__(self) -> str:
        return (
            f"NoteError(kind={self.kind!r}, message={self.message!r}, "
            f"operation={self.operation!r}, target={self.target!r})"
        )
