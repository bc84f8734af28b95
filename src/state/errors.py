from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    NOT_FOUND = "not_found"
    IO = "io"
    ENCODING = "encoding"


class PersistenceError(RuntimeError):
    """Base error for the save-state engine."""

    kind: ErrorKind


class ConfigurationError(PersistenceError):
    """Engine not initialized, already initialized, or given an unusable key."""

    kind = ErrorKind.CONFIGURATION


class NotFoundError(PersistenceError):
    """The save file does not exist."""

    kind = ErrorKind.NOT_FOUND


class StorageIOError(PersistenceError):
    """Reading, writing, deleting or creating on disk failed."""

    kind = ErrorKind.IO


class EncodingError(PersistenceError):
    """State could not be encoded, or file contents could not be decoded (includes wrong keys)."""

    kind = ErrorKind.ENCODING


@dataclass(frozen=True)
class OperationResult:
    """
    Outcome of an engine operation.

    Truthy on success so existing `if engine.save():` call sites keep working;
    on failure `error` holds the exception that stopped the operation.
    """

    ok: bool
    error: Optional[PersistenceError] = None

    @classmethod
    def success(cls) -> "OperationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, error: PersistenceError) -> "OperationResult":
        return cls(ok=False, error=error)

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None

    def __bool__(self) -> bool:
        return self.ok


__all__ = [
    "ErrorKind",
    "PersistenceError",
    "ConfigurationError",
    "NotFoundError",
    "StorageIOError",
    "EncodingError",
    "OperationResult",
]
