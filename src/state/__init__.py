"""
Save-state persistence engine.

A `PersistenceEngine` holds one pydantic state model and writes it to a
single file as pickled bytes, plain JSON, or AES-CBC encrypted JSON.
"""

from .engine import PersistenceConfig, PersistenceEngine
from .errors import (
    ConfigurationError,
    EncodingError,
    ErrorKind,
    NotFoundError,
    OperationResult,
    PersistenceError,
    StorageIOError,
)
from .models import GameSave
from .strategies import SaveMethod

__all__ = [
    "ConfigurationError",
    "EncodingError",
    "ErrorKind",
    "GameSave",
    "NotFoundError",
    "OperationResult",
    "PersistenceConfig",
    "PersistenceEngine",
    "PersistenceError",
    "SaveMethod",
    "StorageIOError",
]
