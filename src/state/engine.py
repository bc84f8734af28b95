from __future__ import annotations

import base64
import binascii
import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Generic, Iterator, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel

from common.filestore import FileStore
from common.keys import derive_key, validate_key
from .errors import (
    ConfigurationError,
    NotFoundError,
    OperationResult,
    PersistenceError,
    StorageIOError,
)
from .models import GameSave
from .strategies import SaveMethod, Strategy, build_strategy


logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# Environment variable names for convenience configuration
ENV_DIR = "SAVE_DIR"
ENV_FILE = "SAVE_FILE"
ENV_METHOD = "SAVE_METHOD"
ENV_KEY = "SAVE_KEY"
ENV_PASSPHRASE = "SAVE_PASSPHRASE"

DEFAULT_FILE_NAME = "save.dat"
DEFAULT_METHOD = SaveMethod.PLAIN_TEXT

KeyInput = Union[bytes, str]


@dataclass(frozen=True)
class PersistenceConfig:
    directory: Path
    file_name: str
    method: SaveMethod
    key: Optional[bytes] = field(default=None, repr=False)

    @property
    def full_path(self) -> Path:
        return self.directory / self.file_name


@contextmanager
def _storage_errors(action: str, path: Path) -> Iterator[None]:
    try:
        yield
    except OSError as ex:
        raise StorageIOError(f"Failed to {action} {path}: {ex}") from ex


class PersistenceEngine(Generic[M]):
    """
    Saves and loads one state model to a single file.

    Usage
    - Construct, then call `initialize(directory, file_name, method, key)` once.
      Configuration is locked in after the first successful call.
    - Mutate or replace `engine.state`, then `save()`; `load()` replaces
      `engine.state` with what is on disk.
    - Every operation returns an `OperationResult`: truthy on success, with
      `.error` / `.kind` describing the failure otherwise. Nothing raises.

    Keys (encrypted method only)
    - `bytes`: used as the AES key; must be 16, 24 or 32 bytes.
    - `str`: a passphrase, turned into a key by `key_derivation`
      (defaults to the legacy, weak `derive_key`).

    Not thread-safe. Guard the engine with a lock if several threads share it.
    """

    def __init__(
        self,
        model: Type[M] = GameSave,  # type: ignore[assignment]
        *,
        state_factory: Optional[Callable[[], M]] = None,
        store: Optional[FileStore] = None,
        key_derivation: Callable[[str], bytes] = derive_key,
    ) -> None:
        self._model = model
        self._state_factory: Callable[[], M] = state_factory or getattr(model, "empty", model)
        self._store = store or FileStore()
        self._key_derivation = key_derivation
        self._config: Optional[PersistenceConfig] = None
        self._strategy: Optional[Strategy[M]] = None
        self.state: M = self._state_factory()

    # -------- Construction helpers --------
    @classmethod
    def from_env(
        cls,
        model: Type[M] = GameSave,  # type: ignore[assignment]
        *,
        environ: Optional[Mapping[str, str]] = None,
        **kwargs,
    ) -> "PersistenceEngine[M]":
        """Build an initialized engine from `SAVE_*` environment variables.

        Raises RuntimeError on missing or conflicting configuration and
        ValueError on an unknown method or a key that is not base64.
        """
        env = os.environ if environ is None else environ
        directory = env.get(ENV_DIR)
        if not directory:
            raise RuntimeError(
                f"Missing required environment variables for save engine: {ENV_DIR}"
            )
        file_name = env.get(ENV_FILE) or DEFAULT_FILE_NAME
        method = SaveMethod.parse(env.get(ENV_METHOD) or DEFAULT_METHOD)

        raw_key = env.get(ENV_KEY)
        passphrase = env.get(ENV_PASSPHRASE)
        if raw_key and passphrase:
            raise RuntimeError(f"Set only one of {ENV_KEY} and {ENV_PASSPHRASE}")
        key: Optional[KeyInput] = None
        if raw_key:
            try:
                key = base64.urlsafe_b64decode(raw_key.encode("ascii"))
            except (binascii.Error, UnicodeEncodeError) as ex:
                raise ValueError(f"{ENV_KEY} must be URL-safe base64") from ex
        elif passphrase:
            key = passphrase

        engine = cls(model, **kwargs)
        result = engine.initialize(directory, file_name, method, key)
        if not result:
            raise RuntimeError(f"Failed to initialize save engine: {result.error}") from result.error
        return engine

    # -------- Introspection --------
    @property
    def is_initialized(self) -> bool:
        return self._config is not None

    @property
    def config(self) -> Optional[PersistenceConfig]:
        return self._config

    @property
    def method(self) -> Optional[SaveMethod]:
        return self._config.method if self._config else None

    def full_path(self) -> Optional[Path]:
        """Directory joined with file name; None until initialized."""
        return self._config.full_path if self._config else None

    def file_exists(self) -> bool:
        """Whether the save file is present, as seen by the engine's store."""
        return self._config is not None and self._store.exists(self._config.full_path)

    # -------- Core operations --------
    def initialize(
        self,
        directory: Union[str, os.PathLike],
        file_name: str,
        method: Union[SaveMethod, str],
        key: Optional[KeyInput] = None,
    ) -> OperationResult:
        """Lock in the configuration and create the directory. One-time only."""
        return self._attempt("initialize", lambda: self._initialize(directory, file_name, method, key))

    def create_directory(self) -> OperationResult:
        return self._attempt("create_directory", self._create_directory)

    def save(self) -> OperationResult:
        """Encode `state` and overwrite the file. Not atomic."""
        return self._attempt("save", self._save)

    def load(self) -> OperationResult:
        """Replace `state` with the file's contents; `state` is untouched on failure."""
        return self._attempt("load", self._load)

    def delete(self) -> OperationResult:
        return self._attempt("delete", self._delete)

    def reset(self) -> OperationResult:
        """Delete the file (if any), restore the default state and save it."""
        return self._attempt("reset", self._reset)

    # -------- Internal --------
    def _attempt(self, op: str, fn: Callable[[], None]) -> OperationResult:
        try:
            fn()
        except PersistenceError as ex:
            logger.warning("Save engine %s failed (%s): %s", op, ex.kind.value, ex)
            return OperationResult.failure(ex)
        logger.debug("Save engine %s ok (%s)", op, self.full_path())
        return OperationResult.success()

    def _require_initialized(self) -> Tuple[PersistenceConfig, Strategy[M]]:
        if self._config is None or self._strategy is None:
            raise ConfigurationError("Save engine is not initialized")
        return self._config, self._strategy

    def _resolve_key(self, key: Optional[KeyInput]) -> bytes:
        if key is None:
            raise ConfigurationError("A key or passphrase is required for the encrypted save method")
        if isinstance(key, str):
            try:
                key = self._key_derivation(key)
            except ValueError as ex:
                raise ConfigurationError(f"Cannot derive key: {ex}") from ex
        try:
            return validate_key(key)
        except ValueError as ex:
            raise ConfigurationError(str(ex)) from ex

    def _initialize(
        self,
        directory: Union[str, os.PathLike],
        file_name: str,
        method: Union[SaveMethod, str],
        key: Optional[KeyInput],
    ) -> None:
        if self._config is not None:
            raise ConfigurationError("Save engine is already initialized")
        try:
            method = SaveMethod.parse(method)
        except ValueError as ex:
            raise ConfigurationError(str(ex)) from ex
        if not file_name:
            raise ConfigurationError("file_name must not be empty")

        resolved = self._resolve_key(key) if method is SaveMethod.ENCRYPTED else None
        strategy = build_strategy(method, self._model, resolved)
        config = PersistenceConfig(
            directory=Path(directory), file_name=file_name, method=method, key=resolved
        )
        with _storage_errors("create directory", config.directory):
            self._store.ensure_directory(config.directory)

        self._config = config
        self._strategy = strategy
        logger.info("Save engine initialized: %s (%s)", config.full_path, method.value)

    def _create_directory(self) -> None:
        config, _ = self._require_initialized()
        with _storage_errors("create directory", config.directory):
            self._store.ensure_directory(config.directory)

    def _save(self) -> None:
        config, strategy = self._require_initialized()
        payload = strategy.encode(self.state)
        with _storage_errors("write", config.full_path):
            self._store.write_all(config.full_path, payload)

    def _load(self) -> None:
        config, strategy = self._require_initialized()
        path = config.full_path
        if not self._store.exists(path):
            raise NotFoundError(f"Save file not found: {path}")
        with _storage_errors("read", path):
            data = self._store.read_all(path)
        self.state = strategy.decode(data)

    def _delete(self) -> None:
        config, _ = self._require_initialized()
        path = config.full_path
        with _storage_errors("delete", path):
            removed = self._store.delete(path)
        if not removed:
            raise NotFoundError(f"Save file not found: {path}")

    def _reset(self) -> None:
        self._require_initialized()
        try:
            self._delete()
        except NotFoundError:
            # Nothing on disk yet; a fresh engine can still be reset.
            pass
        self.state = self._state_factory()
        self._save()


__all__ = [
    "ENV_DIR",
    "ENV_FILE",
    "ENV_METHOD",
    "ENV_KEY",
    "ENV_PASSPHRASE",
    "DEFAULT_FILE_NAME",
    "PersistenceConfig",
    "PersistenceEngine",
]
