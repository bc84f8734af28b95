from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Union


logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


class FileStore:
    """
    Whole-file byte I/O on the local filesystem.

    - Every call opens and closes its own handle; nothing is kept open
      between calls.
    - OS failures surface as `OSError`; callers decide how to report them.
    - No atomic replace: a failed `write_all` may leave a truncated file.
    """

    def ensure_directory(self, path: PathLike) -> Path:
        p = Path(path)
        p.mkdir(parents=True, exist_ok=True)
        return p

    def exists(self, path: PathLike) -> bool:
        return Path(path).is_file()

    def read_all(self, path: PathLike) -> bytes:
        with Path(path).open("rb") as f:
            return f.read()

    def write_all(self, path: PathLike, data: bytes) -> None:
        with Path(path).open("wb") as f:
            f.write(data)
        logger.debug("Wrote %d bytes to %s", len(data), path)

    def delete(self, path: PathLike) -> bool:
        """Remove the file; returns False if there was nothing to remove."""
        try:
            Path(path).unlink()
        except FileNotFoundError:
            return False
        return True


__all__ = ["FileStore"]
