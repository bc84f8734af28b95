"""
Common utilities for the save-state engine.

Modules:
- keys: AES key validation and the legacy passphrase stretch
- filestore: whole-file byte I/O on the local filesystem
"""

__all__ = [
    "filestore",
    "keys",
]
