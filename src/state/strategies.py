from __future__ import annotations

import json
import os
import pickle
from abc import ABC, abstractmethod
from enum import Enum
from typing import Generic, Optional, Type, TypeVar, Union

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from pydantic import BaseModel

from common.keys import validate_key
from .errors import ConfigurationError, EncodingError


M = TypeVar("M", bound=BaseModel)

IV_SIZE = 16
_BLOCK_BITS = algorithms.AES.block_size  # 128


class SaveMethod(str, Enum):
    """How the state is laid out on disk. Values match the legacy method names."""

    RAW_BYTES = "binary"
    PLAIN_TEXT = "json"
    ENCRYPTED = "aes"

    @classmethod
    def parse(cls, value: Union["SaveMethod", str]) -> "SaveMethod":
        """Accept a member, its value ("aes") or its name ("ENCRYPTED"), case-insensitive."""
        if isinstance(value, cls):
            return value
        s = str(value).strip()
        for member in cls:
            if s.lower() == member.value or s.upper() == member.name:
                return member
        raise ValueError(f"Unknown save method: {value!r}")


def _dump_state_json(state: BaseModel) -> bytes:
    # Deterministic JSON: stable key order, no extra whitespace
    return json.dumps(
        state.model_dump(mode="json"), separators=(",", ":"), sort_keys=True
    ).encode("utf-8")


def _load_state_json(data: bytes, model: Type[M]) -> M:
    raw = json.loads(data.decode("utf-8"))
    return model.model_validate(raw)


class Strategy(ABC, Generic[M]):
    """Turns a state model into file bytes and back; raises EncodingError on failure."""

    method: SaveMethod

    def __init__(self, model: Type[M]) -> None:
        self.model = model

    @abstractmethod
    def encode(self, state: M) -> bytes: ...

    @abstractmethod
    def decode(self, data: bytes) -> M: ...


class RawBytesStrategy(Strategy[M]):
    """
    Pickled state, no header.

    Smallest and fastest of the three but not human-readable. Only load
    files you wrote yourself: unpickling untrusted data can run code.
    """

    method = SaveMethod.RAW_BYTES

    def encode(self, state: M) -> bytes:
        try:
            return pickle.dumps(state, protocol=pickle.HIGHEST_PROTOCOL)
        except Exception as ex:
            raise EncodingError("Failed to pickle state") from ex

    def decode(self, data: bytes) -> M:
        try:
            obj = pickle.loads(data)
        except Exception as ex:
            raise EncodingError("Failed to unpickle state") from ex
        if not isinstance(obj, self.model):
            raise EncodingError(
                f"Unpickled {type(obj).__name__}, expected {self.model.__name__}"
            )
        return obj


class PlainTextStrategy(Strategy[M]):
    """UTF-8 JSON of the model; readable and editable by hand."""

    method = SaveMethod.PLAIN_TEXT

    def encode(self, state: M) -> bytes:
        try:
            return _dump_state_json(state)
        except Exception as ex:
            raise EncodingError("Failed to serialize state to JSON") from ex

    def decode(self, data: bytes) -> M:
        try:
            return _load_state_json(data, self.model)
        except Exception as ex:
            raise EncodingError("Failed to parse state JSON") from ex


class EncryptedStrategy(Strategy[M]):
    """
    PlainText JSON encrypted with AES-CBC (PKCS7 padding).

    File layout: `[16-byte IV][ciphertext]`. A fresh random IV is drawn on
    every encode and stored in the clear.

    Notes
    - Confidentiality only: there is no MAC, so tampering or a wrong key
      shows up as an EncodingError (bad padding or malformed JSON), never
      as a distinct authentication failure.
    """

    method = SaveMethod.ENCRYPTED

    def __init__(self, model: Type[M], key: bytes) -> None:
        super().__init__(model)
        try:
            self._key = validate_key(key)
        except ValueError as ex:
            raise ConfigurationError(str(ex)) from ex
        self._text = PlainTextStrategy(model)

    def encode(self, state: M) -> bytes:
        plaintext = self._text.encode(state)
        iv = os.urandom(IV_SIZE)
        padder = padding.PKCS7(_BLOCK_BITS).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        return iv + encryptor.update(padded) + encryptor.finalize()

    def decode(self, data: bytes) -> M:
        if len(data) < IV_SIZE:
            raise EncodingError(f"Encrypted payload shorter than the {IV_SIZE}-byte IV")
        iv, ciphertext = data[:IV_SIZE], data[IV_SIZE:]
        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        unpadder = padding.PKCS7(_BLOCK_BITS).unpadder()
        try:
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            plaintext = unpadder.update(padded) + unpadder.finalize()
        except ValueError as ex:
            raise EncodingError("Failed to decrypt state (wrong key or corrupt file)") from ex
        return self._text.decode(plaintext)


def build_strategy(
    method: Union[SaveMethod, str],
    model: Type[M],
    key: Optional[bytes] = None,
) -> Strategy[M]:
    """Pick the strategy for `method`; `key` is required for ENCRYPTED and ignored otherwise."""
    method = SaveMethod.parse(method)
    if method is SaveMethod.RAW_BYTES:
        return RawBytesStrategy(model)
    if method is SaveMethod.PLAIN_TEXT:
        return PlainTextStrategy(model)
    if key is None:
        raise ConfigurationError("A key is required for the encrypted save method")
    return EncryptedStrategy(model, key)


__all__ = [
    "IV_SIZE",
    "SaveMethod",
    "Strategy",
    "RawBytesStrategy",
    "PlainTextStrategy",
    "EncryptedStrategy",
    "build_strategy",
]
