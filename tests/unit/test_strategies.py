from __future__ import annotations

import json

import pytest

from state.errors import ConfigurationError, EncodingError
from state.models import GameSave
from state.strategies import (
    IV_SIZE,
    EncryptedStrategy,
    PlainTextStrategy,
    RawBytesStrategy,
    SaveMethod,
    build_strategy,
)


KEY = bytes(range(32))


def _sample() -> GameSave:
    return GameSave(
        level=7,
        score=12345,
        unlocked=["forest", "cave"],
        flags={"tutorial_done": True, "boss_seen": False},
    )


@pytest.mark.parametrize(
    "strategy",
    [
        RawBytesStrategy(GameSave),
        PlainTextStrategy(GameSave),
        EncryptedStrategy(GameSave, KEY[:16]),
        EncryptedStrategy(GameSave, KEY[:24]),
        EncryptedStrategy(GameSave, KEY),
    ],
)
def test_roundtrip(strategy):
    src = _sample()
    assert strategy.decode(strategy.encode(src)) == src


def test_plain_text_is_readable_deterministic_json():
    s = PlainTextStrategy(GameSave)
    data = s.encode(_sample())
    assert data == s.encode(_sample())
    parsed = json.loads(data.decode("utf-8"))
    assert parsed["level"] == 7
    assert parsed["flags"] == {"boss_seen": False, "tutorial_done": True}
    assert b" " not in data


def test_plain_text_accepts_hand_edited_file():
    s = PlainTextStrategy(GameSave)
    edited = b'{\n  "level": 3,\n  "score": 99\n}\n'
    assert s.decode(edited) == GameSave(level=3, score=99)


@pytest.mark.parametrize("payload", [b"", b"not json", b'{"level": 0}', b"\xff\xfe"])
def test_plain_text_bad_input_raises_encoding_error(payload):
    with pytest.raises(EncodingError):
        PlainTextStrategy(GameSave).decode(payload)


def test_raw_bytes_rejects_garbage_and_foreign_objects():
    import pickle

    s = RawBytesStrategy(GameSave)
    with pytest.raises(EncodingError):
        s.decode(b"garbage")
    with pytest.raises(EncodingError):
        s.decode(pickle.dumps({"level": 1}))


def test_encrypted_layout_and_fresh_iv():
    s = EncryptedStrategy(GameSave, KEY)
    src = _sample()

    first = s.encode(src)
    second = s.encode(src)

    plaintext_len = len(PlainTextStrategy(GameSave).encode(src))
    assert len(first) >= IV_SIZE + plaintext_len
    assert (len(first) - IV_SIZE) % 16 == 0
    assert first[:IV_SIZE] != second[:IV_SIZE]
    assert first[IV_SIZE:] != second[IV_SIZE:]
    assert s.decode(first) == s.decode(second) == src


def test_encrypted_payload_hides_plaintext():
    data = EncryptedStrategy(GameSave, KEY).encode(_sample())
    assert b"forest" not in data
    assert b"tutorial_done" not in data


def test_encrypted_wrong_key_fails_or_differs():
    src = _sample()
    data = EncryptedStrategy(GameSave, KEY).encode(src)
    other = EncryptedStrategy(GameSave, bytes(reversed(KEY)))
    try:
        decoded = other.decode(data)
    except EncodingError:
        return
    assert decoded != src


@pytest.mark.parametrize("payload", [b"", b"\x00" * 5, b"\x00" * IV_SIZE, b"\x00" * (IV_SIZE + 7)])
def test_encrypted_truncated_payloads_raise_encoding_error(payload):
    with pytest.raises(EncodingError):
        EncryptedStrategy(GameSave, KEY).decode(payload)


@pytest.mark.parametrize("size", [0, 8, 15, 17, 33])
def test_encrypted_rejects_bad_key_sizes(size):
    with pytest.raises(ConfigurationError):
        EncryptedStrategy(GameSave, b"k" * size)


def test_build_strategy_selects_variant():
    assert isinstance(build_strategy(SaveMethod.RAW_BYTES, GameSave), RawBytesStrategy)
    assert isinstance(build_strategy("json", GameSave), PlainTextStrategy)
    assert isinstance(build_strategy("ENCRYPTED", GameSave, KEY), EncryptedStrategy)
    with pytest.raises(ConfigurationError):
        build_strategy(SaveMethod.ENCRYPTED, GameSave)


@pytest.mark.parametrize("method", list(SaveMethod))
def test_built_strategy_reports_its_method(method):
    strategy = build_strategy(method.value, GameSave, KEY)
    assert strategy.method is method


def test_save_method_parse():
    assert SaveMethod.parse("aes") is SaveMethod.ENCRYPTED
    assert SaveMethod.parse(" Binary ") is SaveMethod.RAW_BYTES
    assert SaveMethod.parse("plain_text") is SaveMethod.PLAIN_TEXT
    with pytest.raises(ValueError):
        SaveMethod.parse("xml")
