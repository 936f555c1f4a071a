from __future__ import annotations

import allure
from web3 import Web3

from truebit_tasks.merkle import ZERO_WORD, merkle_root, merkle_root_hex, split_words

pytestmark = [
    allure.epic("Task Publishing"),
    allure.feature("Integrity Root"),
]


def _pair(left: bytes, right: bytes) -> bytes:
    return bytes(Web3.keccak(left + right))


def test_merkle_root_is_deterministic() -> None:
    data = bytes(range(256)) * 3
    assert merkle_root(data) == merkle_root(bytes(data))
    assert merkle_root_hex(data) == merkle_root_hex(data)


def test_merkle_root_changes_with_content() -> None:
    assert merkle_root(b"abc") != merkle_root(b"abd")


def test_split_words_pads_last_word() -> None:
    words = split_words(b"x" * 33)
    assert len(words) == 2
    assert words[1] == b"x" + b"\x00" * 31


def test_empty_input_has_zero_root() -> None:
    assert merkle_root(b"") == ZERO_WORD


def test_single_word_is_its_own_root() -> None:
    assert merkle_root(b"\x01") == b"\x01" + b"\x00" * 31


def test_root_pads_leaves_to_power_of_two() -> None:
    a, b, c = (bytes([n]) * 32 for n in (1, 2, 3))
    expected = _pair(_pair(a, b), _pair(c, ZERO_WORD))
    assert merkle_root(a + b + c) == expected


def test_root_hex_is_prefixed_32_bytes() -> None:
    value = merkle_root_hex(b"wasm")
    assert value.startswith("0x")
    assert len(value) == 66
