"""Integrity root over a task binary, matching the on-chain filesystem verifier."""

from __future__ import annotations

from web3 import Web3

WORD_SIZE = 32
ZERO_WORD = b"\x00" * WORD_SIZE


def split_words(data: bytes) -> list[bytes]:
    """Split ``data`` into 32-byte words, zero-padding the last one."""

    words = []
    for offset in range(0, len(data), WORD_SIZE):
        word = data[offset : offset + WORD_SIZE]
        words.append(word.ljust(WORD_SIZE, b"\x00"))
    return words


def merkle_root(data: bytes) -> bytes:
    """Return the 32-byte merkle root of ``data``.

    Leaves are the 32-byte words of the binary, padded with zero words up to
    the next power of two. Each parent is ``keccak256(left || right)``, the
    same as Solidity ``keccak256(abi.encodePacked(bytes32, bytes32))``.
    """

    level = split_words(data)
    if not level:
        return ZERO_WORD
    width = 1
    while width < len(level):
        width *= 2
    level.extend([ZERO_WORD] * (width - len(level)))
    while len(level) > 1:
        level = [_hash_pair(level[i], level[i + 1]) for i in range(0, len(level), 2)]
    return level[0]


def merkle_root_hex(data: bytes) -> str:
    return "0x" + merkle_root(data).hex()


def _hash_pair(left: bytes, right: bytes) -> bytes:
    return bytes(Web3.keccak(left + right))
