"""
TimeStake Crypto Hashing Module

Keccak-256 is used for every digest the ledger signs or derives:
server ids, report hashes, EIP-712 domain separators and addresses.
"""

from typing import Union

from Crypto.Hash import keccak as _keccak


def _to_bytes(data: Union[bytes, str]) -> bytes:
    if isinstance(data, str):
        if data.startswith('0x') or data.startswith('0X'):
            return bytes.fromhex(data[2:])
        return bytes.fromhex(data)
    return bytes(data)


def keccak256(data: Union[bytes, str]) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum standard).

    Args:
        data: Input bytes or hex string

    Returns:
        32-byte hash
    """
    k = _keccak.new(digest_bits=256)
    k.update(_to_bytes(data))
    return k.digest()


def keccak256_hex(data: Union[bytes, str]) -> str:
    """Keccak-256 as a 0x-prefixed hex string."""
    return '0x' + keccak256(data).hex()


def keccak256_text(text: str) -> bytes:
    """Keccak-256 of a UTF-8 string (type strings, names)."""
    return keccak256(text.encode('utf-8'))
