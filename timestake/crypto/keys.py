"""
TimeStake Crypto Keys Module

secp256k1 keys and signatures for oracle report signing, wrapping eth-keys.
"""

import secrets
from typing import Tuple, Union

from eth_keys.datatypes import (
    PrivateKey as EthPrivateKey,
    PublicKey as EthPublicKey,
    Signature as EthSignature,
)
from eth_utils import decode_hex

from ..constants import SIGNATURE_LENGTH


class PrivateKey:
    """
    secp256k1 private key used by oracles to sign violation reports.
    """

    def __init__(self, key_bytes: bytes):
        """
        Args:
            key_bytes: 32 bytes of private key data

        Raises:
            ValueError: If key bytes are invalid
        """
        if len(key_bytes) != 32:
            raise ValueError(f"Private key must be 32 bytes, got {len(key_bytes)}")
        self._key = EthPrivateKey(key_bytes)

    @classmethod
    def from_hex(cls, hex_str: str) -> "PrivateKey":
        return cls(decode_hex(hex_str))

    @classmethod
    def from_int(cls, key_int: int) -> "PrivateKey":
        return cls(key_int.to_bytes(32, byteorder='big'))

    @classmethod
    def generate(cls) -> "PrivateKey":
        return cls(secrets.token_bytes(32))

    @property
    def public_key(self) -> "PublicKey":
        return PublicKey(self._key.public_key)

    @property
    def address(self) -> str:
        """EIP-55 address of the matching public key."""
        return self.public_key.to_address()

    def to_bytes(self) -> bytes:
        return self._key.to_bytes()

    def sign_msg_hash(self, msg_hash: bytes) -> "Signature":
        """
        Sign a 32-byte message hash.

        Args:
            msg_hash: 32-byte hash to sign

        Returns:
            Signature instance
        """
        if len(msg_hash) != 32:
            raise ValueError(f"Message hash must be 32 bytes, got {len(msg_hash)}")
        return Signature(self._key.sign_msg_hash(msg_hash))

    def __repr__(self) -> str:
        return f"PrivateKey({self.address})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, PrivateKey):
            return False
        return self._key == other._key


class PublicKey:
    """
    secp256k1 public key.
    """

    def __init__(self, key: Union[EthPublicKey, bytes]):
        """
        Args:
            key: eth-keys PublicKey or 64/65-byte uncompressed public key
        """
        if isinstance(key, EthPublicKey):
            self._key = key
        elif isinstance(key, bytes):
            if len(key) == 65 and key[0] == 0x04:
                key = key[1:]
            if len(key) != 64:
                raise ValueError(f"Invalid public key length: {len(key)}")
            self._key = EthPublicKey(key)
        else:
            raise TypeError(f"Invalid public key type: {type(key)}")

    @classmethod
    def recover_from_msg_hash(cls, msg_hash: bytes, signature: "Signature") -> "PublicKey":
        """
        Recover public key from signature.

        Raises:
            eth_keys.exceptions.BadSignature: If no key can be recovered
        """
        return cls(signature._signature.recover_public_key_from_msg_hash(msg_hash))

    def to_bytes(self) -> bytes:
        """Raw 64-byte uncompressed key (x || y)."""
        return self._key.to_bytes()

    def to_hex(self) -> str:
        return '0x' + self.to_bytes().hex()

    def to_address(self) -> str:
        from .address import public_key_to_address
        return public_key_to_address(self)

    def __repr__(self) -> str:
        return f"PublicKey({self.to_hex()[:18]}...)"

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicKey):
            return False
        return self._key == other._key

    def __hash__(self) -> int:
        return hash(self._key.to_bytes())


class Signature:
    """
    ECDSA signature (v, r, s format).
    """

    def __init__(self, signature: EthSignature):
        self._signature = signature

    @classmethod
    def from_vrs(cls, v: int, r: int, s: int) -> "Signature":
        """
        Create from v, r, s components.

        Args:
            v: Recovery parameter (27 or 28, or 0/1)

        Raises:
            eth_keys.exceptions.ValidationError: If a component is out of range
        """
        if v >= 27:
            v -= 27
        return cls(EthSignature(vrs=(v, r, s)))

    @classmethod
    def from_bytes(cls, sig_bytes: bytes) -> "Signature":
        """
        Create from 65-byte signature (r[32] + s[32] + v[1]).
        """
        if len(sig_bytes) != SIGNATURE_LENGTH:
            raise ValueError(
                f"Signature must be {SIGNATURE_LENGTH} bytes, got {len(sig_bytes)}"
            )
        r = int.from_bytes(sig_bytes[0:32], byteorder='big')
        s = int.from_bytes(sig_bytes[32:64], byteorder='big')
        v = sig_bytes[64]
        return cls.from_vrs(v, r, s)

    @property
    def v(self) -> int:
        """Recovery parameter (0 or 1)."""
        return self._signature.v

    @property
    def r(self) -> int:
        return self._signature.r

    @property
    def s(self) -> int:
        return self._signature.s

    def to_bytes(self) -> bytes:
        """65-byte signature with Ethereum style v (27/28)."""
        r_bytes = self.r.to_bytes(32, byteorder='big')
        s_bytes = self.s.to_bytes(32, byteorder='big')
        return r_bytes + s_bytes + bytes([self.v + 27])

    def to_hex(self) -> str:
        return '0x' + self.to_bytes().hex()

    def __repr__(self) -> str:
        return f"Signature(v={self.v}, r={hex(self.r)[:10]}..., s={hex(self.s)[:10]}...)"


def generate_keypair() -> Tuple[PrivateKey, PublicKey]:
    """
    Generate a new keypair.

    Returns:
        Tuple of (PrivateKey, PublicKey)
    """
    private_key = PrivateKey.generate()
    return private_key, private_key.public_key
