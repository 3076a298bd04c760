"""
TimeStake Crypto Module

Cryptographic primitives used by the ledger:
- secp256k1 keys and signatures (oracle report signing)
- Keccak-256 hashing
- EIP-55 addresses
- EIP-712 style typed-data digests
"""

from .keys import PrivateKey, PublicKey, Signature, generate_keypair
from .signing import (
    domain_separator,
    recover_public_key,
    recover_signer,
    sign_message_hash,
    sign_typed_data,
    typed_data_digest,
)
from .hashing import keccak256, keccak256_hex, keccak256_text
from .address import is_valid_address, normalize_address, public_key_to_address

__all__ = [
    # Keys
    "PrivateKey",
    "PublicKey",
    "Signature",
    "generate_keypair",
    # Signing
    "domain_separator",
    "recover_public_key",
    "recover_signer",
    "sign_message_hash",
    "sign_typed_data",
    "typed_data_digest",
    # Hashing
    "keccak256",
    "keccak256_hex",
    "keccak256_text",
    # Address
    "is_valid_address",
    "normalize_address",
    "public_key_to_address",
]
