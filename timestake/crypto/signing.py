"""
TimeStake Crypto Signing Module

Message-hash signing, typed-data (EIP-712 style) digests and signer recovery
over secp256k1.
"""

from typing import Optional, Union

from eth_abi import encode
from eth_keys.exceptions import BadSignature, ValidationError as EthKeysValidationError

from ..constants import EIP712_DOMAIN_TYPE
from .hashing import keccak256, keccak256_text
from .keys import PrivateKey, PublicKey, Signature


def sign_message_hash(private_key: PrivateKey, msg_hash: bytes) -> Signature:
    """
    Sign a 32-byte message hash.

    Args:
        private_key: PrivateKey to sign with
        msg_hash: 32-byte hash to sign

    Returns:
        Signature
    """
    return private_key.sign_msg_hash(msg_hash)


def domain_separator(name: str, version: str, chain_id: int, verifying_contract: str) -> bytes:
    """
    EIP-712 domain separator.

    Binds every signed struct to one protocol name, version, chain and
    deployment address.
    """
    return keccak256(encode(
        ['bytes32', 'bytes32', 'bytes32', 'uint256', 'address'],
        [
            keccak256_text(EIP712_DOMAIN_TYPE),
            keccak256_text(name),
            keccak256_text(version),
            chain_id,
            verifying_contract,
        ],
    ))


def typed_data_digest(separator: bytes, struct_hash: bytes) -> bytes:
    """
    EIP-712 digest: keccak256(0x19 0x01 ‖ domainSeparator ‖ structHash).
    """
    return keccak256(b'\x19\x01' + separator + struct_hash)


def sign_typed_data(private_key: PrivateKey, separator: bytes, struct_hash: bytes) -> Signature:
    """
    Sign typed data (EIP-712 style).

    Args:
        private_key: PrivateKey to sign with
        separator: EIP-712 domain separator
        struct_hash: Hash of the struct to sign

    Returns:
        Signature
    """
    return private_key.sign_msg_hash(typed_data_digest(separator, struct_hash))


def recover_public_key(msg_hash: bytes, signature: Signature) -> PublicKey:
    """
    Recover public key from signature.

    Args:
        msg_hash: 32-byte message hash that was signed
        signature: Signature to recover from

    Returns:
        Recovered PublicKey
    """
    return PublicKey.recover_from_msg_hash(msg_hash, signature)


def recover_signer(msg_hash: bytes, signature: Union[bytes, Signature]) -> Optional[str]:
    """
    Recover the signer address of a 65-byte signature.

    Malformed input (wrong length, recovery parameter out of range,
    r/s outside the curve order, unrecoverable point) yields None.

    Args:
        msg_hash: 32-byte message hash that was signed
        signature: Raw 65-byte signature or Signature instance

    Returns:
        EIP-55 address or None
    """
    if len(msg_hash) != 32:
        return None
    try:
        if not isinstance(signature, Signature):
            signature = Signature.from_bytes(bytes(signature))
        return recover_public_key(msg_hash, signature).to_address()
    except (ValueError, TypeError, BadSignature, EthKeysValidationError):
        return None
