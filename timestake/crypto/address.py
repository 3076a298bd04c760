"""
TimeStake Crypto Address Module

Ethereum-style addresses with EIP-55 checksum for oracle identities.
"""

from eth_utils import is_address, to_checksum_address

from .hashing import keccak256


def public_key_to_address(public_key) -> str:
    """
    Derive address from public key: last 20 bytes of keccak256(pubkey).

    Args:
        public_key: PublicKey instance or 64/65-byte uncompressed key

    Returns:
        Checksum address (0x prefixed)
    """
    if hasattr(public_key, 'to_bytes'):
        pub_bytes = public_key.to_bytes()
    else:
        pub_bytes = public_key

    if len(pub_bytes) == 65 and pub_bytes[0] == 0x04:
        pub_bytes = pub_bytes[1:]
    if len(pub_bytes) != 64:
        raise ValueError(f"secp256k1 public key must be 64 bytes, got {len(pub_bytes)}")

    return to_checksum_address(keccak256(pub_bytes)[-20:])


def is_valid_address(address) -> bool:
    """True for 20-byte hex addresses (checksummed or all one case)."""
    return isinstance(address, str) and is_address(address)


def normalize_address(address: str) -> str:
    """
    Normalize an address to its EIP-55 checksum form.

    Raises:
        ValueError: If the address is not a valid 20-byte hex address
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    return to_checksum_address(address)
