"""
Violation Reports

Encoding of the values oracles sign. A report names a server, a slash amount
and an off-system evidence hash; the signed digest is EIP-712 style so a
signature binds to exactly one report on one ledger deployment.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Union

from eth_abi import encode

from ..constants import (
    DEFAULT_CHAIN_ID,
    DOMAIN_NAME,
    DOMAIN_VERSION,
    TOKEN_DECIMALS,
    VIOLATION_REPORT_TYPE,
    ZERO_ADDRESS,
)
from ..crypto.hashing import keccak256, keccak256_hex, keccak256_text
from ..crypto.keys import PrivateKey
from ..crypto.signing import domain_separator, sign_typed_data, typed_data_digest
from ..exceptions import InvalidAmountError, ValidationError

_BASE_UNIT = Decimal(10) ** TOKEN_DECIMALS


def to_base_units(amount: Union[Decimal, int, str]) -> int:
    """
    Convert a token amount to integer base units.

    Raises:
        InvalidAmountError: If negative or finer than one base unit
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    if not value.is_finite() or value < 0:
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    units = value * _BASE_UNIT
    if units != units.to_integral_value():
        raise InvalidAmountError(
            f"Amount {amount} is more precise than {TOKEN_DECIMALS} decimals"
        )
    return int(units)


def to_bytes32(value: Union[str, bytes], label: str = "value") -> bytes:
    """Parse a 0x-prefixed 32-byte hex string (or raw 32 bytes)."""
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str) and value[:2] in ("0x", "0X"):
        try:
            raw = bytes.fromhex(value[2:])
        except ValueError:
            raise ValidationError(f"Invalid {label}: {value!r}")
    else:
        raise ValidationError(f"Invalid {label}: {value!r}")
    if len(raw) != 32:
        raise ValidationError(f"Invalid {label}: expected 32 bytes, got {len(raw)}")
    return raw


def normalize_server_id(server_id: Union[str, bytes]) -> str:
    """Canonical server id: lowercase 0x-prefixed 32-byte hex."""
    return "0x" + to_bytes32(server_id, "server id").hex()


def derive_server_id(owner: str, region: str) -> str:
    """
    Conventional server id: keccak256(abi.encode(address owner, string region)).
    """
    return keccak256_hex(encode(['address', 'string'], [owner, region]))


def violation_report_hash(server_id: str, amount: Union[Decimal, int, str]) -> str:
    """
    Conventional evidence hash: keccak256(abi.encode(bytes32, uint256)).
    """
    return keccak256_hex(encode(
        ['bytes32', 'uint256'],
        [to_bytes32(server_id, "server id"), to_base_units(amount)],
    ))


@dataclass(frozen=True)
class ReportDomain:
    """
    Signing domain of one ledger deployment.

    Attributes:
        name: Protocol name
        version: Protocol version
        chain_id: Chain the ledger lives on
        ledger_address: Address of the ledger deployment
    """
    name: str = DOMAIN_NAME
    version: str = DOMAIN_VERSION
    chain_id: int = DEFAULT_CHAIN_ID
    ledger_address: str = ZERO_ADDRESS

    @property
    def separator(self) -> bytes:
        return domain_separator(self.name, self.version, self.chain_id, self.ledger_address)

    def struct_hash(
        self,
        server_id: str,
        amount: Union[Decimal, int, str],
        report_hash: Union[str, bytes],
    ) -> bytes:
        return keccak256(encode(
            ['bytes32', 'bytes32', 'uint256', 'bytes32'],
            [
                keccak256_text(VIOLATION_REPORT_TYPE),
                to_bytes32(server_id, "server id"),
                to_base_units(amount),
                to_bytes32(report_hash, "report hash"),
            ],
        ))

    def digest(
        self,
        server_id: str,
        amount: Union[Decimal, int, str],
        report_hash: Union[str, bytes],
    ) -> bytes:
        """The 32-byte digest oracles sign for one violation report."""
        return typed_data_digest(self.separator, self.struct_hash(server_id, amount, report_hash))

    def sign(
        self,
        private_key: PrivateKey,
        server_id: str,
        amount: Union[Decimal, int, str],
        report_hash: Union[str, bytes],
    ) -> bytes:
        """Oracle-side helper: 65-byte signature over the report digest."""
        signature = sign_typed_data(
            private_key,
            self.separator,
            self.struct_hash(server_id, amount, report_hash),
        )
        return signature.to_bytes()


def sign_violation_report(
    private_key: PrivateKey,
    server_id: str,
    amount: Union[Decimal, int, str],
    report_hash: Union[str, bytes],
    domain: ReportDomain = ReportDomain(),
) -> bytes:
    """Sign a violation report for `domain` (defaults to the local dev domain)."""
    return domain.sign(private_key, server_id, amount, report_hash)
