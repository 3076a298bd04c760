"""
Violation report verification.

Provides:
  - ThresholdVerifier, QuorumResult : quorum check over oracle signatures
  - ReportDomain                    : EIP-712 style digest of a violation report
  - derive_server_id, violation_report_hash, sign_violation_report
"""

from .reports import (
    ReportDomain,
    derive_server_id,
    normalize_server_id,
    sign_violation_report,
    to_base_units,
    to_bytes32,
    violation_report_hash,
)
from .threshold import QuorumResult, ThresholdVerifier

__all__ = [
    "QuorumResult",
    "ThresholdVerifier",
    "ReportDomain",
    "derive_server_id",
    "normalize_server_id",
    "sign_violation_report",
    "to_base_units",
    "to_bytes32",
    "violation_report_hash",
]
