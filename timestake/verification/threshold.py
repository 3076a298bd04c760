"""
Threshold Verifier

Stateless quorum check over oracle signatures. Each signature is mapped to
a signer through the injected recoverer; signers outside the oracle set and
repeat signers are dropped, and the report is authentic when the number of
distinct authorized signers reaches the threshold.
"""

from dataclasses import dataclass
from typing import AbstractSet, Any, Dict, Iterable, List, Tuple

from ..exceptions import QuorumNotReachedError, VerificationError
from ..interfaces import SignatureRecoverer
from ..logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class QuorumResult:
    """
    Outcome of one verification.

    Attributes:
        signers: Distinct authorized signers, in submission order
        rejected: Signatures that did not count (malformed, unknown or repeat)
        threshold: Distinct signers required
    """
    signers: Tuple[str, ...]
    rejected: int
    threshold: int

    @property
    def valid_count(self) -> int:
        return len(self.signers)

    @property
    def reached(self) -> bool:
        return self.valid_count >= self.threshold

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signers": list(self.signers),
            "validCount": self.valid_count,
            "rejected": self.rejected,
            "threshold": self.threshold,
            "reached": self.reached,
        }


class ThresholdVerifier:
    """Counts distinct oracle signers over a report digest."""

    def __init__(self, recoverer: SignatureRecoverer):
        self.recoverer = recoverer

    def evaluate(
        self,
        digest: bytes,
        signatures: Iterable[bytes],
        oracles: AbstractSet[str],
        threshold: int,
    ) -> QuorumResult:
        if threshold < 1:
            raise VerificationError(f"Invalid signature threshold: {threshold}")

        accepted: List[str] = []
        seen = set()
        rejected = 0
        for signature in signatures:
            signer = None
            if isinstance(signature, (bytes, bytearray, memoryview)):
                signer = self.recoverer.recover(digest, bytes(signature))
            if signer is None or signer not in oracles or signer in seen:
                rejected += 1
                continue
            seen.add(signer)
            accepted.append(signer)

        return QuorumResult(signers=tuple(accepted), rejected=rejected, threshold=threshold)

    def verify(
        self,
        digest: bytes,
        signatures: Iterable[bytes],
        oracles: AbstractSet[str],
        threshold: int,
    ) -> QuorumResult:
        """
        Evaluate and require the quorum.

        Raises:
            VerificationError: threshold < 1
            QuorumNotReachedError: fewer distinct authorized signers than threshold
        """
        result = self.evaluate(digest, signatures, oracles, threshold)
        if not result.reached:
            logger.debug(
                f"Quorum not reached: {result.valid_count}/{threshold} "
                f"({result.rejected} rejected)"
            )
            raise QuorumNotReachedError(result.valid_count, threshold)
        return result
