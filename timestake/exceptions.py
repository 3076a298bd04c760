"""
TimeStake Exceptions

Every failure surfaced by the ledger derives from TimeStakeError and belongs
to exactly one category: ValidationError, AuthorizationError,
VerificationError, PausedError or ReentrancyError.
"""


class TimeStakeError(Exception):
    """Base exception for TimeStake."""
    pass


class ConfigurationError(TimeStakeError):
    """Configuration error."""
    pass


# ══════════════════════════════════════════════════════════════════════
#  CATEGORIES
# ══════════════════════════════════════════════════════════════════════

class ValidationError(TimeStakeError):
    """A precondition on ledger state or arguments does not hold."""
    pass


class AuthorizationError(TimeStakeError):
    """Caller lacks ownership or privilege."""
    pass


class VerificationError(TimeStakeError):
    """Signature or quorum verification failed."""
    pass


class PausedError(TimeStakeError):
    """Mutating operation attempted while the ledger is paused."""
    pass


class ReentrancyError(TimeStakeError):
    """A collaborator callback re-entered a mutating operation."""
    pass


# ══════════════════════════════════════════════════════════════════════
#  VALIDATION
# ══════════════════════════════════════════════════════════════════════

class InvalidAmountError(ValidationError):
    """Amount is negative, zero where forbidden, or too precise."""
    pass


class InvalidAddressError(ValidationError):
    """Invalid address format."""
    pass


class InvalidRegionError(ValidationError):
    """Region is not active."""
    pass


class AlreadyRegisteredError(ValidationError):
    """Server id already holds an active bond or belongs to another owner."""
    pass


class InsufficientFundsError(ValidationError):
    """Caller balance or allowance is below the required stake."""
    def __init__(self, required, available):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient stake: {available} TIME available (required: {required} TIME)"
        )


class TransferFailedError(ValidationError):
    """Balance service refused or failed a transfer."""
    pass


class ServerNotFoundError(ValidationError):
    """No bond recorded for the server id."""
    pass


class NotActiveError(ValidationError):
    """Bond is not active."""
    pass


class StillActiveError(ValidationError):
    """Bond must be unbonding before withdrawal."""
    pass


class PeriodNotElapsedError(ValidationError):
    """Unbonding period has not elapsed yet."""
    pass


class NoFundsToWithdrawError(ValidationError):
    """Bond has already been drained."""
    pass


class SlashExceedsStakeError(ValidationError):
    """Requested slash is larger than the staked amount."""
    pass


class RegionExistsError(ValidationError):
    """Region is already active."""
    pass


class RegionNotFoundError(ValidationError):
    """Region is not active."""
    pass


class RegionHasActiveServersError(ValidationError):
    """Region still lists member bonds."""
    pass


class OracleExistsError(ValidationError):
    """Address is already an oracle."""
    pass


class OracleNotFoundError(ValidationError):
    """Address is not an oracle."""
    pass


class AlreadyPausedError(ValidationError):
    """Ledger is already paused."""
    pass


class NotPausedError(ValidationError):
    """Ledger is not paused."""
    pass


# ══════════════════════════════════════════════════════════════════════
#  AUTHORIZATION
# ══════════════════════════════════════════════════════════════════════

class NotOwnerError(AuthorizationError):
    """Caller does not own the bond."""
    pass


class NotPrivilegedError(AuthorizationError):
    """Caller is not the privileged operator."""
    pass


# ══════════════════════════════════════════════════════════════════════
#  VERIFICATION
# ══════════════════════════════════════════════════════════════════════

class QuorumNotReachedError(VerificationError):
    """Fewer distinct authorized signers than the threshold."""
    def __init__(self, valid: int, threshold: int):
        self.valid = valid
        self.threshold = threshold
        super().__init__(
            f"Insufficient oracle signatures: {valid} distinct valid signer(s), "
            f"{threshold} required"
        )


class ReportAlreadyProcessedError(VerificationError):
    """The violation report digest has already been used to slash."""
    pass
