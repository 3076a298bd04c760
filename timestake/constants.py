"""
TimeStake Constants

This module consolidates the protocol constants and the environment driven
settings used throughout the package. Settings are read once from `.env`
at import time; protocol constants are fixed.
"""
import ast
from decimal import Decimal
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
_config = dotenv_values(".env")

LEDGER_DEFAULTS = {
    'TIMESTAKE_CONFIG':                'timestake.toml',
    'TIMESTAKE_LEDGER_ADDRESS':        '0x0000000000000000000000000000000000000000',
}

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'True',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 5


# ==================================================================================
# TOKEN UNITS
# ==================================================================================
# Amounts are Decimals of whole tokens; signed payloads carry integer base units.
TOKEN_DECIMALS = 18
TOKEN_SYMBOL = "TIME"


# ==================================================================================
# STAKING DEFAULTS
# ==================================================================================
DEFAULT_MIN_STAKE = Decimal("2000")
DEFAULT_UNBONDING_PERIOD = 3 * 24 * 60 * 60  # 3 days
DEFAULT_MIN_ORACLE_SIGNATURES = 2


# ==================================================================================
# GOVERNANCE
# ==================================================================================
GOVERNANCE_VOTING_PERIOD_SECONDS = 7 * 24 * 60 * 60  # fixed 7-day window

# Governance name -> GlobalParams field
GOVERNANCE_PARAMETERS = {
    "minStake":            "min_stake",
    "unbondingPeriod":     "unbonding_period",
    "minOracleSignatures": "min_oracle_signatures",
}


# ==================================================================================
# VIOLATION REPORT SIGNING (EIP-712 style domain separation)
# ==================================================================================
DOMAIN_NAME = "TimeStaking"
DOMAIN_VERSION = "1"
DEFAULT_CHAIN_ID = 31337

EIP712_DOMAIN_TYPE = (
    "EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)
VIOLATION_REPORT_TYPE = (
    "ViolationReport(bytes32 serverId,uint256 amount,bytes32 reportHash)"
)

SIGNATURE_LENGTH = 65  # r[32] + s[32] + v[1]
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    def __hash__(self):
        return hash(bool(self))


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
DEFAULTS = LEDGER_DEFAULTS | LOGGER_DEFAULTS
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Only known literals reach ast.literal_eval.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        return ast.literal_eval(s.title())
    return v

for key, default_raw in DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
