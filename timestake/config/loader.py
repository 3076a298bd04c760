"""
TimeStake TOML Configuration Loader

Loads timestake.toml with environment variable overrides.

Environment variable mapping:
    [staking] min_stake               → TIMESTAKE_MIN_STAKE
    [staking] unbonding_period        → TIMESTAKE_UNBONDING_PERIOD
    [staking] min_oracle_signatures   → TIMESTAKE_MIN_ORACLE_SIGNATURES
    [staking] prune_withdrawn_members → TIMESTAKE_PRUNE_WITHDRAWN_MEMBERS
    [domain]  chain_id                → TIMESTAKE_CHAIN_ID
    [domain]  ledger_address          → TIMESTAKE_LEDGER_ADDRESS
    [logging] level                   → TIMESTAKE_LOG_LEVEL
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from ..constants import (
    DEFAULT_CHAIN_ID,
    DEFAULT_MIN_ORACLE_SIGNATURES,
    DEFAULT_MIN_STAKE,
    DEFAULT_UNBONDING_PERIOD,
    DOMAIN_NAME,
    DOMAIN_VERSION,
    LOG_LEVEL,
    TIMESTAKE_CONFIG,
    TIMESTAKE_LEDGER_ADDRESS,
)
from ..crypto.address import is_valid_address, normalize_address
from ..exceptions import ConfigurationError
from ..logger import get_logger
from ..store import GlobalParams
from ..verification.reports import ReportDomain

logger = get_logger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _decimal(value: Any, name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ConfigurationError(f"{name} must be a number, got {value!r}")


def _int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------

@dataclass
class StakingConfig:
    """[staking] section: genesis values of the global parameters."""
    min_stake: Decimal = DEFAULT_MIN_STAKE
    unbonding_period: int = DEFAULT_UNBONDING_PERIOD
    min_oracle_signatures: int = DEFAULT_MIN_ORACLE_SIGNATURES
    prune_withdrawn_members: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StakingConfig":
        return cls(
            min_stake=_decimal(data.get("min_stake", DEFAULT_MIN_STAKE), "min_stake"),
            unbonding_period=_int(
                data.get("unbonding_period", DEFAULT_UNBONDING_PERIOD), "unbonding_period"
            ),
            min_oracle_signatures=_int(
                data.get("min_oracle_signatures", DEFAULT_MIN_ORACLE_SIGNATURES),
                "min_oracle_signatures",
            ),
            prune_withdrawn_members=bool(data.get("prune_withdrawn_members", False)),
        )

    def apply_env(self) -> None:
        """Override from environment variables."""
        if v := os.environ.get("TIMESTAKE_MIN_STAKE"):
            self.min_stake = _decimal(v, "TIMESTAKE_MIN_STAKE")
        if v := os.environ.get("TIMESTAKE_UNBONDING_PERIOD"):
            self.unbonding_period = _int(v, "TIMESTAKE_UNBONDING_PERIOD")
        if v := os.environ.get("TIMESTAKE_MIN_ORACLE_SIGNATURES"):
            self.min_oracle_signatures = _int(v, "TIMESTAKE_MIN_ORACLE_SIGNATURES")
        if v := os.environ.get("TIMESTAKE_PRUNE_WITHDRAWN_MEMBERS"):
            self.prune_withdrawn_members = _env_bool(v)

    def validate(self) -> None:
        if not self.min_stake.is_finite() or self.min_stake < 0:
            raise ConfigurationError(f"min_stake must be >= 0, got {self.min_stake}")
        if self.unbonding_period < 0:
            raise ConfigurationError("unbonding_period must be >= 0")
        if self.min_oracle_signatures < 1:
            raise ConfigurationError("min_oracle_signatures must be >= 1")

    def to_params(self) -> GlobalParams:
        return GlobalParams(
            min_stake=self.min_stake,
            unbonding_period=self.unbonding_period,
            min_oracle_signatures=self.min_oracle_signatures,
        )


@dataclass
class DomainConfig:
    """[domain] section: signing domain of violation reports."""
    name: str = DOMAIN_NAME
    version: str = DOMAIN_VERSION
    chain_id: int = DEFAULT_CHAIN_ID
    ledger_address: str = str(TIMESTAKE_LEDGER_ADDRESS)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DomainConfig":
        return cls(
            name=data.get("name", DOMAIN_NAME),
            version=str(data.get("version", DOMAIN_VERSION)),
            chain_id=_int(data.get("chain_id", DEFAULT_CHAIN_ID), "chain_id"),
            ledger_address=data.get("ledger_address", str(TIMESTAKE_LEDGER_ADDRESS)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("TIMESTAKE_CHAIN_ID"):
            self.chain_id = _int(v, "TIMESTAKE_CHAIN_ID")
        if v := os.environ.get("TIMESTAKE_LEDGER_ADDRESS"):
            self.ledger_address = v

    def validate(self) -> None:
        if not self.name:
            raise ConfigurationError("domain name cannot be empty")
        if self.chain_id < 1:
            raise ConfigurationError("chain_id must be >= 1")
        if not is_valid_address(self.ledger_address):
            raise ConfigurationError(f"Invalid ledger_address: {self.ledger_address!r}")

    def to_domain(self) -> ReportDomain:
        return ReportDomain(
            name=self.name,
            version=self.version,
            chain_id=self.chain_id,
            ledger_address=normalize_address(self.ledger_address),
        )


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

@dataclass
class LedgerConfig:
    """
    Unified ledger configuration.

    Loads every section of timestake.toml and applies environment variable
    overrides.
    """
    staking: StakingConfig = field(default_factory=StakingConfig)
    domain: DomainConfig = field(default_factory=DomainConfig)
    log_level: str = str(LOG_LEVEL)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerConfig":
        """Create LedgerConfig from a parsed TOML dict."""
        return cls(
            staking=StakingConfig.from_dict(data.get("staking", {})),
            domain=DomainConfig.from_dict(data.get("domain", {})),
            log_level=data.get("logging", {}).get("level", str(LOG_LEVEL)),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "LedgerConfig":
        """
        Load configuration from a TOML file.

        A missing file yields defaults (with env overrides).
        """
        path = Path(config_path)
        if not path.exists():
            logger.debug(f"Config file not found: {config_path}, using defaults")
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.staking.apply_env()
        self.domain.apply_env()
        if v := os.environ.get("TIMESTAKE_LOG_LEVEL"):
            self.log_level = v

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        self.staking.validate()
        self.domain.validate()
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigurationError(f"Invalid log_level: {self.log_level}")
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics)."""
        return {
            "staking": {
                "min_stake": str(self.staking.min_stake),
                "unbonding_period": self.staking.unbonding_period,
                "min_oracle_signatures": self.staking.min_oracle_signatures,
                "prune_withdrawn_members": self.staking.prune_withdrawn_members,
            },
            "domain": {
                "name": self.domain.name,
                "version": self.domain.version,
                "chain_id": self.domain.chain_id,
                "ledger_address": self.domain.ledger_address,
            },
            "logging": {"level": self.log_level},
        }


def load_config(path: Optional[str] = None) -> LedgerConfig:
    """
    Load ledger configuration.

    Resolution order:
        1. Explicit *path* argument
        2. TIMESTAKE_CONFIG env var
        3. ./timestake.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("TIMESTAKE_CONFIG", str(TIMESTAKE_CONFIG))

    cfg = LedgerConfig.from_file(path)
    cfg.validate()
    return cfg
