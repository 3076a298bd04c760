"""
TimeStake Configuration

Loads timestake.toml. Environment variables override TOML values.
"""

from .loader import (
    DomainConfig,
    LedgerConfig,
    StakingConfig,
    load_config,
)

__all__ = [
    "DomainConfig",
    "LedgerConfig",
    "StakingConfig",
    "load_config",
]
