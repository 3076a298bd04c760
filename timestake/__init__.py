"""
TimeStake Package

Collateralized server registry with threshold-signed oracle slashing and
parameter governance.

Core imports are lazily loaded. For direct module access, import from
submodules:

    from timestake.service import TimeStaking
    from timestake.crypto import PrivateKey
    from timestake.exceptions import QuorumNotReachedError
"""

__version__ = "0.1.0"


def __getattr__(name):
    """Lazy module loading so `import timestake` stays light."""
    if name == 'TimeStaking':
        from .service import TimeStaking
        return TimeStaking
    elif name == 'LedgerConfig':
        from .config import LedgerConfig
        return LedgerConfig
    elif name == 'load_config':
        from .config import load_config
        return load_config
    elif name == 'TimeStakeError':
        from .exceptions import TimeStakeError
        return TimeStakeError
    raise AttributeError(f"module 'timestake' has no attribute {name!r}")


__all__ = ['TimeStaking', 'LedgerConfig', 'load_config', 'TimeStakeError']
