"""
Registries

Provides:
  - RegionRegistry  : active regions and member-bond lists (regions.py)
  - OracleSet       : authorized oracle signers (oracles.py)
"""

from .regions import RegionRegistry
from .oracles import OracleSet

__all__ = [
    "RegionRegistry",
    "OracleSet",
]
