"""
Hashing utilities for medconsent
Tamper evidence for consent history and the audit trail
"""

from .hash import secure_hash, chain_hash, HashChain

__all__ = [
    "secure_hash",
    "chain_hash",
    "HashChain",
]
