"""
Hashing utilities for medconsent
Secure hashing and hash chains for data integrity
"""

import hashlib
import structlog

logger = structlog.get_logger(__name__)


def secure_hash(data: bytes) -> str:
    """
    Create secure hash of data

    Args:
        data: Data to hash

    Returns:
        Hex-encoded SHA-256 digest
    """
    return hashlib.sha256(data).hexdigest()


def chain_hash(previous_hash: str, data: bytes) -> str:
    """Hash one link of a chain: the previous hash followed by the payload"""
    return secure_hash(previous_hash.encode('utf-8') + data)


class HashChain:
    """Hash chain for tamper-evident logging"""

    def __init__(self, initial_hash: str | None = None):
        self.current_hash = initial_hash or secure_hash(b"genesis")
        self.chain_length = 0

    def add_entry(self, data: bytes) -> str:
        """Add entry to hash chain"""
        self.current_hash = chain_hash(self.current_hash, data)
        self.chain_length += 1

        logger.debug("Added hash chain entry",
                    length=self.chain_length,
                    hash=self.current_hash[:16])

        return self.current_hash
