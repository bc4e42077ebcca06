"""
Logical clock for medconsent
Externally supplied, monotonically non-decreasing time (e.g. a block height)
"""

import structlog

from ..constants import Limits
from ..exceptions import ValidationError

logger = structlog.get_logger(__name__)


class LogicalClock:
    """Holds the current logical time; never moves backwards"""

    def __init__(self, initial: int = 0):
        if initial < 0 or initial > Limits.MAX_LOGICAL_TIME:
            raise ValidationError("Logical time out of range", field="initial")
        self._height = initial

    def now(self) -> int:
        return self._height

    def advance(self, blocks: int = 1) -> int:
        """Move the clock forward by blocks and return the new time"""
        if blocks < 0:
            raise ValidationError("Logical clock cannot move backwards", field="blocks")
        if self._height + blocks > Limits.MAX_LOGICAL_TIME:
            raise ValidationError("Logical time out of range", field="blocks")
        self._height += blocks
        logger.debug("Logical clock advanced", blocks=blocks, height=self._height)
        return self._height

    def set(self, height: int) -> int:
        """Jump to an absolute time that is not earlier than the current one"""
        if height < self._height:
            raise ValidationError(
                "Logical clock cannot move backwards",
                field="height",
                details={"current": self._height, "requested": height}
            )
        if height > Limits.MAX_LOGICAL_TIME:
            raise ValidationError("Logical time out of range", field="height")
        self._height = height
        return self._height
