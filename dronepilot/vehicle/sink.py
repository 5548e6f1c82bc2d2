"""
Motion instruction sink

The only channel that drives vehicle motion. While the controller owns
the sink, instructions from any other source are rejected, so the
controller's output always wins when it is active.
"""

import logging
import threading
from typing import Any, Optional

from ..control.types import MotionInstruction

logger = logging.getLogger(__name__)


class MotionSink:
    """Single-writer holder for the vehicle's current motion instruction"""

    def __init__(self, initial_altitude: float = 0.0):
        self._lock = threading.Lock()
        self._owner: Optional[Any] = None
        self._instruction = MotionInstruction.hold(initial_altitude)
        self._rejected = 0

    @property
    def instruction(self) -> MotionInstruction:
        """Latest accepted instruction"""
        return self._instruction

    @property
    def owner(self) -> Optional[Any]:
        return self._owner

    @property
    def is_owned(self) -> bool:
        return self._owner is not None

    @property
    def rejected_count(self) -> int:
        """Number of writes refused because another source owned the sink"""
        return self._rejected

    def acquire(self, owner: Any) -> bool:
        """
        Take exclusive ownership

        Returns:
            True if ``owner`` now holds the sink
        """
        with self._lock:
            if self._owner is None:
                self._owner = owner
                logger.debug(f"Motion sink acquired by {owner!r}")
            return self._owner is owner

    def release(self, owner: Any):
        """Give up ownership; ignored if ``owner`` does not hold the sink"""
        with self._lock:
            if self._owner is owner:
                self._owner = None
                logger.debug(f"Motion sink released by {owner!r}")

    def write(self, instruction: MotionInstruction, source: Any = None) -> bool:
        """
        Write an instruction

        Args:
            instruction: Instruction to apply from the next vehicle update
            source: Writer identity; must match the owner while owned

        Returns:
            True if accepted
        """
        with self._lock:
            if self._owner is not None and source is not self._owner:
                self._rejected += 1
                logger.debug(f"Motion sink write from {source!r} rejected (owned by {self._owner!r})")
                return False
            self._instruction = instruction
            return True
