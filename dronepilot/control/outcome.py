"""
Deferred outcome

Single-assignment result handle returned by every controller intent and
by missions. It settles exactly once, to a value or to an error, from
inside a tick; later settle attempts are ignored. Other threads (bridge,
REST API) block on it with ``result(timeout)``.
"""

import logging
import threading
from typing import Any, Callable, List, Optional

logger = logging.getLogger(__name__)


class Outcome:
    """Single-assignment result of a command or mission"""

    def __init__(self, label: str = ""):
        self.label = label
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._value: Any = None
        self._error: Optional[BaseException] = None
        self._callbacks: List[Callable[['Outcome'], None]] = []

    def __repr__(self) -> str:
        if not self.done():
            status = "pending"
        elif self._error is not None:
            status = f"failed: {self._error!r}"
        else:
            status = "succeeded"
        return f"<Outcome {self.label} {status}>"

    # ==================== Settlement ====================

    def resolve(self, value: Any = None) -> bool:
        """
        Settle with a success value

        Returns:
            True if this call settled the outcome, False if it was
            already settled
        """
        return self._settle(value, None)

    def reject(self, error: BaseException) -> bool:
        """
        Settle with an error

        Returns:
            True if this call settled the outcome, False if it was
            already settled
        """
        return self._settle(None, error)

    def _settle(self, value: Any, error: Optional[BaseException]) -> bool:
        with self._lock:
            if self._event.is_set():
                return False
            self._value = value
            self._error = error
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []

        for callback in callbacks:
            self._run_callback(callback)
        return True

    def _run_callback(self, callback: Callable[['Outcome'], None]):
        try:
            callback(self)
        except Exception as e:
            logger.error(f"Error in outcome callback for {self.label}: {e}")

    # ==================== Inspection ====================

    def done(self) -> bool:
        return self._event.is_set()

    @property
    def succeeded(self) -> bool:
        return self.done() and self._error is None

    @property
    def failed(self) -> bool:
        return self.done() and self._error is not None

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until settled; returns False on timeout"""
        return self._event.wait(timeout)

    def result(self, timeout: Optional[float] = None) -> Any:
        """
        Block until settled and return the value

        Raises:
            TimeoutError: If not settled within ``timeout`` seconds
            Exception: The error the outcome failed with
        """
        if not self._event.wait(timeout):
            raise TimeoutError(f"Outcome {self.label} not settled after {timeout}s")
        if self._error is not None:
            raise self._error
        return self._value

    def exception(self, timeout: Optional[float] = None) -> Optional[BaseException]:
        """Block until settled and return the error, or None on success"""
        if not self._event.wait(timeout):
            raise TimeoutError(f"Outcome {self.label} not settled after {timeout}s")
        return self._error

    def add_done_callback(self, callback: Callable[['Outcome'], None]):
        """Call ``callback(outcome)`` once settled (immediately if already)"""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        self._run_callback(callback)
