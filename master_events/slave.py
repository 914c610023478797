"""
Slave Completion Tracker

Tracks one named sub-operation: how many completions are expected, how
many have been recorded, and who to notify.

RULES:
- completed_count only increases
- Ready iff completed_count == expected_count
- Firing is a broadcast, counting is separate
"""

import logging
from typing import List, Optional

from .events import BroadcastEvent, CompletionHandler, ErrorList

logger = logging.getLogger("SlaveTracker")


class ParamValidator:
    """Helper to validate tracker parameters."""
    @staticmethod
    def validate_non_negative(value, name):
        if value < 0:
            raise ValueError(f"{name} must be non-negative")
        return value


class SlaveTracker:
    """
    Expected vs. actual completion count for one slave key.

    Not locked: when owned by a MasterEventHandler, mutate it through the
    handler (load_slave, set_expected_count).
    """

    def __init__(self, key: str, handler: Optional[CompletionHandler] = None, expected_count: int = 1):
        """
        Initialize slave tracker.

        Args:
            key: Slave name, unique within a coordinator
            handler: First completion handler (optional)
            expected_count: Completions required before the slave is ready
        """
        self.key = key
        self.expected_count = ParamValidator.validate_non_negative(expected_count, "Expected count")
        self.completed_count = 0
        self.fired = False
        self._event: BroadcastEvent[ErrorList] = BroadcastEvent()
        self._pending_errors: List[str] = []

        if handler is not None:
            self.load(handler)

    def load(self, handler: CompletionHandler) -> None:
        """Stack another completion handler onto this slave"""
        self._event.subscribe(handler)

    def fire(self, errors: ErrorList) -> None:
        """
        Fire all loaded handlers.

        Args:
            errors: Error list for this slave (None = success)
        """
        self.fired = True
        logger.debug(f"Slave '{self.key}' fired (errors={errors})")
        self._event.fire(errors)

    def fire_manually(self) -> None:
        """Fire all loaded handlers with no error"""
        self.fire(None)

    def set_expected_count(self, expected_count: int) -> None:
        self.expected_count = ParamValidator.validate_non_negative(expected_count, "Expected count")

    def record_completion(self, errors: ErrorList = None) -> None:
        """
        Record one finished sub-operation.

        Args:
            errors: Errors reported by that sub-operation, kept until the slave fires
        """
        self.completed_count += 1
        if errors:
            self._pending_errors.extend(errors)

    def collected_errors(self) -> ErrorList:
        """Errors recorded so far (None if there were none)"""
        return list(self._pending_errors) if self._pending_errors else None

    def is_ready(self) -> bool:
        return self.completed_count == self.expected_count

    @property
    def handler_count(self) -> int:
        return len(self._event)

    def __repr__(self) -> str:
        return f"SlaveTracker({self.key}, {self.completed_count}/{self.expected_count})"
