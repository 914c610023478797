"""
Group Completion Tracker

Watches a named subset of slaves and fires a dedicated handler once every
member has fired. One-shot: the owning coordinator drops the group after
it fires.
"""

import logging
from typing import Dict, FrozenSet, Iterable, List

from .events import CompletionHandler
from .slave import SlaveTracker

logger = logging.getLogger("GroupTracker")

# Canonical identity of a group: the deduplicated set of member keys.
GroupKey = FrozenSet[str]


def make_group_key(keys: Iterable[str]) -> GroupKey:
    return frozenset(keys)


class GroupTracker:
    """
    Member key -> has-fired map plus an inner tracker for the group handler.

    Members are referenced by name only; the slave trackers belong to the
    coordinator.
    """

    def __init__(self, handler: CompletionHandler):
        self._members: Dict[str, bool] = {}
        self._tracker = SlaveTracker("<group>", handler)

    def register_member(self, key: str) -> bool:
        """
        Add a member key.

        Returns:
            True if the key was new, False if it was already tracked
        """
        if key in self._members:
            return False
        self._members[key] = False
        return True

    def notify_if_complete(self, key: str) -> bool:
        """
        Mark key as fired and fire the group once all members have.

        Args:
            key: Slave key that just fired

        Returns:
            True if the group fired (the owner should drop it), else False
        """
        if key not in self._members:
            return False

        self._members[key] = True

        if all(self._members.values()):
            logger.debug(f"Group {sorted(self._members)} complete")
            self._tracker.fire_manually()
            return True
        return False

    @property
    def members(self) -> GroupKey:
        return frozenset(self._members)

    def pending(self) -> List[str]:
        """Members that have not fired yet"""
        return sorted(k for k, done in self._members.items() if not done)
