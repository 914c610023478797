"""
Master Event Handler

Fan-out / fan-in coordinator for callback-driven work.

Load a master and any number of named slaves, fetch the slaves with your
own asynchronous operation, and call the completion callback it receives.
When every slave has fired, the master fires once with all slave errors
and the handler resets for the next round.

CONCURRENCY:
- The handler performs no scheduling of its own; the host supplies it
- With thread_safe=True (default) all state is guarded by one RLock and
  handlers run while it is held
- Operations passed to fetch_slave/fetch_master run outside the lock

Example:
    handler = MasterEventHandler()
    handler.load_master(lambda errors: print("all done", errors))
    handler.load_slave("profile", on_profile)
    handler.fetch_slave("profile", lambda index, fire: client.get(url, callback=fire))
"""

import logging
import threading
from contextlib import nullcontext
from typing import Callable, Dict, Iterable, List, Optional

from .config import CoordinatorConfig
from .events import BroadcastEvent, CompletionHandler, ErrorList
from .group import GroupKey, GroupTracker, make_group_key
from .slave import SlaveTracker

logger = logging.getLogger("MasterEventHandler")

FireCallback = Callable[..., None]
SlaveOperation = Callable[[int, FireCallback], None]
MasterOperation = Callable[[FireCallback], None]


class MasterEventHandler:
    """
    Owns the slave trackers, group trackers, error map and master event.

    Errors are data: the handler only checks whether an error list is
    present, it never raises on behalf of a slave.
    """

    def __init__(self, config: Optional[CoordinatorConfig] = None):
        """
        Initialize Master Event Handler.

        Args:
            config: Coordinator settings (defaults if None)
        """
        self.config = config or CoordinatorConfig()
        self._lock = threading.RLock() if self.config.thread_safe else nullcontext()

        self._master: BroadcastEvent[ErrorList] = BroadcastEvent()
        self._slaves: Dict[str, SlaveTracker] = {}
        self._groups: Dict[GroupKey, GroupTracker] = {}
        self._slave_errors: Dict[str, List[str]] = {}
        self._slaves_fired = 0

        logger.info(f"MasterEventHandler initialized (thread_safe={self.config.thread_safe})")

    def _reset(self) -> None:
        """Start a new round. Groups survive a reset."""
        self._master = BroadcastEvent()
        self._slaves = {}
        self._slaves_fired = 0
        if self.config.clear_errors_on_reset:
            self._slave_errors = {}

    # ========== Registration ==========

    def load_master(self, handler: CompletionHandler) -> None:
        """Subscribe a master completion handler"""
        with self._lock:
            self._master.subscribe(handler)

    def load_slave(self, key: str, handler: CompletionHandler, expected_count: Optional[int] = None) -> SlaveTracker:
        """
        Create the slave at key, or stack handler onto the existing one.

        Args:
            key: Slave name
            handler: Called with the slave's error list when it fires
            expected_count: Completions required before the slave fires.
                Only honoured on first registration.

        Returns:
            The slave tracker for key. Read it freely; change it only from
            the thread that owns this handler, or through load_slave and
            set_expected_count, which take the lock.
        """
        with self._lock:
            slave = self._slaves.get(key)
            if slave is None:
                if expected_count is None:
                    expected_count = self.config.default_expected_count
                slave = SlaveTracker(key, handler, expected_count)
                self._slaves[key] = slave
                logger.debug(f"Slave loaded: {slave}")
            else:
                slave.load(handler)
                logger.debug(f"Handler stacked on slave '{key}' ({slave.handler_count} handlers)")
            return slave

    def set_expected_count(self, key: str, expected_count: int) -> bool:
        """
        Change how many completions the slave at key needs.

        Returns:
            True if the slave exists
        """
        with self._lock:
            slave = self._slaves.get(key)
            if slave is None:
                logger.debug(f"set_expected_count ignored, unknown slave '{key}'")
                return False
            slave.set_expected_count(expected_count)
            return True

    def load_group(self, keys: Iterable[str], handler: CompletionHandler) -> bool:
        """
        Fire handler once every slave in keys has fired.

        All keys must name loaded slaves, otherwise nothing is registered.
        Loading the same key set again replaces the previous group.

        Returns:
            True if the group was registered
        """
        if isinstance(keys, str):
            keys = [keys]
        keys = list(keys)

        with self._lock:
            if not keys:
                logger.debug("Group rejected: no keys")
                return False

            missing = [key for key in keys if key not in self._slaves]
            if missing:
                logger.warning(f"Group rejected, unknown slaves: {missing}")
                return False

            group_key = make_group_key(keys)
            group = GroupTracker(handler)
            for key in sorted(group_key):
                group.register_member(key)
            self._groups[group_key] = group
            logger.debug(f"Group loaded: {sorted(group_key)}")
            return True

    # ========== Fetching ==========

    def fetch_slave(self, key: str, operation: SlaveOperation) -> None:
        """
        Run operation once per expected completion of the slave at key.

        Each call receives its index and a fire callback; call fire(errors)
        when that piece of work is done. Unknown keys are ignored.

        Args:
            key: Slave name
            operation: Function (index, fire) -> None that starts the work
        """
        with self._lock:
            slave = self._slaves.get(key)
            if slave is None:
                logger.debug(f"fetch_slave ignored, unknown slave '{key}'")
                return
            count = slave.expected_count

            if count == 0:
                self._fire_current(key, slave, None)
                return

        def fire(errors: ErrorList = None) -> None:
            self._on_fetch_complete(key, slave, errors)

        for index in range(count):
            operation(index, fire)

    def _on_fetch_complete(self, key: str, slave: SlaveTracker, errors: ErrorList) -> None:
        with self._lock:
            if self._slaves.get(key) is not slave:
                logger.warning(f"Stale completion for slave '{key}' ignored")
                return

            slave.record_completion(errors)
            if slave.is_ready():
                self._fire_current(key, slave, slave.collected_errors())

    def fetch_master(self, operation: MasterOperation) -> None:
        """
        Run operation with a callback that fires the master directly.

        Args:
            operation: Function (fire) -> None; fire(errors) raises the
                master handlers with errors and resets the handler
        """
        def fire(errors: ErrorList = None) -> None:
            with self._lock:
                logger.info(f"Master fired manually (errors={errors})")
                try:
                    self._master.fire(errors)
                finally:
                    self._reset()

        operation(fire)

    def load_and_fetch_master(self, handler: CompletionHandler, operation: MasterOperation) -> None:
        self.load_master(handler)
        self.fetch_master(operation)

    # ========== Firing ==========

    def fire_slave_manually(self, key: str, errors: ErrorList = None) -> bool:
        """
        Fire the slave at key without going through fetch_slave.

        Args:
            key: Slave name
            errors: Error list for the slave (None = success)

        Returns:
            True if the slave fired, False if unknown or already fired
        """
        with self._lock:
            slave = self._slaves.get(key)
            if slave is None:
                logger.debug(f"fire_slave_manually ignored, unknown slave '{key}'")
                return False
            return self._fire_current(key, slave, errors)

    def _fire_current(self, key: str, slave: SlaveTracker, errors: ErrorList) -> bool:
        if slave.fired:
            logger.debug(f"Slave '{key}' already fired this round")
            return False

        # Count the slave before its handlers run; a raising handler must not stall the round.
        slave.fired = True
        if errors:
            self._slave_errors[key] = list(errors)
        self._slaves_fired += 1

        try:
            slave.fire(errors)
        finally:
            try:
                self.fire_master_if_ready()
            finally:
                self._notify_groups(key)
        return True

    def fire_master_if_ready(self) -> bool:
        """
        Fire the master if every loaded slave has fired.

        The master receives all collected slave errors flattened into one
        list. The master handlers still see the finished round (errors,
        counts); the reset runs after them, even if one raises.

        Returns:
            True if the master fired
        """
        with self._lock:
            if self._slaves_fired != len(self._slaves):
                return False

            errors = [error for slave_errors in self._slave_errors.values() for error in slave_errors]
            logger.info(f"All {self._slaves_fired} slaves fired, firing master ({len(errors)} errors)")
            try:
                self._master.fire(errors)
            finally:
                self._reset()
            return True

    def _notify_groups(self, key: str) -> None:
        for group_key, group in list(self._groups.items()):
            if key not in group_key:
                continue
            if group.notify_if_complete(key) and self._groups.get(group_key) is group:
                del self._groups[group_key]

    # ========== Read-Only State ==========

    def get_all_errors(self) -> Dict[str, List[str]]:
        """Get collected slave errors (snapshot)"""
        with self._lock:
            return {key: list(errors) for key, errors in self._slave_errors.items()}

    def clear_errors(self) -> None:
        with self._lock:
            self._slave_errors = {}

    def has_slave(self, key: str) -> bool:
        with self._lock:
            return key in self._slaves

    @property
    def slave_count(self) -> int:
        with self._lock:
            return len(self._slaves)

    @property
    def slaves_fired(self) -> int:
        with self._lock:
            return self._slaves_fired

    @property
    def group_count(self) -> int:
        with self._lock:
            return len(self._groups)
