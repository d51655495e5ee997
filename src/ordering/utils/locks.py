"""Per-key locks serializing mutations of a single order or supplier.

Every command that changes an Order is processed while holding that order's
lock, so two actors racing on the same order are applied one after the
other against fresh state. Locks are re-entrant: a transition's synchronous
hooks may issue further commands for the same order on the same thread.

Lock order is supplier before order, never the reverse.
"""

import threading
from contextlib import contextmanager

from protean.utils.globals import current_domain


class KeyedLocks:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def lock_for(self, key) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(str(key))
            if lock is None:
                lock = self._locks[str(key)] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, key):
        lock = self.lock_for(key)
        with lock:
            yield

    def clear(self):
        with self._guard:
            self._locks.clear()


order_locks = KeyedLocks()
supplier_locks = KeyedLocks()


def process_for_order(order_id, command):
    """Process ``command`` synchronously while holding the order's lock."""
    with order_locks.hold(order_id):
        return current_domain.process(command, asynchronous=False)
