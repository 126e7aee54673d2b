"""Striped row locks for the ledger's check-and-write primitives.

The in-memory and SQL providers behind the repositories have no
``UPDATE ... WHERE stock >= :qty`` of their own, so every conditional
mutation of a ledger row (stock decrement, gift-card debit) is a
read-check-write performed while holding the row's lock. Rows hash onto a
fixed set of stripes; a caller never holds two stripes at once.
"""

import threading
from contextlib import contextmanager

DEFAULT_STRIPES = 64


class RowLocks:
    def __init__(self, stripes: int = DEFAULT_STRIPES):
        self._stripes = [threading.Lock() for _ in range(stripes)]

    def _stripe_for(self, kind: str, row_id) -> threading.Lock:
        return self._stripes[hash((kind, str(row_id))) % len(self._stripes)]

    @contextmanager
    def hold(self, kind: str, row_id):
        """Hold the lock guarding ``(kind, row_id)`` for the duration of the block."""
        lock = self._stripe_for(kind, row_id)
        with lock:
            yield


row_locks = RowLocks()
