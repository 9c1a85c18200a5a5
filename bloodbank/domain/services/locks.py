"""Per-blood-type mutual exclusion for the allocation sequence."""

import threading
from contextlib import contextmanager
from typing import Iterator

from bloodbank.domain.exceptions import AllocationLockTimeoutError
from bloodbank.domain.models import BloodType


class BloodTypeLocks:
    """
    Registry of one lock per blood type.

    Approvals for the same blood type are serialised within the process;
    approvals for different blood types proceed independently.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[BloodType, threading.Lock] = {}

    def lock_for(self, blood_type: BloodType) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(blood_type)
            if lock is None:
                lock = self._locks[blood_type] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, blood_type: BloodType, timeout: float) -> Iterator[None]:
        """
        Hold the lock for ``blood_type`` for the duration of the block.

        Raises:
            AllocationLockTimeoutError: Lock not acquired within ``timeout`` seconds
        """
        lock = self.lock_for(blood_type)
        if not lock.acquire(timeout=timeout):
            raise AllocationLockTimeoutError(blood_type=blood_type, timeout=timeout)
        try:
            yield
        finally:
            lock.release()


# Shared by every service instance in the process
allocation_locks = BloodTypeLocks()
