"""
Per-job lock registry for single-flight status checks.
"""
import asyncio
import threading
from typing import Dict


class JobLockRegistry:
    """
    Maps a job id to an exclusive asyncio.Lock, created on first use.

    Entries are never evicted, so the registry grows with the number of
    distinct jobs ever polled.
    """

    def __init__(self):
        self._locks: Dict[int, asyncio.Lock] = {}
        self._guard = threading.Lock()

    def get(self, job_id: int) -> asyncio.Lock:
        """Return the lock for a job, creating it atomically if needed."""
        with self._guard:
            lock = self._locks.get(job_id)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[job_id] = lock
            return lock

    def __contains__(self, job_id: int) -> bool:
        return job_id in self._locks

    def __len__(self) -> int:
        return len(self._locks)
