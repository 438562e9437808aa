import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator
from weakref import WeakValueDictionary


class PatientLockRegistry:
    """
    Per-patient ``asyncio.Lock`` objects, created on demand.

    Locks are held weakly: once no coroutine holds or waits on a patient's
    lock it is garbage collected, so the registry does not grow with the
    number of patients ever seen.
    """

    def __init__(self):
        self._locks: "WeakValueDictionary[uuid.UUID, asyncio.Lock]" = (
            WeakValueDictionary()
        )

    def get(self, patient_id: uuid.UUID) -> asyncio.Lock:
        lock = self._locks.get(patient_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[patient_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, patient_id: uuid.UUID) -> AsyncIterator[None]:
        lock = self.get(patient_id)
        async with lock:
            yield


patient_locks = PatientLockRegistry()
