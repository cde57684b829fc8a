"""
Per-resource asyncio locks.

Row locks (SELECT ... FOR UPDATE) serialize writers across processes on
PostgreSQL. Inside one worker the same critical sections also take an
asyncio lock keyed by resource, which keeps check-then-write sequences
serialized on engines that ignore FOR UPDATE (SQLite).
"""

import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator, Hashable

# loop -> {key -> lock}; entries vanish once nobody holds or waits on the lock
_locks_by_loop: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, weakref.WeakValueDictionary]" = (
    weakref.WeakKeyDictionary()
)


def _get_lock(key: Hashable) -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    registry = _locks_by_loop.get(loop)
    if registry is None:
        registry = weakref.WeakValueDictionary()
        _locks_by_loop[loop] = registry

    lock = registry.get(key)
    if lock is None:
        lock = asyncio.Lock()
        registry[key] = lock
    return lock


@asynccontextmanager
async def resource_lock(kind: str, resource_id: int) -> AsyncIterator[None]:
    lock = _get_lock((kind, resource_id))
    async with lock:
        yield


def session_lock(session_id: int):
    """Serializes capacity and status changes of one training session"""
    return resource_lock("training_session", session_id)
