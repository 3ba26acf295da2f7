# app/utils/customer_locks.py
import asyncio
import weakref

from app.utils.names import normalize_name


class CustomerLockRegistry:
    """
    One asyncio.Lock per (account, customer). Locks are held weakly so the
    registry does not grow with every customer ever seen.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[tuple, asyncio.Lock]" = weakref.WeakValueDictionary()

    def get(self, account_id: str, customer_name: str) -> asyncio.Lock:
        key = (account_id, normalize_name(customer_name))
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def __len__(self):
        return len(self._locks)


customer_locks = CustomerLockRegistry()
