"""Per-key locking for coordinating concurrent access to local repository trees.

Two git commands running against the same working copy would corrupt it, while different
working copies can be updated in parallel. KeyedLock serializes tasks per key and lets
tasks holding different keys proceed concurrently.

Typical usage example:

    keyed_lock = KeyedLock()

    async with keyed_lock.lock(repository_path):
        await update_working_copy(repository_path)
"""

from asyncio import Lock, Condition


class KeyedLock:
    """A lock manager indexed by arbitrary hashable keys.

    Each unique key has its own queue, and tasks are granted access in FIFO order.

    Thread-safety:
        Designed for asyncio and not thread-safe. All operations should be performed
        within the same event loop.
    """

    class _Lock:
        """Async context manager holding one task's place in a key's queue."""

        def __init__(self, parent, key):
            self._parent: KeyedLock = parent
            self._key = key

        async def __aenter__(self):
            async with self._parent._lock:
                self._parent._keys.setdefault(self._key, []).append(self)

                while self._parent._keys[self._key][0] is not self:
                    await self._parent._key_releasing.wait()

        async def __aexit__(self, exc_type, exc_val, exc_tb):
            async with self._parent._lock:
                backlog = self._parent._keys[self._key]
                if len(backlog) > 1:
                    self._parent._keys[self._key] = backlog[1:]
                    self._parent._key_releasing.notify_all()
                else:
                    del self._parent._keys[self._key]

    def __init__(self):
        self._lock = Lock()
        self._key_releasing = Condition(self._lock)
        self._keys: dict = dict()

    def lock(self, key):
        """Return an async context manager granting exclusive access to key."""
        return KeyedLock._Lock(self, key)

    def locked(self, key) -> bool:
        """Whether any task currently holds or waits for key."""
        return key in self._keys
