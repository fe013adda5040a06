"""In-memory deduplication of messages keyed by slot and hash."""

from __future__ import annotations

import asyncio
import bisect

# Slots older than the newest inserted slot minus this are forgotten (~30 seconds).
SLOT_WINDOW = 75


class KafkaDedupMemory:
    """Remembers message hashes per slot; shared freely between tasks."""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._slots: list[int] = []
        self._hashes: dict[int, set[bytes]] = {}

    async def allowed(self, slot: int, hash: bytes) -> bool:  # noqa: A002
        """Return True the first time a (slot, hash) pair is seen, False otherwise.

        Messages for slots older than the oldest remembered slot are rejected.
        """
        if isinstance(slot, bool) or not isinstance(slot, int) or slot < 0:
            raise ValueError(f"invalid slot: {slot!r}")
        digest = bytes(hash)
        if len(digest) != 32:
            raise ValueError(f"hash must be 32 bytes, got {len(digest)}")

        async with self._lock:
            if self._slots and slot < self._slots[0]:
                return False

            seen = self._hashes.get(slot)
            if seen is not None:
                if digest in seen:
                    return False
                seen.add(digest)
                return True

            self._hashes[slot] = {digest}
            bisect.insort(self._slots, slot)
            threshold = slot - SLOT_WINDOW
            while self._slots and self._slots[0] < threshold:
                del self._hashes[self._slots.pop(0)]
            return True