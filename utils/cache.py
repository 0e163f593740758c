"""Research cache for Package Research MCP."""

import asyncio
import logging
import threading
from datetime import datetime, timezone
from typing import Dict, Optional

from models.research import CacheEntry, PackageIdentity, ResearchRecord

__all__ = ["ResearchCache"]

logger = logging.getLogger(__name__)


class ResearchCache:
    """
    In-memory research records keyed by package identity.

    Entries live for the lifetime of the instance: no TTL, no size cap, no
    persistence. Map access is guarded by a lock so concurrent requests for
    different packages never interfere. ``lock_for`` hands out one asyncio
    lock per key so concurrent requests for the same package can share a
    single fetch.

    What to store is the caller's decision; ``put`` always overwrites.
    """

    def __init__(self):
        self._entries: Dict[PackageIdentity, CacheEntry] = {}
        self._key_locks: Dict[PackageIdentity, asyncio.Lock] = {}
        self._guard = threading.Lock()

    def get(self, identity: PackageIdentity) -> Optional[ResearchRecord]:
        """Return the cached record, or None."""
        with self._guard:
            entry = self._entries.get(identity)
        return entry.record if entry else None

    def entry(self, identity: PackageIdentity) -> Optional[CacheEntry]:
        with self._guard:
            return self._entries.get(identity)

    def put(self, identity: PackageIdentity, record: ResearchRecord) -> None:
        """Store a record, replacing any previous entry."""
        entry = CacheEntry(
            key=identity, record=record, stored_at=datetime.now(timezone.utc)
        )
        with self._guard:
            self._entries[identity] = entry
        logger.debug(f"Cached research for {identity}")

    def invalidate(self, identity: PackageIdentity) -> bool:
        """Remove an entry. Returns True if one existed."""
        with self._guard:
            removed = self._entries.pop(identity, None)
        return removed is not None

    def clear(self) -> int:
        """Remove every entry. Returns how many were removed."""
        with self._guard:
            count = len(self._entries)
            self._entries.clear()
        return count

    def lock_for(self, identity: PackageIdentity) -> asyncio.Lock:
        """The single-flight lock for one key."""
        with self._guard:
            lock = self._key_locks.get(identity)
            if lock is None:
                lock = self._key_locks[identity] = asyncio.Lock()
            return lock

    def __contains__(self, identity: object) -> bool:
        with self._guard:
            return identity in self._entries

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
