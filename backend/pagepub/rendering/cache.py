# pagepub/rendering/cache.py
import threading
from collections import OrderedDict
from typing import Any, Hashable, Optional, Tuple

CacheKey = Tuple[str, str, int]  # (page_id, version_id, language_id)


class RenderCache:
    """
    Bounded LRU of replayed (static) published documents.

    Shared across requests of one process. Only the published path writes
    here; entries for a page are dropped whenever its pointer changes.
    """

    def __init__(self, max_entries: int = 256):
        self.max_entries = max_entries
        self._entries: "OrderedDict[Hashable, Any]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> Optional[Any]:
        with self._lock:
            if key not in self._entries:
                return None
            self._entries.move_to_end(key)
            return self._entries[key]

    def put(self, key: CacheKey, value: Any) -> None:
        if self.max_entries <= 0:
            return
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def invalidate_page(self, page_id: str) -> int:
        with self._lock:
            stale = [key for key in self._entries if key[0] == page_id]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
