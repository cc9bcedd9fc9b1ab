import asyncio
from typing import Dict, Optional

from .models import PostInfo


class EnrichmentCache:
    """Link -> PostInfo store shared by concurrent fetch tasks.

    Lives as long as the process (or the owner); entries are never evicted.
    """

    def __init__(self):
        self._lock = asyncio.Lock()
        self._entries: Dict[str, PostInfo] = {}

    async def get(self, url: str) -> Optional[PostInfo]:
        async with self._lock:
            return self._entries.get(url)

    async def set(self, url: str, info: PostInfo) -> None:
        async with self._lock:
            self._entries[url] = info

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)
