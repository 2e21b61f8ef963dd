"""Page cache decorator for raw catalog readers.

:class:`CachedReader` wraps anything with the :class:`ResultSetReader`
contract (``readinto``/``read_at``/``seek``/``tell``/``close`` plus ``size``)
and memoises fixed-size pages fetched through ``read_at``. Neighbouring chunks
re-read the same byte ranges of the same shards where they overlap, so a
:class:`PageCache` shared by all readers of one catalog turns those reads into
memory copies. The decorator changes no observable behaviour: offsets,
short-read errors and close semantics are those of the wrapped reader.

The page table is guarded by a lock, but fetches happen outside it, so two
threads may fetch the same page concurrently; the second insert simply wins.
"""

from __future__ import annotations

import io
import logging
import threading
from collections import OrderedDict
from typing import Any, Callable, Optional

from .errors import OutOfRangeError

__all__ = ("CachedReader", "PageCache", "DEFAULT_PAGE_SIZE", "DEFAULT_MAX_PAGES")

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 1 << 16
DEFAULT_MAX_PAGES = 256


class PageCache:
    """Thread-safe LRU of raw pages for a single catalog."""

    def __init__(self, page_size: int = DEFAULT_PAGE_SIZE, max_pages: int = DEFAULT_MAX_PAGES):
        if page_size <= 0:
            raise ValueError("page_size must be > 0")
        if max_pages <= 0:
            raise ValueError("max_pages must be > 0")
        self.page_size = page_size
        self.max_pages = max_pages
        self._pages: "OrderedDict[int, bytes]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._pages)

    def get(self, index: int, fetch: Callable[[int, int], bytes]) -> bytes:
        """Return page ``index``, calling ``fetch(offset, size)`` on a miss."""
        with self._lock:
            page = self._pages.get(index)
            if page is not None:
                self._pages.move_to_end(index)
                self.hits += 1
                return page
            self.misses += 1
        page = fetch(index * self.page_size, self.page_size)
        with self._lock:
            self._pages[index] = page
            self._pages.move_to_end(index)
            while len(self._pages) > self.max_pages:
                self._pages.popitem(last=False)
        return page


class CachedReader(io.RawIOBase):
    """Raw reader that serves all reads through a :class:`PageCache`."""

    def __init__(self, reader: Any, cache: Optional[PageCache] = None) -> None:
        super().__init__()
        self._reader = reader
        self.cache = cache if cache is not None else PageCache()
        self._pos = 0

    @property
    def size(self) -> int:
        return self._reader.size

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        self._checkClosed()
        return self._pos

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        self._checkClosed()
        if whence == io.SEEK_SET:
            target = offset
        elif whence == io.SEEK_CUR:
            target = self._pos + offset
        elif whence == io.SEEK_END:
            target = self.size + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        if target < 0 or target > self.size:
            raise OutOfRangeError(
                f"Cannot seek to raw offset {target} outside [0, {self.size}]",
                offset=target,
                limit=self.size,
            )
        self._pos = target
        return self._pos

    def read_at(self, offset: int, size: int) -> bytes:
        self._checkClosed()
        if offset < 0 or offset > self.size:
            raise OutOfRangeError(
                f"Raw offset {offset} outside [0, {self.size}]",
                offset=offset,
                limit=self.size,
            )
        if size < 0:
            raise ValueError("size must be non-negative")
        page_size = self.cache.page_size
        end = min(offset + size, self.size)
        parts = []
        pos = offset
        while pos < end:
            index, within = divmod(pos, page_size)
            page = self.cache.get(index, self._reader.read_at)
            take = min(end - pos, len(page) - within)
            if take <= 0:
                break
            parts.append(page[within : within + take])
            pos += take
        return b"".join(parts)

    def readinto(self, b) -> int:
        self._checkClosed()
        if len(b) == 0:
            return 0
        data = self.read_at(self._pos, len(b))
        n = len(data)
        memoryview(b)[:n] = data
        self._pos += n
        return n

    def close(self) -> None:
        if not self.closed:
            try:
                self._reader.close()
            finally:
                logger.debug(
                    "Cached reader closed: hits=%d misses=%d", self.cache.hits, self.cache.misses
                )
                super().close()
