"""
Backing stores: the read-only "disk" that pages are loaded from on a fault.

Each store hands out fixed-size pages as raw bytes, indexed by logical page
number.
"""

import os
from typing import Optional

import numpy as np

from .errors import BackingStoreReadError


class BackingStore:
    """Base class for page sources"""

    def __init__(self, page_size: int):
        self.page_size = page_size

    def read_page(self, page_num: int) -> bytes:
        """Return the PAGE_SIZE bytes of the given logical page"""
        raise NotImplementedError

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class MemoryBackingStore(BackingStore):
    """Backing store held entirely in memory"""

    def __init__(self, data: bytes, page_size: int):
        super().__init__(page_size)
        self.data = bytes(data)

    def read_page(self, page_num: int) -> bytes:
        start = page_num * self.page_size
        page = self.data[start:start + self.page_size]
        if page_num < 0 or len(page) != self.page_size:
            raise BackingStoreReadError(
                f"Page {page_num} lies outside the {len(self.data)}-byte backing store"
            )
        return page


class FileBackingStore(BackingStore):
    """
    Backing store mapped from a binary file.

    The file is memory-mapped read-only, like the original BACKING_STORE.bin
    mmap, and must hold at least page_count * page_size bytes.
    """

    def __init__(self, path, page_size: int, page_count: int):
        super().__init__(page_size)
        self.path = os.fspath(path)
        self.page_count = page_count
        required = page_size * page_count

        try:
            size = os.path.getsize(self.path)
        except OSError as e:
            raise BackingStoreReadError(f"Cannot open backing store {self.path}: {e}") from e
        if size < required:
            raise BackingStoreReadError(
                f"Backing store {self.path} holds {size} bytes, need {required}"
            )

        try:
            self._pages: Optional[np.memmap] = np.memmap(
                self.path, dtype=np.uint8, mode="r", shape=(page_count, page_size)
            )
        except (OSError, ValueError) as e:
            raise BackingStoreReadError(f"Cannot map backing store {self.path}: {e}") from e

    def read_page(self, page_num: int) -> bytes:
        if self._pages is None:
            raise BackingStoreReadError(f"Backing store {self.path} is closed")
        if not 0 <= page_num < self.page_count:
            raise BackingStoreReadError(
                f"Page {page_num} out of range (0 .. {self.page_count - 1})"
            )
        try:
            return self._pages[page_num].tobytes()
        except OSError as e:
            raise BackingStoreReadError(f"Failed reading page {page_num}: {e}") from e

    def close(self):
        # numpy unmaps the file once the last reference goes
        self._pages = None
