import pytest

from virtmem.backing_store import MemoryBackingStore
from virtmem.config import MemoryConfig


def page_pattern(page_num: int, page_size: int) -> bytes:
    """Distinct, non-negative byte pattern for each page"""
    return bytes((page_num * 31 + i) % 128 for i in range(page_size))


def make_store(page_count: int, page_size: int) -> MemoryBackingStore:
    data = b"".join(page_pattern(p, page_size) for p in range(page_count))
    return MemoryBackingStore(data, page_size)


@pytest.fixture
def small_config():
    return MemoryConfig(tlb_capacity=2, page_count=4, frame_count=2, page_size=256)


@pytest.fixture
def small_store():
    return make_store(4, 256)


@pytest.fixture
def backing_file(tmp_path):
    """BACKING_STORE.bin with 4 pages of 256 bytes"""
    path = tmp_path / "BACKING_STORE.bin"
    path.write_bytes(b"".join(page_pattern(p, 256) for p in range(4)))
    return path
