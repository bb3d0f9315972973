"""
Simulator configuration.

Defaults match the classic virtmem lab: 1024 pages of 1024 bytes backed by
256 physical frames and a 16-entry TLB.
"""

from dataclasses import dataclass
from enum import Enum

from .errors import StructuralConfigError

TLB_CAPACITY = 16
PAGE_COUNT = 1024
FRAME_COUNT = 256
PAGE_SIZE = 1024


class Policy(Enum):
    """Frame replacement policy"""
    FIFO = "fifo"
    LRU = "lru"

    @classmethod
    def parse(cls, value) -> "Policy":
        """Accept a Policy, its name, or the numeric -p flag (0=FIFO, 1=LRU)"""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        numeric = {"0": cls.FIFO, "1": cls.LRU}
        if text in numeric:
            return numeric[text]
        try:
            return cls(text)
        except ValueError:
            raise StructuralConfigError(
                f"Unknown replacement policy {value!r} (expected fifo/lru or 0/1)"
            ) from None


@dataclass
class MemoryConfig:
    tlb_capacity: int = TLB_CAPACITY
    page_count: int = PAGE_COUNT
    frame_count: int = FRAME_COUNT
    page_size: int = PAGE_SIZE
    policy: Policy = Policy.FIFO

    def __post_init__(self):
        self.policy = Policy.parse(self.policy)

    @property
    def offset_bits(self) -> int:
        return self.page_size.bit_length() - 1

    @property
    def offset_mask(self) -> int:
        return self.page_size - 1

    @property
    def backing_size(self) -> int:
        return self.page_count * self.page_size

    def validate(self) -> "MemoryConfig":
        """Raise StructuralConfigError unless every size is usable"""
        for name in ("tlb_capacity", "page_count", "frame_count", "page_size"):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise StructuralConfigError(f"{name} must be a positive integer, got {value!r}")

        # Offsets are carved out with a bit mask
        if self.page_size & (self.page_size - 1):
            raise StructuralConfigError(f"page_size must be a power of two, got {self.page_size}")
        return self
