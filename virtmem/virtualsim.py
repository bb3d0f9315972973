"""
Virtual Memory Simulator
Implements address decoding, a FIFO TLB, a page table, FIFO/LRU frame
replacement and the translation pipeline that ties them together
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from .backing_store import BackingStore
from .config import MemoryConfig, Policy
from .errors import MalformedAddressError, RangeError

log = logging.getLogger(__name__)

_ADDRESS_TOKEN = re.compile(r"[+-]?[0-9]+")


def parse_address(token) -> int:
    """Turn an address-source token into a non-negative integer"""
    if isinstance(token, int) and not isinstance(token, bool):
        if token < 0:
            raise MalformedAddressError(token, "negative address")
        return token
    if not isinstance(token, str):
        raise MalformedAddressError(token)

    text = token.strip()
    if not _ADDRESS_TOKEN.fullmatch(text):
        raise MalformedAddressError(token)
    address = int(text)
    if address < 0:
        raise MalformedAddressError(token, "negative address")
    return address


class AddressCodec:
    """Splits linear addresses into (page number, offset) and back"""

    def __init__(self, page_size: int, page_count: int):
        self.page_size = page_size
        self.page_count = page_count
        self.offset_bits = page_size.bit_length() - 1
        self.offset_mask = page_size - 1

    def decode(self, address: int) -> Tuple[int, int]:
        if address < 0:
            raise RangeError(f"Address {address} is negative")
        page_num = address >> self.offset_bits
        if page_num >= self.page_count:
            raise RangeError(
                f"Address {address} maps to page {page_num}, "
                f"out of range (0 .. {self.page_count - 1})"
            )
        return page_num, address & self.offset_mask

    def encode(self, frame_num: int, offset: int) -> int:
        return (frame_num << self.offset_bits) | offset


class TLBEntry:
    """Translation Lookaside Buffer entry"""
    def __init__(self, virtual_page: int, physical_frame: int):
        self.virtual_page = virtual_page
        self.physical_frame = physical_frame

    def __eq__(self, other):
        if not isinstance(other, TLBEntry):
            return NotImplemented
        return (self.virtual_page, self.physical_frame) == (other.virtual_page, other.physical_frame)

    def __repr__(self):
        return f"TLB({self.virtual_page}->{self.physical_frame})"


class TLBCache:
    """
    Translation Lookaside Buffer kept as a circular array.

    insert_count is the number of inserts completed so far; the next entry
    goes to slot insert_count % capacity, overwriting the oldest once full.
    Hits never reorder entries.
    """

    def __init__(self, capacity: int = 16):
        self.capacity = capacity
        self.slots: List[Optional[TLBEntry]] = [None] * capacity
        self.insert_count = 0

    def __len__(self) -> int:
        return min(self.insert_count, self.capacity)

    def lookup(self, page_num: int) -> Optional[int]:
        """Return the frame for page_num, newest entry first, or None on a miss"""
        oldest = max(0, self.insert_count - self.capacity)
        for i in range(self.insert_count - 1, oldest - 1, -1):
            entry = self.slots[i % self.capacity]
            if entry.virtual_page == page_num:
                return entry.physical_frame
        return None

    def insert(self, page_num: int, frame_num: int) -> Optional[TLBEntry]:
        """Add a mapping, returning the entry it overwrote (if any)"""
        slot = self.insert_count % self.capacity
        evicted = self.slots[slot]
        self.slots[slot] = TLBEntry(page_num, frame_num)
        self.insert_count += 1
        return evicted

    def entries(self) -> List[TLBEntry]:
        """Valid entries, oldest first"""
        oldest = max(0, self.insert_count - self.capacity)
        return [self.slots[i % self.capacity] for i in range(oldest, self.insert_count)]

    def reset(self):
        self.slots = [None] * self.capacity
        self.insert_count = 0

    def __str__(self) -> str:
        return f"TLB Contents: {self.entries()}"


class PageTable:
    """Page Table implementation with a frame -> page reverse index"""

    def __init__(self, page_count: int):
        self.page_count = page_count
        self.table: Dict[int, int] = {}    # page_num -> frame_num
        self.occupant: Dict[int, int] = {}  # frame_num -> page_num

    def _check(self, page_num: int):
        if page_num < 0 or page_num >= self.page_count:
            raise RangeError(
                f"Page number {page_num} out of range (0 .. {self.page_count - 1})"
            )

    def __len__(self) -> int:
        return len(self.table)

    def get(self, page_num: int) -> Optional[int]:
        """Get frame number for page, None if the page is unmapped"""
        self._check(page_num)
        return self.table.get(page_num)

    def set(self, page_num: int, frame_num: int):
        """Map page to frame; the frame must not belong to another page"""
        self._check(page_num)
        holder = self.occupant.get(frame_num)
        if holder is not None and holder != page_num:
            raise ValueError(f"Frame {frame_num} is already mapped to page {holder}")

        old_frame = self.table.get(page_num)
        if old_frame is not None:
            del self.occupant[old_frame]
        self.table[page_num] = frame_num
        self.occupant[frame_num] = page_num

    def clear(self, page_num: int):
        """Mark page as not in memory"""
        self._check(page_num)
        frame_num = self.table.pop(page_num, None)
        if frame_num is not None:
            del self.occupant[frame_num]

    def find_page_mapped_to(self, frame_num: int) -> Optional[int]:
        """Get page number currently in given frame"""
        return self.occupant.get(frame_num)

    def mappings(self) -> Dict[int, int]:
        return dict(sorted(self.table.items()))

    def reset(self):
        self.table.clear()
        self.occupant.clear()


class FrameAllocator:
    """Base class for frame replacement policies"""

    def __init__(self, num_frames: int):
        self.num_frames = num_frames

    def select_victim_frame(self, page_table: PageTable) -> int:
        """Choose the frame that will receive the faulting page"""
        raise NotImplementedError

    def record_reference(self, page_num: int, clock: int):
        """Note that page_num was referenced at the given clock tick"""

    def forget(self, page_num: int):
        """Drop any state kept for a page that has been evicted"""

    def reset(self):
        raise NotImplementedError


class FIFOAllocator(FrameAllocator):
    """First-In-First-Out: a cursor rotating over every frame"""

    def __init__(self, num_frames: int):
        super().__init__(num_frames)
        self.next_frame = 0

    def select_victim_frame(self, page_table: PageTable) -> int:
        # Occupancy and recency are not consulted
        frame_num = self.next_frame
        self.next_frame = (self.next_frame + 1) % self.num_frames
        return frame_num

    def reset(self):
        self.next_frame = 0


class LRUAllocator(FrameAllocator):
    """Least Recently Used, by the clock value of each page's last reference"""

    def __init__(self, num_frames: int):
        super().__init__(num_frames)
        self.last_used: Dict[int, int] = {}  # page_num -> clock
        self.next_unused = 0

    def select_victim_frame(self, page_table: PageTable) -> int:
        # Warm-up: fill never-used frames in ascending order
        if self.next_unused < self.num_frames:
            frame_num = self.next_unused
            self.next_unused += 1
            return frame_num

        victim = None
        oldest = None
        for frame_num in range(self.num_frames):
            page_num = page_table.find_page_mapped_to(frame_num)
            if page_num is None:
                continue
            used = self.last_used.get(page_num, 0)
            # Strict comparison keeps the lowest frame index on ties
            if oldest is None or used < oldest:
                victim, oldest = frame_num, used

        if victim is None:
            # Every frame has been handed out but none is mapped; start over
            victim = 0
        return victim

    def record_reference(self, page_num: int, clock: int):
        self.last_used[page_num] = clock

    def forget(self, page_num: int):
        self.last_used.pop(page_num, None)

    def reset(self):
        self.last_used.clear()
        self.next_unused = 0


def make_allocator(policy, num_frames: int) -> FrameAllocator:
    """Build the allocator for a configured policy"""
    allocators = {Policy.FIFO: FIFOAllocator, Policy.LRU: LRUAllocator}
    return allocators[Policy.parse(policy)](num_frames)


class MainMemory:
    """Physical memory as a frames x page_size matrix of signed bytes"""

    def __init__(self, num_frames: int, page_size: int):
        self.num_frames = num_frames
        self.page_size = page_size
        self.frames = np.zeros((num_frames, page_size), dtype=np.int8)

    def load(self, frame_num: int, data: bytes):
        """Copy one page of data verbatim into a frame"""
        if len(data) != self.page_size:
            raise ValueError(f"Expected {self.page_size} bytes, got {len(data)}")
        self.frames[frame_num] = np.frombuffer(data, dtype=np.int8)

    def read_byte(self, frame_num: int, offset: int) -> int:
        return int(self.frames[frame_num, offset])

    def reset(self):
        self.frames.fill(0)


class Statistics:
    """Counters collected over a run"""

    def __init__(self):
        self.total_addresses = 0
        self.tlb_hits = 0
        self.page_faults = 0

    @property
    def tlb_misses(self) -> int:
        return self.total_addresses - self.tlb_hits

    @property
    def page_fault_rate(self) -> Optional[float]:
        return self.page_faults / self.total_addresses if self.total_addresses > 0 else None

    @property
    def tlb_hit_rate(self) -> Optional[float]:
        return self.tlb_hits / self.total_addresses if self.total_addresses > 0 else None

    def as_dict(self) -> Dict:
        return {
            'total_addresses': self.total_addresses,
            'page_faults': self.page_faults,
            'page_fault_rate': self.page_fault_rate,
            'tlb_hits': self.tlb_hits,
            'tlb_misses': self.tlb_misses,
            'tlb_hit_rate': self.tlb_hit_rate,
        }

    def reset(self):
        self.total_addresses = 0
        self.tlb_hits = 0
        self.page_faults = 0


@dataclass
class TranslationResult:
    virtual_address: int
    physical_address: int
    value: int
    page_number: int
    offset: int
    frame: int
    tlb_hit: bool
    page_fault: bool


class TranslationPipeline:
    """
    Translates virtual addresses one at a time.

    Owns the TLB, page table, replacement state and main memory. Each
    address goes through TLB lookup, then the page table, then (on a page
    fault) frame selection and a load from the backing store.
    """

    def __init__(self, config: MemoryConfig, backing_store: BackingStore,
                 allocator: Optional[FrameAllocator] = None):
        self.config = config.validate()
        self.backing_store = backing_store
        self.codec = AddressCodec(config.page_size, config.page_count)
        self.tlb = TLBCache(config.tlb_capacity)
        self.page_table = PageTable(config.page_count)
        self.allocator = allocator or make_allocator(config.policy, config.frame_count)
        self.memory = MainMemory(config.frame_count, config.page_size)
        self.stats = Statistics()
        self.clock = 0

    def process(self, token) -> TranslationResult:
        """Parse one address-source token and translate it"""
        return self.translate(parse_address(token))

    def translate(self, virtual_addr: int) -> TranslationResult:
        page_num, offset = self.codec.decode(virtual_addr)
        self.clock += 1
        page_fault = False

        # Check TLB first; hits leave the page table and recency untouched
        frame_num = self.tlb.lookup(page_num)
        tlb_hit = frame_num is not None
        if tlb_hit:
            self.stats.tlb_hits += 1
        else:
            frame_num = self.page_table.get(page_num)
            if frame_num is None:
                self.stats.page_faults += 1
                page_fault = True
                frame_num = self._handle_page_fault(page_num)
            self.allocator.record_reference(page_num, self.clock)
            self.tlb.insert(page_num, frame_num)

        physical_addr = self.codec.encode(frame_num, offset)
        value = self.memory.read_byte(frame_num, offset)
        self.stats.total_addresses += 1

        return TranslationResult(
            virtual_address=virtual_addr,
            physical_address=physical_addr,
            value=value,
            page_number=page_num,
            offset=offset,
            frame=frame_num,
            tlb_hit=tlb_hit,
            page_fault=page_fault,
        )

    def _handle_page_fault(self, page_num: int) -> int:
        """Load page_num into a frame and return the frame number"""
        # Read first so a failing store leaves the tables untouched
        data = self.backing_store.read_page(page_num)

        frame_num = self.allocator.select_victim_frame(self.page_table)
        victim = self.page_table.find_page_mapped_to(frame_num)
        if victim is not None:
            log.debug("Evicting page %d from frame %d", victim, frame_num)
            self.page_table.clear(victim)
            self.allocator.forget(victim)

        self.memory.load(frame_num, data)
        self.page_table.set(page_num, frame_num)
        log.debug("Page fault: loaded page %d into frame %d", page_num, frame_num)
        return frame_num

    def run(self, tokens: Iterable, sink) -> Statistics:
        """
        Translate every token, handing results to the sink.

        Malformed and out-of-range addresses are reported to the sink and
        skipped. Backing store failures propagate and end the run.
        """
        for token in tokens:
            try:
                result = self.process(token)
            except (MalformedAddressError, RangeError) as e:
                log.warning("Skipping address %r: %s", token, e)
                sink.skip(token, e)
                continue
            sink.record(result)

        sink.finish(self.stats)
        return self.stats

    def snapshot(self) -> Dict:
        return {
            'tlb': [(e.virtual_page, e.physical_frame) for e in self.tlb.entries()],
            'page_table': self.page_table.mappings(),
        }

    def reset(self):
        """Reset simulator state"""
        self.tlb.reset()
        self.page_table.reset()
        self.allocator.reset()
        self.memory.reset()
        self.stats.reset()
        self.clock = 0
