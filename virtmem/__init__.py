"""Demand-paged virtual memory simulator with a TLB and FIFO/LRU frame replacement"""

from .config import MemoryConfig, Policy
from .errors import (BackingStoreReadError, MalformedAddressError, RangeError,
                     StructuralConfigError, VirtualMemoryError)
from .virtualsim import TranslationPipeline, TranslationResult

__version__ = "0.1.0"
