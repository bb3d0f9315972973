"""Exceptions raised while translating addresses"""


class VirtualMemoryError(Exception):
    """Base class for all simulator errors"""


class MalformedAddressError(VirtualMemoryError, ValueError):
    """Address token is not a non-negative base-10 integer"""

    def __init__(self, token, reason: str = "not a non-negative integer"):
        self.token = token
        super().__init__(f"Malformed address {token!r}: {reason}")


class RangeError(VirtualMemoryError, ValueError):
    """Decoded page number falls outside the page table"""


class BackingStoreReadError(VirtualMemoryError, OSError):
    """A page could not be read from the backing store"""


class StructuralConfigError(VirtualMemoryError, ValueError):
    """Configuration cannot describe a working memory system"""
