"""
Ownership transfer for buffers allocated by the native engine

A native call that returns a pointer hands exclusive ownership of that memory
to the caller. ForeignBufferGuard turns that into a scoped acquisition: the
framed contents are copied into Python-owned ``bytes`` and the native
allocation is released exactly once when the ``with`` block exits, whether it
exits normally or through an exception.

Usage:
    with ForeignBufferGuard(buffer) as guard:
        blob = guard.copy_frame()
    # buffer has been released here
"""

import ctypes
import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from .codec import PREFIX_SIZE, decode_framed_elements, decode_u32
from .errors import MalformedResponseError

logger = logging.getLogger(__name__)

# Upper bound on a declared frame length; anything above is treated as garbage
# rather than read from native memory.
DEFAULT_MAX_RESPONSE_BYTES = 1 << 30


@dataclass(frozen=True)
class ForeignBuffer:
    """Handle to memory owned by the native engine.

    Attributes:
        address: Raw pointer value (0 for a null pointer)
        release: Deallocation callable taking the pointer value
        origin: Native symbol that produced the buffer, for diagnostics
    """

    address: int
    release: Callable[[int], None]
    origin: Optional[str] = None

    @property
    def is_null(self) -> bool:
        return not self.address


class ForeignBufferGuard:
    """Copy a length-prefixed native buffer out and release it exactly once."""

    def __init__(
        self,
        buffer: ForeignBuffer,
        max_length: int = DEFAULT_MAX_RESPONSE_BYTES,
    ):
        self.buffer = buffer
        self.max_length = max_length
        self._released = buffer.is_null
        self._lock = threading.Lock()

    def __enter__(self) -> "ForeignBufferGuard":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.release()
        return False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> bool:
        """Release the native allocation. Returns False if already released."""
        with self._lock:
            if self._released:
                return False
            self._released = True
        logger.debug(
            f"Releasing native buffer 0x{self.buffer.address:x} "
            f"from {self.buffer.origin or 'unknown'}"
        )
        self.buffer.release(self.buffer.address)
        return True

    def copy_frame(self) -> bytes:
        """Copy the 4-byte prefix and the payload it describes.

        Returns:
            prefix + payload as caller-owned bytes
        """
        if self.buffer.is_null:
            origin = self.buffer.origin or "native call"
            raise MalformedResponseError(f"{origin} returned a null buffer")
        if self._released:
            raise MalformedResponseError("Native buffer was already released")

        prefix = ctypes.string_at(self.buffer.address, PREFIX_SIZE)
        length = decode_u32(prefix)
        if length > self.max_length:
            raise MalformedResponseError(
                f"Native buffer declares {length} bytes, above the "
                f"{self.max_length} byte ceiling"
            )
        return ctypes.string_at(self.buffer.address, PREFIX_SIZE + length)


def take_frame(
    buffer: ForeignBuffer, max_length: int = DEFAULT_MAX_RESPONSE_BYTES
) -> bytes:
    """Copy a framed native buffer (prefix included) and release it."""
    with ForeignBufferGuard(buffer, max_length=max_length) as guard:
        return guard.copy_frame()


def take_elements(
    buffer: ForeignBuffer, max_length: int = DEFAULT_MAX_RESPONSE_BYTES
) -> List[bytes]:
    """Copy a framed native buffer of 32-byte elements and release it."""
    return decode_framed_elements(take_frame(buffer, max_length=max_length))


__all__ = [
    "DEFAULT_MAX_RESPONSE_BYTES",
    "ForeignBuffer",
    "ForeignBufferGuard",
    "take_frame",
    "take_elements",
]
