"""
Length-prefixed buffer codec for the native call boundary

Two encodings cross the boundary and must not be confused:

1. Frame: 4-byte big-endian *byte length* followed by the raw bytes. Used for
   every opaque variable-length payload (constraint system, witness, proof,
   raw hash input).
2. Element vector: 4-byte big-endian *element count* followed by the
   concatenated 32-byte field elements.

Some proof responses nest an outer frame around an inner frame. The helpers
here split those without ever returning a partially decoded value.
"""

import logging
import struct
from typing import Iterable, List, Tuple

from .errors import MalformedResponseError

logger = logging.getLogger(__name__)

PREFIX_SIZE = 4
ELEMENT_SIZE = 32
U32_MAX = 0xFFFFFFFF

_U32_BE = struct.Struct(">I")


def encode_u32(value: int) -> bytes:
    """Encode an unsigned 32-bit integer as 4 big-endian bytes."""
    if not 0 <= value <= U32_MAX:
        raise ValueError(f"Value out of u32 range: {value}")
    return _U32_BE.pack(value)


def decode_u32(data: bytes, offset: int = 0) -> int:
    """Read a big-endian u32 at ``offset``."""
    if len(data) < offset + PREFIX_SIZE:
        raise MalformedResponseError(
            f"Need {PREFIX_SIZE} bytes at offset {offset} for a length prefix, "
            f"buffer has {len(data)}"
        )
    return _U32_BE.unpack_from(data, offset)[0]


def frame(data: bytes) -> bytes:
    """Prepend a 4-byte big-endian byte-length prefix.

    Args:
        data: Arbitrary bytes (may be empty)

    Returns:
        Framed bytes
    """
    data = bytes(data)
    return encode_u32(len(data)) + data


def frame_elements(elements: Iterable[bytes]) -> bytes:
    """Encode field elements with a 4-byte big-endian element-count prefix.

    Args:
        elements: Iterable of 32-byte field elements

    Returns:
        Count prefix followed by the concatenated elements
    """
    items = [bytes(e) for e in elements]
    for index, element in enumerate(items):
        if len(element) != ELEMENT_SIZE:
            raise ValueError(
                f"Element {index} is {len(element)} bytes, expected {ELEMENT_SIZE}"
            )
    return encode_u32(len(items)) + b"".join(items)


def decode_frame(blob: bytes) -> bytes:
    """Decode a single Frame, requiring the blob to contain exactly one."""
    length = decode_u32(blob)
    body = blob[PREFIX_SIZE:]
    if len(body) != length:
        raise MalformedResponseError(
            f"Frame declares {length} bytes but carries {len(body)}"
        )
    return bytes(body)


def split_elements(payload: bytes) -> List[bytes]:
    """Split a raw payload into 32-byte elements."""
    if len(payload) % ELEMENT_SIZE:
        raise MalformedResponseError(
            f"Payload of {len(payload)} bytes is not a multiple of {ELEMENT_SIZE}"
        )
    return [
        bytes(payload[i : i + ELEMENT_SIZE])
        for i in range(0, len(payload), ELEMENT_SIZE)
    ]


def decode_elements(blob: bytes) -> List[bytes]:
    """Decode an element vector produced by :func:`frame_elements`."""
    count = decode_u32(blob)
    body = blob[PREFIX_SIZE:]
    if len(body) != count * ELEMENT_SIZE:
        raise MalformedResponseError(
            f"Element vector declares {count} elements "
            f"({count * ELEMENT_SIZE} bytes) but carries {len(body)} bytes"
        )
    return split_elements(body)


def decode_framed_elements(blob: bytes) -> List[bytes]:
    """Decode a byte-length Frame whose payload is a run of 32-byte elements.

    Native hash and proof outputs use the byte-length framing, so the element
    count is derived as ``payload_length / 32``.
    """
    return split_elements(decode_frame(blob))


def single_frame_payload(blob: bytes) -> bytes:
    """Payload of a singly framed response."""
    return decode_frame(blob)


def double_frame_payload(blob: bytes) -> bytes:
    """Payload of a doubly framed response.

    Layout::

        [outer len L][inner len P][P payload bytes][L - 4 - P trailing bytes]

    The outer prefix is skipped, the inner prefix gives the true payload length
    and exactly that many bytes are returned.
    """
    outer = decode_u32(blob)
    if len(blob) - PREFIX_SIZE != outer:
        raise MalformedResponseError(
            f"Outer frame declares {outer} bytes but carries {len(blob) - PREFIX_SIZE}"
        )
    inner = decode_u32(blob, PREFIX_SIZE)
    start = 2 * PREFIX_SIZE
    if inner > outer - PREFIX_SIZE:
        raise MalformedResponseError(
            f"Inner frame declares {inner} bytes but outer frame leaves "
            f"{outer - PREFIX_SIZE}"
        )
    if outer - PREFIX_SIZE != inner:
        logger.debug(
            f"Double frame carries {outer - PREFIX_SIZE - inner} trailing bytes"
        )
    return bytes(blob[start : start + inner])


def split_public_inputs(payload: bytes, public_input_count: int) -> Tuple[bytes, bytes]:
    """Split a proof payload into (public_inputs, raw_proof).

    The first ``public_input_count * 32`` bytes are the public inputs, the rest
    is the raw proof.
    """
    if public_input_count < 0:
        raise ValueError(f"public_input_count must be >= 0: {public_input_count}")
    boundary = public_input_count * ELEMENT_SIZE
    if len(payload) < boundary:
        raise MalformedResponseError(
            f"Proof payload is {len(payload)} bytes, shorter than "
            f"{public_input_count} public inputs ({boundary} bytes)"
        )
    return bytes(payload[:boundary]), bytes(payload[boundary:])


__all__ = [
    "PREFIX_SIZE",
    "ELEMENT_SIZE",
    "encode_u32",
    "decode_u32",
    "frame",
    "frame_elements",
    "decode_frame",
    "decode_elements",
    "split_elements",
    "decode_framed_elements",
    "single_frame_payload",
    "double_frame_payload",
    "split_public_inputs",
]
