"""
Structured Reference String value type
"""

import logging
from dataclasses import dataclass

from ..codec import PREFIX_SIZE, decode_u32, encode_u32, frame
from ..errors import MalformedResponseError, RangeError

logger = logging.getLogger(__name__)

G1_POINT_SIZE = 64
G2_SIZE = 128

# G2 is a small fixed group element, shipped with the package.
BUNDLED_G2 = bytes(
    [
        126, 35, 31, 236, 147, 136, 131, 176, 159, 89, 68, 7, 59, 50, 7, 139,
        188, 137, 181, 179, 152, 181, 151, 78, 1, 24, 196, 213, 184, 55, 188, 194,
        78, 254, 48, 250, 192, 147, 131, 193, 234, 81, 216, 122, 53, 142, 3, 139,
        231, 255, 78, 88, 7, 145, 222, 232, 38, 14, 1, 178, 81, 246, 241, 199,
        133, 74, 135, 212, 218, 204, 94, 85, 17, 230, 221, 63, 150, 230, 206, 162,
        86, 71, 91, 66, 20, 229, 97, 94, 34, 254, 189, 163, 192, 192, 99, 42,
        238, 65, 60, 128, 218, 106, 95, 228, 156, 242, 160, 70, 65, 249, 155, 164,
        210, 81, 86, 193, 187, 154, 114, 133, 4, 252, 99, 105, 247, 17, 15, 227,
    ]
)


@dataclass(frozen=True)
class Srs:
    """G1/G2 setup data handed to the native engine.

    ``g1_data`` holds ``num_points`` points of 64 bytes each. Instances are
    immutable; :meth:`get` returns a trimmed copy instead of mutating.
    """

    g1_data: bytes
    g2_data: bytes
    num_points: int

    def __post_init__(self):
        if self.num_points < 0:
            raise ValueError(f"num_points must be >= 0: {self.num_points}")
        if len(self.g1_data) != self.num_points * G1_POINT_SIZE:
            raise ValueError(
                f"G1 data is {len(self.g1_data)} bytes, expected "
                f"{self.num_points * G1_POINT_SIZE} for {self.num_points} points"
            )

    def __repr__(self) -> str:
        return (
            f"Srs(num_points={self.num_points}, g1_bytes={len(self.g1_data)}, "
            f"g2_bytes={len(self.g2_data)})"
        )

    def get(self, num_points: int) -> "Srs":
        """Return an SRS holding exactly ``num_points`` points.

        Args:
            num_points: Number of points required

        Returns:
            ``self`` when the count matches, otherwise a new truncated value

        Raises:
            RangeError: more points requested than this SRS holds
        """
        if num_points < 0:
            raise ValueError(f"num_points must be >= 0: {num_points}")
        if num_points == self.num_points:
            return self
        if num_points > self.num_points:
            raise RangeError(requested=num_points, available=self.num_points)
        return Srs(
            g1_data=self.g1_data[: num_points * G1_POINT_SIZE],
            g2_data=self.g2_data,
            num_points=num_points,
        )

    def to_bytes(self) -> bytes:
        """Serialize as ``u32be num_points || Frame(g1) || Frame(g2)``."""
        return encode_u32(self.num_points) + frame(self.g1_data) + frame(self.g2_data)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Srs":
        """Inverse of :meth:`to_bytes`."""
        num_points = decode_u32(data, 0)
        offset = PREFIX_SIZE

        g1_len = decode_u32(data, offset)
        offset += PREFIX_SIZE
        g1_data = data[offset : offset + g1_len]
        offset += g1_len

        g2_len = decode_u32(data, offset)
        offset += PREFIX_SIZE
        g2_data = data[offset : offset + g2_len]
        offset += g2_len

        if len(g1_data) != g1_len or len(g2_data) != g2_len or offset != len(data):
            raise MalformedResponseError(
                f"Serialized SRS is truncated or has trailing bytes "
                f"({len(data)} bytes total)"
            )
        try:
            return cls(g1_data=bytes(g1_data), g2_data=bytes(g2_data), num_points=num_points)
        except ValueError as e:
            raise MalformedResponseError(f"Serialized SRS is inconsistent: {e}") from e


__all__ = ["G1_POINT_SIZE", "G2_SIZE", "BUNDLED_G2", "Srs"]
