"""
File-based SRS source

Two on-disk formats are understood:

- ``*.dat``: raw G1 points, 64 bytes each, no header. Only the leading
  ``num_points * 64`` bytes are read; G2 comes from the bundled constant.
- anything else: a serialized :class:`Srs` record (see ``Srs.to_bytes``),
  loaded whole and then trimmed to the requested point count.
"""

import logging
from pathlib import Path
from typing import Union

from ..errors import LocalFileError, MalformedResponseError
from .types import BUNDLED_G2, G1_POINT_SIZE, Srs

logger = logging.getLogger(__name__)


class LocalSrsSource:
    """Resolve SRS data from a local file"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"LocalSrsSource(path={str(self.path)!r})"

    @property
    def is_dat_file(self) -> bool:
        return self.path.suffix == ".dat"

    def fetch(self, num_points: int) -> Srs:
        """Load ``num_points`` points from the file.

        Raises:
            LocalFileError: file missing, unreadable, short or malformed
            RangeError: a serialized SRS holds fewer points than requested
        """
        if num_points < 0:
            raise ValueError(f"num_points must be >= 0: {num_points}")

        if self.is_dat_file:
            return self._from_dat_file(num_points)
        return self._from_serialized(num_points)

    def _from_dat_file(self, num_points: int) -> Srs:
        needed = num_points * G1_POINT_SIZE
        logger.info(f"Reading {num_points} G1 points from {self.path}")
        try:
            with open(self.path, "rb") as f:
                g1_data = f.read(needed)
        except OSError as e:
            raise LocalFileError(
                f"Cannot read SRS point file: {e}", path=str(self.path)
            ) from e

        if len(g1_data) < needed:
            raise LocalFileError(
                f"SRS point file holds {len(g1_data) // G1_POINT_SIZE} points, "
                f"{num_points} required",
                path=str(self.path),
            )
        return Srs(g1_data=g1_data, g2_data=BUNDLED_G2, num_points=num_points)

    def _from_serialized(self, num_points: int) -> Srs:
        logger.info(f"Loading serialized SRS from {self.path}")
        try:
            data = self.path.read_bytes()
        except OSError as e:
            raise LocalFileError(
                f"Cannot read serialized SRS: {e}", path=str(self.path)
            ) from e

        try:
            srs = Srs.from_bytes(data)
        except MalformedResponseError as e:
            raise LocalFileError(
                f"Malformed serialized SRS: {e.message}", path=str(self.path)
            ) from e
        return srs.get(num_points)


def save_srs(srs: Srs, path: Union[str, Path]) -> Path:
    """Write ``srs`` in the serialized record format."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(srs.to_bytes())
    logger.info(f"SRS with {srs.num_points} points saved to {path}")
    return path


__all__ = ["LocalSrsSource", "save_srs"]
