"""
Network SRS source

G1 points are fetched with an HTTP range request covering exactly the bytes
needed (``bytes=0-<num_points*64-1>``). G2 is either the bundled constant
(``g2_mode="bundled"``) or a full download of the G2 dataset
(``g2_mode="network"``); which one applies depends on the deployed protocol
version.

Transient transport failures are retried by the session adapter. Anything that
still fails surfaces as NetworkError, which callers may retry.
"""

import logging
from typing import Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..errors import NetworkError
from .types import BUNDLED_G2, G1_POINT_SIZE, G2_SIZE, Srs

logger = logging.getLogger(__name__)

DEFAULT_G1_URL = "https://crs.aztec.network/g1.dat"
DEFAULT_G2_URL = "https://crs.aztec.network/g2.dat"

G2_MODES = ("bundled", "network")

# Streaming read size for G1 bodies
G1_CHUNK_SIZE = 1 << 20


def build_session(retry_attempts: int = 3, retry_backoff: float = 0.5) -> requests.Session:
    """Create a session that retries idempotent GETs on transient failures."""
    retry = Retry(
        total=retry_attempts,
        backoff_factor=retry_backoff,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET"}),
    )
    adapter = HTTPAdapter(max_retries=retry)
    session = requests.Session()
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def g1_range_header(num_points: int) -> Dict[str, str]:
    """Range header covering the first ``num_points`` G1 points."""
    if num_points <= 0:
        raise ValueError(f"num_points must be positive: {num_points}")
    return {"Range": f"bytes=0-{num_points * G1_POINT_SIZE - 1}"}


class NetworkSrsSource:
    """Resolve SRS data over HTTP(S)"""

    def __init__(
        self,
        g1_url: str = DEFAULT_G1_URL,
        g2_url: str = DEFAULT_G2_URL,
        g2_mode: str = "bundled",
        timeout: float = 60.0,
        retry_attempts: int = 3,
        retry_backoff: float = 0.5,
        session: Optional[requests.Session] = None,
    ):
        if g2_mode not in G2_MODES:
            raise ValueError(f"Invalid g2_mode: {g2_mode} (expected one of {G2_MODES})")
        self.g1_url = g1_url
        self.g2_url = g2_url
        self.g2_mode = g2_mode
        self.timeout = timeout
        self.session = session or build_session(retry_attempts, retry_backoff)

    def __repr__(self) -> str:
        return (
            f"NetworkSrsSource(g1_url={self.g1_url!r}, g2_mode={self.g2_mode!r})"
        )

    def __enter__(self) -> "NetworkSrsSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def fetch(self, num_points: int) -> Srs:
        """Download ``num_points`` G1 points and the G2 element.

        Raises:
            NetworkError: transport failure, non-success status or short body
        """
        if num_points < 0:
            raise ValueError(f"num_points must be >= 0: {num_points}")

        if num_points == 0:
            g1_data = b""
        else:
            g1_data = self._download_g1(num_points)

        if self.g2_mode == "bundled":
            g2_data = BUNDLED_G2
        else:
            g2_data = self._download_g2()

        logger.info(
            f"Fetched SRS: {num_points} points, {len(g1_data)} G1 bytes, "
            f"{len(g2_data)} G2 bytes"
        )
        return Srs(g1_data=g1_data, g2_data=g2_data, num_points=num_points)

    def _get(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        stream: bool = False,
    ) -> requests.Response:
        try:
            response = self.session.get(
                url, headers=headers, timeout=self.timeout, stream=stream
            )
        except requests.RequestException as e:
            logger.warning(f"SRS request to {url} failed: {e}")
            raise NetworkError(f"Request failed: {e}", url=url) from e

        if response.status_code not in (200, 206):
            logger.warning(f"SRS request to {url} returned HTTP {response.status_code}")
            response.close()
            raise NetworkError(
                f"Unexpected HTTP status {response.status_code}",
                url=url,
                status=response.status_code,
            )
        return response

    def _download_g1(self, num_points: int) -> bytes:
        """Read exactly the leading ``num_points * 64`` bytes of the G1 dataset.

        The body is streamed and reading stops once enough bytes arrived, so a
        server that ignores the range and answers 200 with the whole dataset
        is not buffered in full.
        """
        needed = num_points * G1_POINT_SIZE
        logger.info(f"Downloading {num_points} G1 points ({needed} bytes) from {self.g1_url}")
        response = self._get(self.g1_url, headers=g1_range_header(num_points), stream=True)
        if response.status_code == 200:
            logger.debug("Server ignored the range request, reading the leading bytes")

        chunks = []
        received = 0
        try:
            for chunk in response.iter_content(chunk_size=G1_CHUNK_SIZE):
                chunks.append(chunk)
                received += len(chunk)
                if received >= needed:
                    break
        except requests.RequestException as e:
            logger.warning(f"G1 download from {self.g1_url} interrupted: {e}")
            raise NetworkError(
                f"G1 download interrupted: {e}",
                url=self.g1_url,
                status=response.status_code,
            ) from e
        finally:
            response.close()

        if received < needed:
            raise NetworkError(
                f"G1 download returned {received} bytes, {needed} required",
                url=self.g1_url,
                status=response.status_code,
            )
        return b"".join(chunks)[:needed]

    def _download_g2(self) -> bytes:
        logger.info(f"Downloading G2 data from {self.g2_url}")
        response = self._get(self.g2_url)
        body = response.content
        if len(body) != G2_SIZE:
            raise NetworkError(
                f"G2 download returned {len(body)} bytes, expected {G2_SIZE}",
                url=self.g2_url,
                status=response.status_code,
            )
        return body


__all__ = [
    "DEFAULT_G1_URL",
    "DEFAULT_G2_URL",
    "G2_MODES",
    "NetworkSrsSource",
    "build_session",
    "g1_range_header",
]
