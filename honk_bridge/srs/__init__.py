"""
SRS acquisition and caching

Sources:
- LocalSrsSource: raw ``.dat`` point file or a serialized Srs record
- NetworkSrsSource: HTTP range fetch of G1, bundled or fetched G2

SrsCache wraps a source so the process fetches at most once.
"""

from typing import Optional, Union

from .cache import SrsCache, SrsSource, get_shared_cache, reset_shared_cache
from .local import LocalSrsSource, save_srs
from .network import DEFAULT_G1_URL, DEFAULT_G2_URL, NetworkSrsSource
from .types import BUNDLED_G2, G1_POINT_SIZE, G2_SIZE, Srs


def srs_source_from_config(srs_config) -> Union[LocalSrsSource, NetworkSrsSource]:
    """Pick the source variant described by an ``SrsConfig``.

    A configured ``path`` selects the local source, otherwise the network one.
    """
    if srs_config.path:
        return LocalSrsSource(srs_config.path)
    return NetworkSrsSource(
        g1_url=srs_config.g1_url,
        g2_url=srs_config.g2_url,
        g2_mode=srs_config.g2_mode,
        timeout=srs_config.timeout,
        retry_attempts=srs_config.retry_attempts,
        retry_backoff=srs_config.retry_backoff,
    )


def resolve(required_points: int, source: Optional[SrsSource] = None) -> Srs:
    """Resolve ``required_points`` points through the shared cache.

    With an explicit ``source`` the fetch bypasses the shared cache.
    """
    if source is not None:
        return source.fetch(required_points)
    return get_shared_cache().resolve(required_points)


__all__ = [
    "BUNDLED_G2",
    "DEFAULT_G1_URL",
    "DEFAULT_G2_URL",
    "G1_POINT_SIZE",
    "G2_SIZE",
    "LocalSrsSource",
    "NetworkSrsSource",
    "Srs",
    "SrsCache",
    "SrsSource",
    "get_shared_cache",
    "reset_shared_cache",
    "resolve",
    "save_srs",
    "srs_source_from_config",
]
