"""
Single-flight SRS cache

The cache is a write-once cell shared by every proving session in the process.
The first caller to resolve performs the fetch; callers arriving while that
fetch is in flight wait on the same future and receive the same Srs. Once
populated the cell never changes.

Failure policy:
    retry_on_failure=True  (default) the cell stays empty after a failed fetch
                           and the next caller starts a fresh one.
    retry_on_failure=False the first failure is kept; every later caller gets
                           a fresh error of the same kind chained to it.

An interrupt (KeyboardInterrupt, SystemExit) during the fetch never poisons
the cell.
"""

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Optional, Protocol

from ..errors import (
    HonkBridgeError,
    LocalFileError,
    NetworkError,
    NotInitializedError,
    RangeError,
)
from .types import Srs

logger = logging.getLogger(__name__)


class SrsSource(Protocol):
    """Anything able to produce an Srs with a given number of points"""

    def fetch(self, num_points: int) -> Srs: ...


class SrsCache:
    """Lazily initialized, process-shared SRS cell"""

    def __init__(
        self,
        source: SrsSource,
        retry_on_failure: bool = True,
        min_points: int = 0,
    ):
        self.source = source
        self.retry_on_failure = retry_on_failure
        self.min_points = min_points

        self._lock = threading.Lock()
        self._srs: Optional[Srs] = None
        self._inflight: Optional[Future] = None
        self._failure: Optional[BaseException] = None
        self.fetch_count = 0

    def __repr__(self) -> str:
        state = "populated" if self._srs is not None else "empty"
        return f"SrsCache(source={self.source!r}, state={state})"

    @property
    def is_populated(self) -> bool:
        return self._srs is not None

    def get(self, num_points: Optional[int] = None) -> Srs:
        """Read the cached SRS without fetching.

        Raises:
            NotInitializedError: the cache has never been populated
            RangeError: more points requested than were cached
        """
        srs = self._srs
        if srs is None:
            raise NotInitializedError("SRS cache has not been populated yet")
        if num_points is None:
            return srs
        return srs.get(num_points)

    def resolve(self, required_points: int) -> Srs:
        """Return an SRS with exactly ``required_points`` points.

        Fetches at most once per cache regardless of how many threads call
        concurrently.

        Raises:
            NetworkError, LocalFileError: the fetch failed
            RangeError: the cached SRS holds fewer points than requested
        """
        if required_points < 0:
            raise ValueError(f"required_points must be >= 0: {required_points}")

        leader = False
        with self._lock:
            if self._srs is not None:
                return self._srs.get(required_points)
            failure = self._failure
            if failure is not None:
                raise _poisoned_error(failure) from failure
            future = self._inflight
            if future is None:
                future = Future()
                self._inflight = future
                leader = True

        if leader:
            self._fetch(future, max(required_points, self.min_points))
        else:
            logger.debug("Waiting on in-flight SRS fetch")

        srs = future.result()
        return srs.get(required_points)

    async def resolve_async(self, required_points: int) -> Srs:
        """Async variant of :meth:`resolve`; the fetch runs on a worker thread."""
        return await asyncio.to_thread(self.resolve, required_points)

    def _fetch(self, future: Future, num_points: int) -> None:
        self.fetch_count += 1
        logger.info(f"Fetching SRS ({num_points} points) from {self.source!r}")
        try:
            srs = self.source.fetch(num_points)
        except BaseException as e:
            poison = not self.retry_on_failure and isinstance(e, Exception)
            with self._lock:
                self._inflight = None
                if poison:
                    self._failure = e
            logger.warning(
                f"SRS fetch failed ({type(e).__name__}); "
                f"{'cache poisoned' if poison else 'retryable'}"
            )
            future.set_exception(e)
            if not isinstance(e, Exception):
                raise
            return

        with self._lock:
            self._srs = srs
            self._inflight = None
        logger.info(f"SRS cache populated with {srs.num_points} points")
        future.set_result(srs)


def _poisoned_error(failure: Exception) -> HonkBridgeError:
    """Fresh error of the same kind as the memoized fetch failure"""
    message = f"SRS cache poisoned by an earlier failed fetch: {failure}"
    if isinstance(failure, NetworkError):
        return NetworkError(message, url=failure.url, status=failure.status)
    if isinstance(failure, LocalFileError):
        return LocalFileError(message, path=failure.path)
    if isinstance(failure, RangeError):
        return RangeError(requested=failure.requested, available=failure.available)
    return HonkBridgeError(message)


_shared_cache: Optional[SrsCache] = None
_shared_lock = threading.Lock()


def get_shared_cache(source: Optional[SrsSource] = None, **kwargs) -> SrsCache:
    """Return the process-wide cache, creating it on first use.

    When ``source`` is omitted the source and policy come from the active
    configuration.
    """
    global _shared_cache
    with _shared_lock:
        if _shared_cache is None:
            if source is None:
                from ..config import get_config
                from . import srs_source_from_config

                srs_config = get_config().srs
                source = srs_source_from_config(srs_config)
                kwargs.setdefault("retry_on_failure", srs_config.retry_on_failure)
                kwargs.setdefault("min_points", srs_config.min_points)
            _shared_cache = SrsCache(source, **kwargs)
        return _shared_cache


def reset_shared_cache() -> None:
    """Drop the process-wide cache. Intended for tests."""
    global _shared_cache
    with _shared_lock:
        _shared_cache = None


__all__ = ["SrsSource", "SrsCache", "get_shared_cache", "reset_shared_cache"]
