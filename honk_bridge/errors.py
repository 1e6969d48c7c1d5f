"""
Error taxonomy for honk-bridge

Every failure raised by the package derives from HonkBridgeError so callers can
catch the whole family at once. Lower-level exceptions (socket errors, OSError,
ctypes lookups) are chained with ``raise ... from exc``.

    HonkBridgeError
    ├── NetworkError            fetch failed or returned a non-success status
    ├── LocalFileError          SRS file missing, unreadable or malformed
    ├── RangeError              more points requested than an SRS holds
    ├── MalformedResponseError  native buffer truncated or badly framed
    ├── NotInitializedError     read before a one-time init completed
    └── NativeCallError         the native engine itself signalled failure
"""

from typing import Any, Dict, Optional


class HonkBridgeError(Exception):
    """Base class for all honk-bridge errors"""

    retryable: bool = False

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"{self.message} ({details})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "retryable": self.retryable,
            "context": dict(self.context),
        }


class NetworkError(HonkBridgeError):
    """Remote SRS fetch failed. Safe to retry."""

    retryable = True

    def __init__(
        self, message: str, url: Optional[str] = None, status: Optional[int] = None
    ):
        super().__init__(message, url=url, status=status)
        self.url = url
        self.status = status


class LocalFileError(HonkBridgeError):
    """Local SRS file missing, unreadable or malformed"""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message, path=path)
        self.path = path


class RangeError(HonkBridgeError):
    """Requested point count exceeds what an SRS holds"""

    def __init__(self, requested: int, available: int):
        super().__init__(
            f"requested {requested} SRS points but only {available} are available",
            requested=requested,
            available=available,
        )
        self.requested = requested
        self.available = available


class MalformedResponseError(HonkBridgeError):
    """Decoded native buffer is missing its prefix, truncated or misaligned"""


class NotInitializedError(HonkBridgeError):
    """Access attempted before a one-time initialization completed"""


class NativeCallError(HonkBridgeError):
    """Opaque failure reported by (or while reaching) the native engine"""

    def __init__(self, message: str, symbol: Optional[str] = None):
        super().__init__(message, symbol=symbol)
        self.symbol = symbol


__all__ = [
    "HonkBridgeError",
    "NetworkError",
    "LocalFileError",
    "RangeError",
    "MalformedResponseError",
    "NotInitializedError",
    "NativeCallError",
]
