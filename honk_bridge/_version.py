"""
Version information for honk-bridge

Format: YYYY.MM.DD.dev.INCREMENT
"""

import os
import platform
import sys

# Static version read by hatchling
__version__ = "2026.10.18.dev.1"


def get_version() -> str:
    return __version__


def get_build_info() -> dict:
    """
    Get build and runtime information.

    Returns:
        Dictionary with version, interpreter and native library details
    """
    from .native import LIBRARY_ENV_VAR

    return {
        "version": __version__,
        "is_dev": ".dev." in __version__,
        "python": sys.version.split()[0],
        "platform": platform.platform(),
        "native_library": os.getenv(LIBRARY_ENV_VAR, "unset"),
        "git_ref": os.getenv("GITHUB_REF", "unknown"),
        "git_sha": os.getenv("GITHUB_SHA", "unknown"),
    }


def print_version_info():
    """Print version information."""
    info = get_build_info()

    print(f"honk-bridge Version: {info['version']}")
    print(f"Python: {info['python']} ({info['platform']})")
    print(f"Native library: {info['native_library']}")
    print(f"Build Type: {'Development' if info['is_dev'] else 'Release'}")


__all__ = [
    "__version__",
    "get_version",
    "get_build_info",
    "print_version_info",
]
