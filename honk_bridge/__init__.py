"""
honk-bridge

Python bindings for a native UltraHonk proving engine. The package handles
everything between a decoded circuit and a finished proof:

- Framing of buffers crossing the native boundary
- Ownership of engine-allocated response buffers
- SRS acquisition (local file or network) behind a single-flight cache
- Circuit sizing and SRS setup
- Proof generation and decoding of the framed response

Main components:
- ProofManager: SRS setup and proof orchestration
- NativeEngine: ctypes binding to the native library
- SrsCache / LocalSrsSource / NetworkSrsSource: SRS acquisition
- ForeignBufferGuard: scoped release of engine-owned memory

Example usage:
    from honk_bridge import ProofManager, ProofVariant

    manager = ProofManager.from_config(decoder=decoder)
    manager.setup_srs_from_bytecode(bytecode)
    response = manager.prove_raw(
        constraint_system, witness, public_input_count=1,
        variant=ProofVariant.KECCAK,
    )
    print(response.raw_proof.hex())
"""

# Version information
from ._version import __version__, get_build_info, print_version_info
from .circuit import CircuitSizes, compute_subgroup_size, required_srs_points
from .codec import decode_elements, decode_frame, frame, frame_elements
from .config import HonkBridgeConfig, get_config
from .errors import (
    HonkBridgeError,
    LocalFileError,
    MalformedResponseError,
    NativeCallError,
    NetworkError,
    NotInitializedError,
    RangeError,
)
from .foreign import ForeignBuffer, ForeignBufferGuard
from .log import setup_logging
from .native import NativeEngine, ProofVariant, get_engine
from .proof_manager import ProofManager, ProofResponse
from .srs import (
    LocalSrsSource,
    NetworkSrsSource,
    Srs,
    SrsCache,
    get_shared_cache,
)

# Package metadata
__title__ = "honk-bridge"
__description__ = "Python bindings for a native UltraHonk proving engine"
__license__ = "MIT"

__all__ = [
    # Version information
    "__version__",
    "get_build_info",
    "print_version_info",
    # Proving
    "ProofManager",
    "ProofResponse",
    "ProofVariant",
    "NativeEngine",
    "get_engine",
    # SRS
    "Srs",
    "SrsCache",
    "LocalSrsSource",
    "NetworkSrsSource",
    "get_shared_cache",
    # Circuit sizing
    "CircuitSizes",
    "compute_subgroup_size",
    "required_srs_points",
    # Buffers and framing
    "ForeignBuffer",
    "ForeignBufferGuard",
    "frame",
    "frame_elements",
    "decode_frame",
    "decode_elements",
    # Configuration and logging
    "HonkBridgeConfig",
    "get_config",
    "setup_logging",
    # Errors
    "HonkBridgeError",
    "NetworkError",
    "LocalFileError",
    "RangeError",
    "MalformedResponseError",
    "NotInitializedError",
    "NativeCallError",
]


def print_system_info():
    """Print system information and component status"""
    from .native import load_library

    print(f"honk-bridge v{__version__}")
    print(f"Description: {__description__}")
    print()

    components = {}
    try:
        load_library(get_config().native.library_path)
        components["Native engine"] = True
    except NativeCallError:
        components["Native engine"] = False

    srs_config = get_config().srs
    components["Local SRS file"] = bool(srs_config.path)

    print("Component Status:")
    for component, available in components.items():
        status = "✓ Available" if available else "✗ Not Found"
        print(f"  {component}: {status}")

    print()
    if not srs_config.path:
        print(f"SRS will be downloaded from {srs_config.g1_url}")
