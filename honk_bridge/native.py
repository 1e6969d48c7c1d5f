"""
ctypes binding to the native proving engine

The engine is a barretenberg-style shared library. Every variable-length input
crosses the boundary as a Frame or an element vector (see ``codec``), integers
cross as 4-byte big-endian buffers, and fixed-size outputs are written into
caller-provided buffers. Proof generation is the one call family that returns
memory owned by the engine; it comes back as a ForeignBuffer that must be
released through :meth:`NativeEngine.release`.

The library is loaded lazily, so importing this module never requires the
native artifact to be present.

Initialization precondition: :meth:`NativeEngine.init_srs` must have completed
before any proving call. Both one-time initializations (slab allocator and
SRS) are idempotent and guarded by a lock.
"""

import ctypes
import ctypes.util
import logging
import os
import threading
from enum import Enum
from typing import Any, Iterable, Optional

from .circuit import CircuitSizes
from .codec import decode_u32, encode_u32, frame, frame_elements
from .errors import NativeCallError, NotInitializedError, RangeError
from .foreign import ForeignBuffer
from .srs.types import Srs

logger = logging.getLogger(__name__)

LIBRARY_ENV_VAR = "HONK_BRIDGE_NATIVE_LIBRARY_PATH"
LIBRARY_NAME = "barretenberg"

FIELD_SIZE = 32
POINT_SIZE = 64


class ProofVariant(str, Enum):
    """Proof flavour, each mapped to its own native prove call"""

    STANDARD = "ultra_honk"
    KECCAK = "ultra_keccak_honk"

    @property
    def symbol(self) -> str:
        return f"acir_prove_{self.value}"


# symbol -> (argtypes, restype). Every pointer argument is declared c_void_p so
# bytes, ctypes arrays and pointer instances are all accepted.
_P = ctypes.c_void_p
PROTOTYPES = {
    "common_init_slab_allocator": ([_P], None),
    "srs_init_srs": ([_P, _P, _P], None),
    "acir_get_circuit_sizes": ([_P, _P, _P, _P, _P], None),
    "acir_prove_ultra_honk": ([_P, _P, _P], None),
    "acir_prove_ultra_keccak_honk": ([_P, _P, _P], None),
    "pedersen_hash": ([_P, _P, _P], None),
    "pedersen_commit": ([_P, _P, _P], None),
    "poseidon2_hash": ([_P, _P], None),
    "blake2s": ([_P, _P], None),
    "blake2s_to_field_": ([_P, _P], None),
}


def load_library(path: Optional[str] = None) -> ctypes.CDLL:
    """Locate and load the native engine.

    Resolution order: explicit ``path``, the ``HONK_BRIDGE_NATIVE_LIBRARY_PATH``
    environment variable, then the system library search path.
    """
    candidate = path or os.getenv(LIBRARY_ENV_VAR) or ctypes.util.find_library(LIBRARY_NAME)
    if not candidate:
        raise NativeCallError(
            f"Native library '{LIBRARY_NAME}' not found. "
            f"Set {LIBRARY_ENV_VAR} or native.library_path in the configuration."
        )
    try:
        lib = ctypes.CDLL(candidate)
    except OSError as e:
        raise NativeCallError(f"Failed to load native library {candidate}: {e}") from e
    logger.info(f"Loaded native engine from {candidate}")
    return lib


def declare_prototypes(lib: Any) -> None:
    """Attach argtypes/restype to every known symbol the library exports."""
    for name, (argtypes, restype) in PROTOTYPES.items():
        try:
            fn = getattr(lib, name)
        except AttributeError:
            logger.debug(f"Native library does not export {name}")
            continue
        fn.argtypes = argtypes
        fn.restype = restype


class NativeEngine:
    """High-level wrapper over the native library"""

    def __init__(
        self,
        library: Any = None,
        library_path: Optional[str] = None,
        free_symbol: str = "free",
    ):
        self.library_path = library_path
        self.free_symbol = free_symbol

        self._lib = library
        self._free_fn = None
        self._load_lock = threading.Lock()
        self._init_lock = threading.Lock()
        self._slab_initialized = False
        self._srs_points: Optional[int] = None

        if library is not None:
            declare_prototypes(library)

    @classmethod
    def from_config(cls, native_config) -> "NativeEngine":
        return cls(
            library_path=native_config.library_path,
            free_symbol=native_config.free_symbol,
        )

    # ------------------------------------------------------------------
    # Library plumbing
    # ------------------------------------------------------------------

    @property
    def lib(self) -> Any:
        with self._load_lock:
            if self._lib is None:
                self._lib = load_library(self.library_path)
                declare_prototypes(self._lib)
            return self._lib

    def _symbol(self, name: str):
        try:
            return getattr(self.lib, name)
        except AttributeError as e:
            raise NativeCallError(
                f"Native library does not export {name}", symbol=name
            ) from e

    def _call(self, name: str, *args) -> None:
        fn = self._symbol(name)
        logger.debug(f"Calling native {name}")
        try:
            fn(*args)
        except (OSError, ctypes.ArgumentError) as e:
            raise NativeCallError(f"Native call {name} failed: {e}", symbol=name) from e

    def _resolve_free(self):
        if self._free_fn is not None:
            return self._free_fn
        fn = getattr(self.lib, self.free_symbol, None)
        if fn is None:
            libc_name = ctypes.util.find_library("c")
            if libc_name is None:
                raise NativeCallError(
                    f"Cannot locate deallocator {self.free_symbol}",
                    symbol=self.free_symbol,
                )
            fn = getattr(ctypes.CDLL(libc_name), self.free_symbol)
        fn.argtypes = [ctypes.c_void_p]
        fn.restype = None
        self._free_fn = fn
        return fn

    def release(self, address: int) -> None:
        """Return an engine-allocated buffer to the engine's allocator."""
        self._resolve_free()(address)

    # ------------------------------------------------------------------
    # One-time initialization
    # ------------------------------------------------------------------

    @property
    def srs_points(self) -> Optional[int]:
        """Point count the engine's SRS was initialized with, if any."""
        return self._srs_points

    def init_slab_allocator(self, circuit_size: int = 0) -> bool:
        """Initialize the engine's slab allocator once per process.

        Returns:
            True if this call performed the initialization
        """
        with self._init_lock:
            if self._slab_initialized:
                return False
            self._call("common_init_slab_allocator", encode_u32(circuit_size))
            self._slab_initialized = True
        logger.info(f"Native slab allocator initialized (circuit_size={circuit_size})")
        return True

    def init_srs(self, srs: Srs) -> bool:
        """Hand the SRS to the engine once per process.

        Later calls are no-ops as long as the engine already holds at least as
        many points as ``srs``.

        Raises:
            RangeError: the engine was initialized with fewer points
        """
        with self._init_lock:
            if self._srs_points is not None:
                if srs.num_points > self._srs_points:
                    raise RangeError(requested=srs.num_points, available=self._srs_points)
                return False
            self._call(
                "srs_init_srs",
                srs.g1_data,
                encode_u32(srs.num_points),
                srs.g2_data,
            )
            self._srs_points = srs.num_points
        logger.info(f"Native SRS initialized with {srs.num_points} points")
        return True

    # ------------------------------------------------------------------
    # Hash / commitment family
    # ------------------------------------------------------------------

    def _fixed_output(self, name: str, size: int, *inputs) -> bytes:
        self.init_slab_allocator()
        out = ctypes.create_string_buffer(size)
        self._call(name, *inputs, out)
        return out.raw

    def pedersen_hash(self, elements: Iterable[bytes], hash_index: int = 0) -> bytes:
        return self._fixed_output(
            "pedersen_hash", FIELD_SIZE, frame_elements(elements), encode_u32(hash_index)
        )

    def pedersen_commit(self, elements: Iterable[bytes], ctx_index: int = 0) -> bytes:
        """Pedersen commitment as an affine point (x || y, 64 bytes)."""
        return self._fixed_output(
            "pedersen_commit", POINT_SIZE, frame_elements(elements), encode_u32(ctx_index)
        )

    def poseidon2_hash(self, elements: Iterable[bytes]) -> bytes:
        return self._fixed_output("poseidon2_hash", FIELD_SIZE, frame_elements(elements))

    def blake2s(self, data: bytes) -> bytes:
        return self._fixed_output("blake2s", FIELD_SIZE, frame(data))

    def blake2s_to_field(self, data: bytes) -> bytes:
        return self._fixed_output("blake2s_to_field_", FIELD_SIZE, frame(data))

    # ------------------------------------------------------------------
    # Circuit inspection and proving
    # ------------------------------------------------------------------

    def get_circuit_sizes(
        self,
        constraint_system: bytes,
        recursive: bool = False,
        honk_recursion: bool = True,
    ) -> CircuitSizes:
        """Ask the engine for the total and subgroup size of a circuit."""
        total = ctypes.create_string_buffer(4)
        subgroup = ctypes.create_string_buffer(4)
        self._call(
            "acir_get_circuit_sizes",
            frame(constraint_system),
            ctypes.pointer(ctypes.c_bool(recursive)),
            ctypes.pointer(ctypes.c_bool(honk_recursion)),
            total,
            subgroup,
        )
        sizes = CircuitSizes(total=decode_u32(total.raw), subgroup=decode_u32(subgroup.raw))
        logger.debug(f"Circuit sizes: total={sizes.total}, subgroup={sizes.subgroup}")
        return sizes

    def prove(
        self, variant: ProofVariant, acir_frame: bytes, witness_frame: bytes
    ) -> ForeignBuffer:
        """Run the prove call for ``variant``.

        Both inputs must already be Frames. Blocks until the engine returns; the
        call cannot be cancelled once dispatched.

        Returns:
            Engine-owned output buffer; decode it with ForeignBufferGuard
        """
        if self._srs_points is None:
            raise NotInitializedError("Native SRS must be initialized before proving")

        variant = ProofVariant(variant)
        out = ctypes.c_void_p()
        self._call(variant.symbol, acir_frame, witness_frame, ctypes.pointer(out))
        if not out.value:
            raise NativeCallError(
                f"{variant.symbol} returned a null buffer", symbol=variant.symbol
            )
        return ForeignBuffer(address=out.value, release=self.release, origin=variant.symbol)


_engine: Optional[NativeEngine] = None
_engine_lock = threading.Lock()


def get_engine() -> NativeEngine:
    """Process-wide engine built from the active configuration."""
    global _engine
    with _engine_lock:
        if _engine is None:
            from .config import get_config

            _engine = NativeEngine.from_config(get_config().native)
        return _engine


def set_engine(engine: Optional[NativeEngine]) -> None:
    """Replace the process-wide engine (``None`` resets it)."""
    global _engine
    with _engine_lock:
        _engine = engine


__all__ = [
    "LIBRARY_ENV_VAR",
    "PROTOTYPES",
    "ProofVariant",
    "NativeEngine",
    "declare_prototypes",
    "get_engine",
    "load_library",
    "set_engine",
]
