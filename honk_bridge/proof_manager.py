"""
Proof Manager for native UltraHonk proof generation

This module drives a proving request end to end:
1. Make sure the engine holds an SRS large enough for the circuit
2. Frame the constraint system and the serialized witness
3. Dispatch the native prove call selected by the proof variant
4. Copy the engine-owned response out, release it, and split the payload into
   public inputs and raw proof bytes

A request either returns a complete ProofResponse or raises; no partial result
is produced and nothing is retried. The SRS cache is the only state shared
between concurrent requests.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol

from .circuit import (
    CircuitDecoder,
    CircuitSizes,
    WitnessExecutor,
    WitnessSerializer,
    compute_subgroup_size,
    required_srs_points,
)
from .codec import (
    double_frame_payload,
    frame,
    single_frame_payload,
    split_elements,
    split_public_inputs,
)
from .config import HonkBridgeConfig, ResponseFraming, get_config
from .foreign import DEFAULT_MAX_RESPONSE_BYTES, ForeignBuffer, take_frame
from .native import ProofVariant, get_engine
from .srs import Srs, SrsCache, get_shared_cache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProofResponse:
    """Decoded proof output

    ``public_inputs + raw_proof`` is the inner payload of ``complete_blob``;
    ``complete_blob`` keeps the response exactly as the engine framed it.
    """

    public_inputs: bytes
    raw_proof: bytes
    complete_blob: bytes

    @property
    def public_input_count(self) -> int:
        return len(self.public_inputs) // 32

    def public_input_fields(self) -> List[bytes]:
        """Public inputs as individual 32-byte field elements"""
        return split_elements(self.public_inputs)

    def proof_with_public_inputs(self) -> bytes:
        return self.public_inputs + self.raw_proof


class ProverBackend(Protocol):
    """The subset of NativeEngine the orchestrator depends on"""

    @property
    def srs_points(self) -> Optional[int]: ...

    def init_srs(self, srs: Srs) -> bool: ...

    def get_circuit_sizes(
        self, constraint_system: bytes, recursive: bool = False, honk_recursion: bool = True
    ) -> CircuitSizes: ...

    def prove(
        self, variant: ProofVariant, acir_frame: bytes, witness_frame: bytes
    ) -> ForeignBuffer: ...


def decode_proof_response(
    blob: bytes,
    public_input_count: int,
    framing: ResponseFraming = ResponseFraming.DOUBLE,
) -> ProofResponse:
    """Split a framed proof response.

    Args:
        blob: Response bytes including every length prefix
        public_input_count: Number of 32-byte public inputs leading the payload
        framing: Whether the payload is wrapped in one or two length prefixes

    Raises:
        MalformedResponseError: bad framing or payload shorter than the
            public inputs
    """
    framing = ResponseFraming(framing)
    if framing == ResponseFraming.DOUBLE:
        payload = double_frame_payload(blob)
    else:
        payload = single_frame_payload(blob)

    public_inputs, raw_proof = split_public_inputs(payload, public_input_count)
    return ProofResponse(
        public_inputs=public_inputs,
        raw_proof=raw_proof,
        complete_blob=bytes(blob),
    )


class ProofManager:
    """Orchestrates SRS setup and proof generation against a native backend"""

    def __init__(
        self,
        engine: Optional[ProverBackend] = None,
        srs_cache: Optional[SrsCache] = None,
        framing: ResponseFraming = ResponseFraming.DOUBLE,
        variant: ProofVariant = ProofVariant.STANDARD,
        recursive: bool = False,
        honk_recursion: bool = True,
        max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES,
        decoder: Optional[CircuitDecoder] = None,
        executor: Optional[WitnessExecutor] = None,
        serializer: Optional[WitnessSerializer] = None,
    ):
        self.engine = engine if engine is not None else get_engine()
        self.srs_cache = srs_cache if srs_cache is not None else get_shared_cache()
        self.framing = ResponseFraming(framing)
        self.variant = ProofVariant(variant)
        self.recursive = recursive
        self.honk_recursion = honk_recursion
        self.max_response_bytes = max_response_bytes

        self.decoder = decoder
        self.executor = executor
        self.serializer = serializer

        logger.info(
            f"ProofManager initialized (variant={self.variant.value}, "
            f"framing={self.framing.value})"
        )

    @classmethod
    def from_config(
        cls, config: Optional[HonkBridgeConfig] = None, **kwargs
    ) -> "ProofManager":
        """Build a manager from configuration; keyword arguments take precedence"""
        config = config or get_config()
        kwargs.setdefault("framing", config.prover.response_framing)
        kwargs.setdefault("variant", ProofVariant(config.prover.variant))
        kwargs.setdefault("recursive", config.prover.recursive)
        kwargs.setdefault("honk_recursion", config.prover.honk_recursion)
        kwargs.setdefault("max_response_bytes", config.native.max_response_bytes)
        return cls(**kwargs)

    # ------------------------------------------------------------------
    # SRS setup
    # ------------------------------------------------------------------

    def setup_srs(self, circuit_size: int) -> int:
        """Make sure the engine holds enough SRS points for ``circuit_size``.

        The subgroup size is rounded up to a power of two and one extra point
        is requested, as the prover needs ``subgroup + 1`` points. The engine
        is initialized once per process, so it receives every point the cache
        holds rather than just this circuit's share.

        Returns:
            Number of points the engine holds
        """
        required_points = required_srs_points(circuit_size)
        logger.info(
            f"SRS setup: circuit_size={circuit_size}, points={required_points}"
        )

        self.srs_cache.resolve(required_points)
        held = self.engine.srs_points
        if held is not None and held >= required_points:
            return held

        srs = self.srs_cache.get()
        logger.debug(
            f"SRS resolved: {srs.num_points} points cached, "
            f"g1={len(srs.g1_data)} bytes, g2={len(srs.g2_data)} bytes"
        )
        self.engine.init_srs(srs)
        return self.engine.srs_points

    async def setup_srs_async(self, circuit_size: int) -> int:
        return await asyncio.to_thread(self.setup_srs, circuit_size)

    def get_circuit_size(self, bytecode: str, recursive: Optional[bool] = None) -> int:
        """Total gate count of a circuit given as bytecode"""
        constraint_system = self._decode(bytecode)
        sizes = self.engine.get_circuit_sizes(
            constraint_system,
            self.recursive if recursive is None else recursive,
            self.honk_recursion,
        )
        return sizes.total

    def get_subgroup_size(self, bytecode: str, recursive: Optional[bool] = None) -> int:
        return compute_subgroup_size(self.get_circuit_size(bytecode, recursive))

    def setup_srs_from_bytecode(
        self, bytecode: str, recursive: Optional[bool] = None
    ) -> int:
        return self.setup_srs(self.get_circuit_size(bytecode, recursive))

    # ------------------------------------------------------------------
    # Proving
    # ------------------------------------------------------------------

    def prove_raw(
        self,
        constraint_system: bytes,
        witness: bytes,
        public_input_count: int,
        variant: Optional[ProofVariant] = None,
    ) -> ProofResponse:
        """Prove with an already decoded constraint system and serialized witness.

        Blocks for the duration of the native call, which cannot be cancelled.

        Raises:
            NotInitializedError: the engine has no SRS yet
            NativeCallError: the engine reported a failure
            MalformedResponseError: the response could not be decoded
        """
        if public_input_count < 0:
            raise ValueError(f"public_input_count must be >= 0: {public_input_count}")
        variant = ProofVariant(variant) if variant is not None else self.variant

        acir_frame = frame(constraint_system)
        witness_frame = frame(witness)

        logger.info(
            f"Dispatching {variant.symbol} (acir={len(constraint_system)} bytes, "
            f"witness={len(witness)} bytes)"
        )
        start = time.time()
        buffer = self.engine.prove(variant, acir_frame, witness_frame)
        blob = take_frame(buffer, max_length=self.max_response_bytes)
        elapsed = time.time() - start

        response = decode_proof_response(blob, public_input_count, self.framing)
        logger.info(
            f"Proof generated in {elapsed:.2f}s: {len(response.raw_proof)} proof bytes, "
            f"{public_input_count} public inputs"
        )
        return response

    async def prove_raw_async(
        self,
        constraint_system: bytes,
        witness: bytes,
        public_input_count: int,
        variant: Optional[ProofVariant] = None,
    ) -> ProofResponse:
        """Run :meth:`prove_raw` on a worker thread.

        Cancelling the awaiting task abandons the result; the native call still
        runs to completion.
        """
        return await asyncio.to_thread(
            self.prove_raw, constraint_system, witness, public_input_count, variant
        )

    def prove(
        self,
        bytecode: str,
        initial_witness: Any,
        public_input_count: int,
        variant: Optional[ProofVariant] = None,
    ) -> ProofResponse:
        """Decode, execute and serialize through the collaborators, then prove"""
        if self.executor is None or self.serializer is None:
            raise ValueError(
                "Proving from bytecode requires a witness executor and serializer"
            )
        constraint_system = self._decode(bytecode)
        witness_stack = self.executor.execute(constraint_system, initial_witness)
        witness = self.serializer.serialize(witness_stack)
        return self.prove_raw(constraint_system, witness, public_input_count, variant)

    async def prove_async(
        self,
        bytecode: str,
        initial_witness: Any,
        public_input_count: int,
        variant: Optional[ProofVariant] = None,
    ) -> ProofResponse:
        return await asyncio.to_thread(
            self.prove, bytecode, initial_witness, public_input_count, variant
        )

    def _decode(self, bytecode: str) -> bytes:
        if self.decoder is None:
            raise ValueError("No circuit decoder configured")
        return self.decoder.decode(bytecode)


__all__ = [
    "ProofResponse",
    "ProverBackend",
    "ProofManager",
    "decode_proof_response",
]
