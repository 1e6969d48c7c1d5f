"""
Circuit sizing helpers and external collaborator interfaces

Circuit decoding, witness execution and witness serialization live outside
this package. They are consumed through the protocols below so any
implementation (a compiled extension, a subprocess wrapper, a test double)
can be plugged into ProofManager.
"""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

logger = logging.getLogger(__name__)

# Sizes cross the native boundary as u32, so the largest power of two that
# still fits is 2^31.
MAX_SUBGROUP_SIZE = 1 << 31


@dataclass(frozen=True)
class CircuitSizes:
    """Sizes reported by the native circuit inspection call"""

    total: int
    subgroup: int


def compute_subgroup_size(circuit_size: int) -> int:
    """Smallest power of two greater than or equal to ``circuit_size``.

    Args:
        circuit_size: Number of gates in the circuit, must be positive

    Returns:
        ``2 ** ceil(log2(circuit_size))``

    Examples:
        >>> compute_subgroup_size(22)
        32
        >>> compute_subgroup_size(1_000_000)
        1048576
    """
    if circuit_size <= 0:
        raise ValueError(f"Circuit size must be positive: {circuit_size}")
    subgroup_size = 1 << (circuit_size - 1).bit_length()
    if subgroup_size > MAX_SUBGROUP_SIZE:
        raise ValueError(
            f"Circuit size {circuit_size} needs a subgroup of {subgroup_size}, "
            f"above the u32 limit"
        )
    return subgroup_size


def required_srs_points(circuit_size: int) -> int:
    """Number of SRS points needed to prove a circuit of ``circuit_size`` gates."""
    return compute_subgroup_size(circuit_size) + 1


class CircuitDecoder(Protocol):
    """Turns circuit bytecode into the raw constraint-system buffer"""

    def decode(self, bytecode: str) -> bytes: ...


class WitnessExecutor(Protocol):
    """Solves a circuit for an initial witness, returning a witness stack"""

    def execute(self, constraint_system: bytes, initial_witness: Any) -> Any: ...


class WitnessSerializer(Protocol):
    """Serializes a solved witness stack for the native prover"""

    def serialize(self, witness_stack: Any) -> bytes: ...


__all__ = [
    "MAX_SUBGROUP_SIZE",
    "CircuitSizes",
    "compute_subgroup_size",
    "required_srs_points",
    "CircuitDecoder",
    "WitnessExecutor",
    "WitnessSerializer",
]
