"""
Unit Tests for the proof orchestrator
"""

import asyncio
from unittest.mock import Mock

import pytest

from honk_bridge.codec import frame
from honk_bridge.config import HonkBridgeConfig, ResponseFraming
from honk_bridge.errors import MalformedResponseError, NotInitializedError, RangeError
from honk_bridge.native import NativeEngine, ProofVariant
from honk_bridge.proof_manager import ProofManager, ProofResponse, decode_proof_response
from honk_bridge.srs import SrsCache
from tests.mocks import (
    EchoExecutor,
    FakeSrsSource,
    HexDecoder,
    JoinSerializer,
    double_framed,
    make_srs,
)


def field(value: int) -> bytes:
    return value.to_bytes(32, "big")


PUBLIC_INPUTS = field(7) + field(9)
RAW_PROOF = bytes(range(200)) * 2


@pytest.fixture
def manager(fake_engine, srs_source):
    fake_engine.response = double_framed(PUBLIC_INPUTS + RAW_PROOF)
    return ProofManager(
        engine=fake_engine,
        srs_cache=SrsCache(srs_source),
        decoder=HexDecoder(),
        executor=EchoExecutor(),
        serializer=JoinSerializer(),
    )


@pytest.fixture
def ready_manager(manager):
    manager.setup_srs(1000)
    return manager


class TestDecodeProofResponse:
    """Test splitting framed responses"""

    def test_double_framed(self):
        payload = PUBLIC_INPUTS + RAW_PROOF
        blob = double_framed(payload)

        response = decode_proof_response(blob, 2)

        assert len(response.public_inputs) == 64
        assert len(response.raw_proof) == len(payload) - 64
        assert response.public_inputs == PUBLIC_INPUTS
        assert response.raw_proof == RAW_PROOF
        assert response.complete_blob == blob

    def test_double_framed_payload_shorter_than_inputs(self):
        with pytest.raises(MalformedResponseError):
            decode_proof_response(double_framed(b"\x00" * 63), 2)

    def test_single_framed(self):
        blob = frame(PUBLIC_INPUTS + RAW_PROOF)
        response = decode_proof_response(blob, 2, ResponseFraming.SINGLE)
        assert response.raw_proof == RAW_PROOF

    def test_framing_from_string(self):
        blob = frame(b"proof")
        assert decode_proof_response(blob, 0, "single").raw_proof == b"proof"

    def test_response_helpers(self):
        response = decode_proof_response(double_framed(PUBLIC_INPUTS + b"p"), 2)
        assert response.public_input_count == 2
        assert response.public_input_fields() == [field(7), field(9)]
        assert response.proof_with_public_inputs() == PUBLIC_INPUTS + b"p"


class TestSetupSrs:
    """Test SRS sizing and engine initialization"""

    def test_points_are_subgroup_plus_one(self, manager, fake_engine, srs_source):
        assert manager.setup_srs(1000) == 1025
        assert srs_source.calls == [1025]
        assert fake_engine.srs.num_points == 1025

    def test_repeated_setup_fetches_once(self, manager, srs_source):
        manager.setup_srs(1000)
        manager.setup_srs(600)
        assert srs_source.calls == [1025]

    def test_invalid_circuit_size(self, manager):
        with pytest.raises(ValueError):
            manager.setup_srs(0)

    def test_from_bytecode(self, manager, fake_engine, srs_source):
        fake_engine.circuit_size = 22
        assert manager.setup_srs_from_bytecode("deadbeef") == 33
        assert manager.get_circuit_size("deadbeef") == 22
        assert manager.get_subgroup_size("deadbeef") == 32

    def test_async_setup(self, manager):
        assert asyncio.run(manager.setup_srs_async(100)) == 129

    def test_engine_receives_every_cached_point(self):
        """A larger circuit after a smaller one is served from the prefetched SRS"""
        library = Mock()
        engine = NativeEngine(library=library)
        source = FakeSrsSource()
        manager = ProofManager(engine=engine, srs_cache=SrsCache(source, min_points=2049))

        assert manager.setup_srs(100) == 2049
        assert manager.setup_srs(1000) == 2049

        assert engine.srs_points == 2049
        assert source.calls == [2049]
        assert library.srs_init_srs.call_count == 1

    def test_initialized_engine_is_not_reinitialized(self, srs_source):
        library = Mock()
        engine = NativeEngine(library=library)
        engine.init_srs(make_srs(1025))
        manager = ProofManager(engine=engine, srs_cache=SrsCache(srs_source))

        assert manager.setup_srs(1000) == 1025
        assert library.srs_init_srs.call_count == 1

    def test_undersized_engine_srs(self, srs_source):
        engine = NativeEngine(library=Mock())
        engine.init_srs(make_srs(129))
        manager = ProofManager(engine=engine, srs_cache=SrsCache(srs_source))

        with pytest.raises(RangeError):
            manager.setup_srs(1000)


class TestProveRaw:
    """Test proof generation from decoded inputs"""

    def test_prove_before_srs(self, manager, native_memory):
        with pytest.raises(NotInitializedError):
            manager.prove_raw(b"acir", b"witness", 2)
        assert native_memory.allocated == []

    def test_inputs_are_framed(self, ready_manager, fake_engine):
        ready_manager.prove_raw(b"acir", b"witness", 2)
        variant, acir_frame, witness_frame = fake_engine.prove_calls[0]
        assert variant is ProofVariant.STANDARD
        assert acir_frame == frame(b"acir")
        assert witness_frame == frame(b"witness")

    def test_response_split(self, ready_manager):
        response = ready_manager.prove_raw(b"acir", b"witness", 2)
        assert isinstance(response, ProofResponse)
        assert response.public_inputs == PUBLIC_INPUTS
        assert response.raw_proof == RAW_PROOF

    def test_buffer_released_once(self, ready_manager, native_memory):
        ready_manager.prove_raw(b"acir", b"witness", 2)
        assert native_memory.released == native_memory.allocated
        assert len(native_memory.released) == 1

    def test_variant_selects_prove_call(self, ready_manager, fake_engine):
        ready_manager.prove_raw(b"acir", b"witness", 2, variant=ProofVariant.KECCAK)
        assert fake_engine.prove_calls[0][0] is ProofVariant.KECCAK

    def test_atomic_failure_releases_buffer(self, ready_manager, fake_engine, native_memory):
        fake_engine.response = double_framed(b"\x00" * 40)

        with pytest.raises(MalformedResponseError):
            ready_manager.prove_raw(b"acir", b"witness", 2)

        assert len(native_memory.released) == 1
        assert native_memory.outstanding == 0

    def test_oversized_response_rejected(self, ready_manager, native_memory):
        ready_manager.max_response_bytes = 16
        with pytest.raises(MalformedResponseError, match="ceiling"):
            ready_manager.prove_raw(b"acir", b"witness", 2)
        assert native_memory.outstanding == 0

    def test_negative_public_inputs(self, ready_manager, fake_engine):
        with pytest.raises(ValueError):
            ready_manager.prove_raw(b"acir", b"witness", -1)
        assert fake_engine.prove_calls == []

    def test_single_framing(self, fake_engine, srs_source):
        fake_engine.response = frame(PUBLIC_INPUTS + RAW_PROOF)
        manager = ProofManager(
            engine=fake_engine,
            srs_cache=SrsCache(srs_source),
            framing=ResponseFraming.SINGLE,
        )
        manager.setup_srs(10)
        assert manager.prove_raw(b"a", b"w", 2).raw_proof == RAW_PROOF

    def test_async_prove(self, ready_manager):
        response = asyncio.run(ready_manager.prove_raw_async(b"acir", b"witness", 2))
        assert response.raw_proof == RAW_PROOF


class TestProveFromBytecode:
    """Test the collaborator pipeline"""

    def test_pipeline(self, ready_manager, fake_engine):
        response = ready_manager.prove("c0ffee", b"\x01\x02", 2)

        assert ready_manager.executor.calls == [(bytes.fromhex("c0ffee"), b"\x01\x02")]
        _, acir_frame, witness_frame = fake_engine.prove_calls[0]
        assert acir_frame == frame(bytes.fromhex("c0ffee"))
        assert witness_frame == frame(b"\x01\x02")
        assert response.public_inputs == PUBLIC_INPUTS

    def test_async_pipeline(self, ready_manager):
        response = asyncio.run(ready_manager.prove_async("c0ffee", b"\x01", 2))
        assert response.raw_proof == RAW_PROOF

    def test_missing_collaborators(self, fake_engine, srs_source):
        manager = ProofManager(engine=fake_engine, srs_cache=SrsCache(srs_source))
        with pytest.raises(ValueError, match="executor"):
            manager.prove("00", b"", 0)
        with pytest.raises(ValueError, match="decoder"):
            manager.get_circuit_size("00")


class TestFromConfig:
    """Test configuration-driven construction"""

    def test_uses_config(self, fake_engine, srs_source):
        config = HonkBridgeConfig()
        config.prover.variant = "ultra_keccak_honk"
        config.prover.response_framing = ResponseFraming.SINGLE
        config.native.max_response_bytes = 4096

        manager = ProofManager.from_config(
            config, engine=fake_engine, srs_cache=SrsCache(srs_source)
        )

        assert manager.variant is ProofVariant.KECCAK
        assert manager.framing is ResponseFraming.SINGLE
        assert manager.max_response_bytes == 4096

    def test_keyword_overrides_config(self, fake_engine, srs_source):
        manager = ProofManager.from_config(
            engine=fake_engine,
            srs_cache=SrsCache(srs_source),
            variant=ProofVariant.KECCAK,
        )
        assert manager.variant is ProofVariant.KECCAK
        assert manager.framing is ResponseFraming.DOUBLE
