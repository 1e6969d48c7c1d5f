"""
Pytest Configuration and Fixtures for honk-bridge Tests

This module provides common fixtures, configuration, and utilities used across
all test modules in the honk-bridge test suite.
"""

from unittest.mock import Mock

import pytest

from honk_bridge.config import HonkBridgeConfig, set_config
from honk_bridge.native import set_engine
from honk_bridge.srs import reset_shared_cache
from tests import TEST_CONFIG, check_optional_dependencies
from tests.mocks import FakeEngine, FakeSrsSource, NativeMemory, make_srs

# ==================== Pytest Configuration ====================


def pytest_configure(config):
    """Configure pytest with custom settings"""
    markers = [
        "unit: Unit tests for individual components",
        "integration: Integration tests for component interactions",
        "network: Tests downloading the real SRS",
        "native: Tests requiring the real native engine",
        "slow: Tests that take longer than 5 seconds",
    ]

    for marker in markers:
        config.addinivalue_line("markers", marker)


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers and handle skips"""
    deps_status = check_optional_dependencies()

    for item in items:
        # Auto-mark tests based on file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)

        if item.get_closest_marker("network") and not deps_status["network"]:
            item.add_marker(
                pytest.mark.skip(reason="Network tests disabled (HONK_BRIDGE_TEST_NETWORK)")
            )

        if item.get_closest_marker("native") and not deps_status["native"]:
            item.add_marker(pytest.mark.skip(reason="Native engine not available"))


# ==================== Session-level Fixtures ====================


@pytest.fixture(scope="session")
def test_config():
    """Test configuration dictionary"""
    return TEST_CONFIG.copy()


@pytest.fixture(autouse=True)
def isolated_globals():
    """Fresh configuration, engine and SRS cache for every test"""
    set_config(HonkBridgeConfig())
    set_engine(None)
    reset_shared_cache()
    yield
    set_config(None)
    set_engine(None)
    reset_shared_cache()


# ==================== Native Boundary Fixtures ====================


@pytest.fixture
def native_memory():
    """Engine-style allocations backed by ctypes buffers"""
    return NativeMemory()


@pytest.fixture
def fake_engine(native_memory):
    return FakeEngine(native_memory)


@pytest.fixture
def mock_library():
    """Mock ctypes library; every attribute is a callable Mock"""
    return Mock()


# ==================== SRS Fixtures ====================


@pytest.fixture
def srs_source():
    return FakeSrsSource()


@pytest.fixture
def small_srs():
    return make_srs(8)


@pytest.fixture
def g1_dat_file(tmp_path):
    """Raw point file holding 16 points"""
    path = tmp_path / "g1.dat"
    path.write_bytes(make_srs(16).g1_data)
    return path


@pytest.fixture
def mock_session():
    """Mock requests session; configure ``get`` per test"""
    return Mock()


def http_response(status_code: int, content: bytes) -> Mock:
    response = Mock()
    response.status_code = status_code
    response.content = content
    response.iter_content.side_effect = lambda chunk_size=1, **kwargs: iter(
        [content[i : i + chunk_size] for i in range(0, len(content), chunk_size)]
    )
    return response


@pytest.fixture
def make_response():
    return http_response
