"""
Test Suite for honk-bridge

Test structure:
    tests/
    ├── __init__.py              # This file
    ├── conftest.py              # Pytest configuration and fixtures
    ├── mocks.py                 # Fake native memory, engine and SRS source
    ├── unit/                    # Unit tests
    │   ├── test_cache.py
    │   ├── test_circuit.py
    │   ├── test_codec.py
    │   ├── test_config.py
    │   ├── test_errors.py
    │   ├── test_foreign.py
    │   ├── test_native.py
    │   ├── test_proof_manager.py
    │   └── test_srs.py
    └── integration/             # Integration tests
        └── test_prove_workflow.py

Running tests:
    # All tests
    pytest

    # Unit tests only
    pytest tests/unit/

    # Specific markers
    pytest -m unit
    pytest -m "not network"

Environment variables for testing:
    HONK_BRIDGE_TEST_NETWORK=1          # Run tests that download the real SRS
    HONK_BRIDGE_NATIVE_LIBRARY_PATH     # Run tests against a real native engine
    HONK_BRIDGE_TEST_LOG_LEVEL=DEBUG    # Set log level
"""

import os
from pathlib import Path

TEST_DIR = Path(__file__).parent
PROJECT_ROOT = TEST_DIR.parent

# Test configuration
TEST_CONFIG = {
    "network": os.getenv("HONK_BRIDGE_TEST_NETWORK", "0") == "1",
    "native_library": os.getenv("HONK_BRIDGE_NATIVE_LIBRARY_PATH"),
    "log_level": os.getenv("HONK_BRIDGE_TEST_LOG_LEVEL", "INFO"),
}

__all__ = ["TEST_CONFIG", "TEST_DIR", "PROJECT_ROOT", "check_optional_dependencies"]


def check_optional_dependencies():
    """Check optional test resources and return availability status"""
    deps_status = {"network": TEST_CONFIG["network"]}

    library_path = TEST_CONFIG["native_library"]
    deps_status["native"] = bool(library_path) and Path(library_path).exists()

    return deps_status
