"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import pytest
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.gate.config import GateConfig  # noqa: E402
from src.gate.reading import BlockSample, ReadingBlock  # noqa: E402
from src.gate.telemetry import BoundedTelemetryLog, TelemetryRecorder, reset_telemetry_log  # noqa: E402

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (full gate flows)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(autouse=True)
def fresh_telemetry_log():
    """Give every test an empty process-wide telemetry log."""
    reset_telemetry_log()
    yield
    reset_telemetry_log()


@pytest.fixture
def strict_config():
    """
    Thresholds with round numbers for hand-checked scenarios.

    300 ms/word, no base floor, 5 w/s ceiling, 0.7 -> 0.85 read ratio.
    """
    return GateConfig(
        visibility_floor=0.25,
        completion_coverage=0.8,
        min_dwell_ms_per_word=300,
        min_dwell_base_ms=0,
        max_plausible_velocity=5.0,
        required_read_ratio=0.7,
        elevated_read_ratio=0.85,
    )


@pytest.fixture
def telemetry_log():
    """Private telemetry sink."""
    return BoundedTelemetryLog(cap=100)


@pytest.fixture
def recorder(telemetry_log):
    """Recorder writing to the private sink."""
    return TelemetryRecorder(telemetry_log, session_id="test-session")


@pytest.fixture
def two_blocks():
    """Two 100-word blocks."""
    return [
        ReadingBlock(id="b0", index=0, word_count=100),
        ReadingBlock(id="b1", index=1, word_count=100),
    ]


def _make_sample(block_id: str, coverage: float, dwell_ms: int, at_ms: int = 0) -> BlockSample:
    """Build a sample stamped `at_ms` after T0."""
    return BlockSample(
        block_id=block_id,
        coverage=coverage,
        dwell_ms=dwell_ms,
        timestamp=T0 + timedelta(milliseconds=at_ms),
    )


def _make_question(qid: str, correct_index: int = 0) -> dict:
    """Build a raw question payload."""
    return {
        "id": qid,
        "text": f"Question {qid}?",
        "options": ["A", "B", "C", "D"],
        "correct_index": correct_index,
    }


@pytest.fixture
def source_pool():
    """Five source questions, all answered by option 0."""
    return [_make_question(f"s{i}") for i in range(5)]


@pytest.fixture
def user_pool():
    """Five user-text questions, all answered by option 1."""
    return [_make_question(f"u{i}", correct_index=1) for i in range(5)]


@pytest.fixture
def make_sample():
    """Factory for samples stamped relative to T0."""
    return _make_sample


@pytest.fixture
def make_question():
    """Factory for raw question payloads."""
    return _make_question
