"""
Global pytest fixtures and configuration for the test suite.

Provides reusable fixtures for testing selections and tasks without
duplicating setup code across test modules.
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Generator

import pytest
import tomli_w

from v0rho.modules.data_model import Collision, Track, V0Candidate
from v0rho.modules.event_selection import EVENT_COUNTER
from v0rho.modules.histograms import Axis, HistogramRegistry
from v0rho.modules.track_selection import TRACK_COUNTER
from v0rho.tests.utils import GOOD_COLLISION, GOOD_TRACK, GOOD_V0


@pytest.fixture
def tmp_test_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test operations.

    Automatically cleaned up after test completion.

    Yields:
        Path to temporary directory
    """
    tmp_dir = Path(tempfile.mkdtemp(prefix="v0rho_test_"))
    try:
        yield tmp_dir
    finally:
        if tmp_dir.exists():
            shutil.rmtree(tmp_dir)


@pytest.fixture
def make_track() -> Callable[..., Track]:
    """
    Factory for tracks that pass every default quality cut.

    Keyword arguments override individual fields.
    """

    def _make(**overrides: Any) -> Track:
        values: Dict[str, Any] = {"index": 0, **GOOD_TRACK}
        values.update(overrides)
        return Track(**values)

    return _make


@pytest.fixture
def good_collision() -> Collision:
    """Collision at the nominal vertex with every selection bit set."""
    return Collision(index=0, **GOOD_COLLISION)


@pytest.fixture
def lambda_v0() -> V0Candidate:
    """Central V0 candidate passing the default topological cuts."""
    return V0Candidate(index=0, **GOOD_V0)


@pytest.fixture
def counter_registry() -> HistogramRegistry:
    """Registry holding the event and UPC track selection counters."""
    registry = HistogramRegistry("counters")
    registry.add(EVENT_COUNTER, EVENT_COUNTER, [Axis.uniform(10, 0.0, 10.0)])
    registry.add(TRACK_COUNTER, TRACK_COUNTER, [Axis.uniform(7, -0.5, 6.5)])
    return registry


@pytest.fixture
def sample_config_dict() -> Dict[str, Dict[str, Any]]:
    """
    Provide a minimal valid configuration, one dictionary per TOML file.

    Returns:
        {filename: content}
    """
    return {
        "lambda_polarization.toml": {
            "task": {"process_v0": True, "process_jet_tracks": False},
            "event_selection": {"sel8": True, "cut_z_vertex": True, "z_vertex_max": 8.0},
            "single_track_selection": {"require_tpc": True},
            "v0_selection": {"min_cos_pa": 0.99},
            "jet_selection": {"min_jet_pt": 10.0},
        },
        "upc_rho.toml": {
            "cuts": {"gap_side": 1, "tpc_n_sigma_pi": 2.5},
            "axes": {"m_cut": [35, 0.5, 1.2]},
        },
        "data.toml": {
            "input": {"collisions": "O2collision", "tracks": "O2track"},
            "output": {"file": "results.root"},
        },
    }


@pytest.fixture
def config_dir_fixture(tmp_test_dir: Path, sample_config_dict: Dict[str, Dict[str, Any]]) -> Path:
    """
    Create a temporary config directory with sample TOML files.

    Args:
        tmp_test_dir: Temporary test directory
        sample_config_dict: Content of each configuration file

    Returns:
        Path to config directory
    """
    config_dir = tmp_test_dir / "config"
    config_dir.mkdir(parents=True, exist_ok=True)

    for filename, content in sample_config_dict.items():
        with open(config_dir / filename, "wb") as f:
            tomli_w.dump(content, f)

    return config_dir


def pytest_configure(config: pytest.Config) -> None:
    """
    Configure pytest with custom markers.

    Args:
        config: pytest configuration object
    """
    config.addinivalue_line("markers", "unit: fast tests of a single module")
    config.addinivalue_line(
        "markers", "integration: tests running a full task or reading ROOT files"
    )
