"""
pytest configuration and fixtures for the mioty uplink decoder tests.

Provides reusable fixtures for:
- Sample payloads in both sensor byte orders
- Network server metadata in its different shapes
- Hypothesis property-based testing configuration
"""

import os
import sys
from pathlib import Path

import pytest
from hypothesis import settings, Verbosity, Phase

# Add project paths
sys.path.insert(0, str(Path(__file__).parent.parent / "tools"))


# Configure Hypothesis profiles

# Default profile: balanced speed and coverage
settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
)

# CI profile: more thorough testing
settings.register_profile(
    "ci",
    max_examples=500,
    deadline=None,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
)

# Dev profile: fast iteration
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
)

# Debug profile: verbose output
settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    deadline=None,
)

settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "default"))


REPO_ROOT = Path(__file__).parent.parent


@pytest.fixture
def be_payload():
    """Version 1, FW 2.0, HW 1, 20 dBm, BATTERY_LOW, 30.00 C big-endian."""
    return bytes([1, 2, 0, 1, 20, 4, 0, 0, 0x0B, 0xB8])


@pytest.fixture
def le_payload():
    """Same header, 30.00 C little-endian."""
    return bytes([1, 2, 0, 1, 20, 4, 0, 0, 0xB8, 0x0B])


@pytest.fixture
def metadata():
    """Typical metadata from a network server with one gateway."""
    return {
        'EUI': '70B3D59CD0000A1B',
        'fcnt': 17,
        'seqno': 1017,
        'gws': [{'rssi': -98.5, 'snr': 7.25}, {'rssi': -110.0, 'snr': -2.0}],
        'protocol': 'mioty',
        'cmd': 'rx',
        'integrationName': 'mioty-bsc',
        'ts': 1760000000123,
    }


@pytest.fixture
def default_config_path():
    return REPO_ROOT / "config" / "decoder.yaml"


# Markers for test categorization
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
