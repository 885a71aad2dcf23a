"""
Test configuration and fixtures for RabinerHMM.

This file contains pytest configuration and shared fixtures
for testing the RabinerHMM system.
"""

import enum
import tempfile
from pathlib import Path

import pytest

from rabiner_hmm.config import reset_config
from rabiner_hmm.hmm.model import ProbabilityModel


class Weather(enum.Enum):
    SUNNY = 'sunny'
    RAINY = 'rainy'
    FOGGY = 'foggy'


@pytest.fixture(autouse=True)
def clean_config():
    """Restore default configuration around every test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def weather():
    """Enum used as a state domain."""
    return Weather


@pytest.fixture
def two_state_model():
    """Two states {A, B}, two observations {x, y}."""
    return ProbabilityModel.from_mappings(
        initial={'A': 0.5, 'B': 0.5},
        transitions={
            'A': {'A': 0.6, 'B': 0.4},
            'B': {'A': 0.3, 'B': 0.7}
        },
        emissions={
            'A': {'x': 0.9, 'y': 0.1},
            'B': {'x': 0.2, 'y': 0.8}
        }
    )


@pytest.fixture
def weather_model():
    """Enum states with string observations."""
    return ProbabilityModel.from_mappings(
        initial={Weather.SUNNY: 0.5, Weather.RAINY: 0.3, Weather.FOGGY: 0.2},
        transitions={
            Weather.SUNNY: {Weather.SUNNY: 0.7, Weather.RAINY: 0.2, Weather.FOGGY: 0.1},
            Weather.RAINY: {Weather.SUNNY: 0.3, Weather.RAINY: 0.5, Weather.FOGGY: 0.2},
            Weather.FOGGY: {Weather.SUNNY: 0.2, Weather.RAINY: 0.3, Weather.FOGGY: 0.5}
        },
        emissions={
            Weather.SUNNY: {'walk': 0.6, 'shop': 0.3, 'clean': 0.1},
            Weather.RAINY: {'walk': 0.1, 'shop': 0.4, 'clean': 0.5},
            Weather.FOGGY: {'walk': 0.2, 'shop': 0.5, 'clean': 0.3}
        }
    )


@pytest.fixture
def weather_sequences():
    return [
        ['walk', 'walk', 'shop', 'clean', 'clean', 'shop', 'walk'],
        ['clean', 'clean', 'shop'],
        ['shop', 'walk', 'walk', 'walk', 'clean'],
        ['walk']
    ]


@pytest.fixture
def integer_model():
    """Integer states with tuple observations."""
    return ProbabilityModel(
        states=[0, 1],
        observations=[(0, 'lo'), (1, 'mid'), (2, 'hi')],
        pi=[0.8, 0.2],
        A=[[0.9, 0.1],
           [0.25, 0.75]],
        B=[[0.7, 0.2, 0.1],
           [0.1, 0.3, 0.6]]
    )


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
