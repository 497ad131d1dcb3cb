"""
Pytest configuration and shared fixtures for the knowledge QA pipeline test suite.

This module provides common fixtures used across unit and integration tests.
"""

import sys
from pathlib import Path

import pytest

# Add the project root and src directories to the Python path
PROJECT_ROOT = Path(__file__).parent.parent
SRC_ROOT = PROJECT_ROOT / "src"

for path in [str(SRC_ROOT), str(PROJECT_ROOT)]:
    if path not in sys.path:
        sys.path.insert(0, path)


MOSDAC_KNOWLEDGE = (
    "MOSDAC (Meteorological and Oceanographic Satellite Data Archival Centre) is "
    "India's premier facility for satellite data archival and distribution.\n\n"
    "INSAT-3D is a meteorological satellite. It carries a six-channel imager and a "
    "nineteen-channel sounder.\n\n"
    "Oceansat-2 carries an ocean colour monitor and a scatterometer used to "
    "estimate chlorophyll concentration and ocean surface winds.\n\n"
    "SCATSAT-1 is a scatterometer satellite that provides ocean surface wind "
    "vectors for weather forecasting and cyclone tracking."
)


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Return the path to the config directory."""
    return project_root / "config"


@pytest.fixture(scope="session")
def data_path(project_root: Path) -> Path:
    """Return the path to the data directory."""
    return project_root / "data"


@pytest.fixture
def knowledge_text() -> str:
    """Return a small multi-paragraph knowledge base."""
    return MOSDAC_KNOWLEDGE


@pytest.fixture(autouse=True)
def _no_provider_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep real credentials from the environment out of every test."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
