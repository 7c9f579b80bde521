"""
Pytest configuration and fixtures for the phone location store tests.
"""

import os
import sys
from pathlib import Path

import pytest
from hypothesis import Phase, Verbosity, settings

# Add project root to path so the top-level modules import
sys.path.insert(0, str(Path(__file__).parent.parent))

# -----------------------------------------------------------------------------
# Hypothesis Profiles
# -----------------------------------------------------------------------------
# Usage: HYPOTHESIS_PROFILE=fast pytest tests/
# -----------------------------------------------------------------------------

settings.register_profile(
    "fast",
    max_examples=10,
    phases=[Phase.generate],
    verbosity=Verbosity.quiet,
    deadline=None,
)

settings.register_profile(
    "dev",
    max_examples=25,
    phases=[Phase.generate, Phase.target, Phase.shrink],
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.generate, Phase.target, Phase.shrink, Phase.explain],
    verbosity=Verbosity.normal,
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))

from db import get_engine  # noqa: E402
from notifier import ObserverRegistry  # noqa: E402
from provider import PhoneLocationProvider  # noqa: E402


class RecordingBackup:
    """Backup collaborator that counts data_changed calls."""

    def __init__(self):
        self.calls = 0

    def data_changed(self):
        self.calls += 1


class RecordingObserver:
    def __init__(self):
        self.changes = []

    def __call__(self, address):
        self.changes.append(address)


def sqlite_url(directory) -> str:
    return f"sqlite:///{Path(directory) / 'phonelocation.db'}"


@pytest.fixture
def db_url(tmp_path):
    return sqlite_url(tmp_path)


@pytest.fixture
def engine(db_url):
    eng = get_engine(db_url)
    yield eng
    eng.dispose()


@pytest.fixture
def backup():
    return RecordingBackup()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def provider(engine, backup):
    p = PhoneLocationProvider(engine=engine, backup=backup, registry=ObserverRegistry())
    yield p
    p.close()


@pytest.fixture
def sample():
    return {"number": "5551234", "location": "CityA", "phone_type": 1, "engine_type": 0}
