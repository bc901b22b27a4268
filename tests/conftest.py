import os

import pytest

# main.py builds its engine at import time; keep it off the filesystem.
os.environ.setdefault("SPEC_TREND_DB_URL", "sqlite://")

from spec_trend.records import SpecDefinition  # noqa: E402


@pytest.fixture
def length_spec():
    return SpecDefinition(id=1, name="Length", unit="mm", min_value=9.5, max_value=10.5, display_order=1)


@pytest.fixture
def width_spec():
    return SpecDefinition(id=2, name="Width", unit="mm", min_value=4.0, max_value=5.0, display_order=2)
