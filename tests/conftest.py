"""
Pytest fixtures for testing
"""
import os
import sys
from datetime import date
from pathlib import Path

import pytest

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.binfinder.adapters import SourceAdapter  # noqa: E402
from services.binfinder.models import Strategy  # noqa: E402
from services.binfinder.result_cache import ResultCache  # noqa: E402
from services.binfinder.service import BinLookupService  # noqa: E402


@pytest.fixture(autouse=True)
def disable_throttle_env():
    os.environ.setdefault("THROTTLE_DISABLED", "1")
    yield


class FakeAdapter(SourceAdapter):
    """Records every plan it is given and returns a fixed payload (or raises)."""

    def __init__(self, payload=None, error=None):
        self.payload = payload if payload is not None else {"bins": []}
        self.error = error
        self.calls = []

    def fetch(self, plan):
        self.calls.append(plan)
        if self.error is not None:
            raise self.error
        return self.payload


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def sample_payload():
    return {
        "bins": [
            {"type": "Household Waste", "collectionDate": "12/06/2025"},
            {"type": "Mixed Dry Recycling", "collectionDate": "19/06/2025"},
        ]
    }


@pytest.fixture
def sample_dates():
    return [date(2025, 6, 12), date(2025, 6, 19)]


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def generic_adapter(sample_payload):
    return FakeAdapter(payload=sample_payload)


@pytest.fixture
def api_adapter():
    return FakeAdapter(payload={"bins": [{"type": "Refuse", "collectionDate": "2025-06-13"}]})


@pytest.fixture
def resolver_calls():
    return []


@pytest.fixture
def lookup_service(generic_adapter, api_adapter, fake_clock, resolver_calls):
    """Service wired to fake adapters and a resolver that knows one house."""

    def resolver(postcode, house_identifier, api_key=None):
        resolver_calls.append((postcode, house_identifier, api_key))
        if postcode == "SN8 1RA" and house_identifier == "10":
            return "100120992798"
        return None

    return BinLookupService(
        cache=ResultCache(ttl_seconds=24 * 60 * 60, clock=fake_clock),
        adapters={
            Strategy.GENERIC_ADAPTER: generic_adapter,
            Strategy.STANDARDIZED_API: api_adapter,
        },
        resolver=resolver,
    )
