"""Pytest configuration and shared fixtures."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest
from cargo_core.config.settings import Settings
from cargo_core.core.repositories import InMemoryRateRepository, InMemoryShipmentStore
from cargo_core.models.quote_models import PricingOptions
from tests.test_fixtures import (
    create_example_rate_cards,
    create_standard_tariff,
    create_booked_shipment,
)


@pytest.fixture
def settings():
    """Settings with defaults only (no .env, no environment overrides)."""
    return Settings(_env_file=None)


@pytest.fixture
def sample_database():
    """Create a sample rate card database for testing."""
    return create_example_rate_cards()


@pytest.fixture
def rate_repository(sample_database):
    """In-memory rate repository over the sample rate cards."""
    return InMemoryRateRepository(sample_database)


@pytest.fixture
def standard_tariff():
    """The EU1 -> EU1 standard tariff used by the pricing scenarios."""
    return create_standard_tariff()


@pytest.fixture
def pricing_options():
    """Pricing options without VAT or remote surcharge."""
    return PricingOptions()


@pytest.fixture
def shipment_store():
    """Empty in-memory shipment store."""
    return InMemoryShipmentStore()


@pytest.fixture
def booked_shipment():
    """A freshly booked shipment with no scans."""
    return create_booked_shipment()


class FakeClock:
    """Controllable clock for services that timestamp scans."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    """Clock starting on a Wednesday morning (UTC)."""
    return FakeClock(datetime(2025, 10, 1, 9, 0, tzinfo=timezone.utc))
