"""
Global pytest configuration and fixtures.

Every test gets a fresh in-memory store and a fresh application wired to it,
so tests never share data. ``auth_headers`` mints bearer tokens for any role
with the application's own JWT provider.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict

import pytest

from dealership import create_app
from dealership.business.models import UserRole
from dealership.business.services import InMemoryStore, create_in_memory_services


def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "unit: Unit tests with isolated component testing"
    )
    config.addinivalue_line(
        "markers",
        "integration: Integration tests exercising the HTTP surface end to end"
    )


class FrozenClock:
    """Callable clock for the in-memory store; advance it explicitly."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(clock):
    return InMemoryStore(clock=clock)


@pytest.fixture
def services(store):
    return create_in_memory_services(store)


@pytest.fixture
def app(services):
    """Flask application using the testing configuration and fresh services."""
    application = create_app('testing', services=services)
    return application


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_provider(app):
    return app.extensions['dealership'].auth_provider


@pytest.fixture
def auth_headers(auth_provider) -> Callable[..., Dict[str, str]]:
    """
    Factory for ``Authorization`` headers.

    Usage:
        client.post('/api/vehicles', json=payload, headers=auth_headers('viewer'))
    """
    def make_headers(role: str = UserRole.SUPER_ADMIN.value, user_id: str = 'user-1') -> Dict[str, str]:
        token = auth_provider.issue_token(
            user_id=user_id,
            role=UserRole(role),
            email=f"{user_id}@dealership.test",
        )
        return {'Authorization': f'Bearer {token}'}

    return make_headers


@pytest.fixture
def vehicle_payload() -> Dict:
    return {
        'vin': '1HGCM82633A004352',
        'year': 2021,
        'make': 'Honda',
        'model': 'Accord',
        'auction_house': 'Copart',
        'purchase_price': 12500,
        'purchase_currency': 'USD',
        'mileage': 42000,
    }


@pytest.fixture
def customer_payload() -> Dict:
    return {
        'full_name': 'Layla Haddad',
        'email': 'layla@example.com',
        'phone': '+971 50 123 4567',
        'preferred_language': 'ar',
        'city': 'Dubai',
        'country': 'UAE',
        'marketing_consent': True,
    }


@pytest.fixture
def invoice_payload() -> Dict:
    """Invoice body without ``customer_id``; tests add the id of a stored customer."""
    return {
        'line_items': [
            {'description': 'Vehicle sale', 'quantity': 1, 'unit_price': 1000, 'total': 1000},
        ],
        'subtotal': 1000,
        'vat_rate': 5,
        'vat_amount': 50,
        'total_amount': 1050,
        'currency': 'AED',
        'due_date': '2024-07-15',
    }
