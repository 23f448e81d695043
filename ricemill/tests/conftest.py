"""
Pytest fixtures for Ricemill tests.
"""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from ricemill import Mill
from ricemill.db import Store
from ricemill.models import CounterpartyRole, VarietyCategory
from ricemill.services import CounterpartyRef


User = get_user_model()


@pytest.fixture
def user(db):
    """Create a test user."""
    return User.objects.create_user(
        username='operator',
        password='testpass123'
    )


@pytest.fixture
def mill(db):
    """Mill bound to the default database."""
    return Mill(Store())


@pytest.fixture
def paddy(mill):
    """Paddy variety with 1000kg opening stock."""
    return mill.register_variety(
        'Samba Paddy',
        category=VarietyCategory.PADDY,
        min_stock_level=Decimal('100'),
        opening_stock=Decimal('1000'),
    )


@pytest.fixture
def empty_paddy(mill):
    """Paddy variety with no stock."""
    return mill.register_variety('Nadu Paddy', category=VarietyCategory.PADDY)


@pytest.fixture
def white_rice(mill):
    """Selling variety with 200kg in stock."""
    return mill.register_variety(
        'White Samba',
        category=VarietyCategory.SELLING,
        min_stock_level=Decimal('50'),
        opening_stock=Decimal('200'),
    )


@pytest.fixture
def supplier(mill):
    return mill.register_counterparty(CounterpartyRole.SUPPLIER, 'Kamal Perera', '0771234567')


@pytest.fixture
def buyer(mill):
    return mill.register_counterparty(CounterpartyRole.BUYER, 'Nimal Stores', '0719876543')


@pytest.fixture
def new_buyer_ref():
    """Reference to a buyer that does not exist yet."""
    return CounterpartyRef(phone='0765550000', name='Sunil Traders', address='Main Street')


@pytest.fixture
def ricemill_settings(settings):
    """Override RICEMILL keys for one test: ricemill_settings(OVERPAYMENT_POLICY='cap')."""
    def _apply(**overrides):
        current = dict(getattr(settings, 'RICEMILL', {}))
        current.update(overrides)
        settings.RICEMILL = current
    return _apply


@pytest.fixture
def locked_models(monkeypatch):
    """Models read through Store.locked(), in the order they were locked."""
    seen = []
    original = Store.locked

    def recording(store, model):
        seen.append(model)
        return original(store, model)

    monkeypatch.setattr(Store, 'locked', recording)
    return seen
