"""
Shared fixtures for the settlement test suite.

Service tests run against InMemoryTransactionRepository and the mock gateway
driven by a FakeClock. API, repository and task tests use the Django test
database through pytest-django.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from payments.providers.mock import MockPaymentGateway
from settlement.container import build_settlement_core, reset_settlement_core, set_settlement_core
from settlement.django_repository import DjangoTransactionRepository
from tests.fakes import FakeClock, InMemoryTransactionRepository

BUYER_ID = 1
SELLER_ID = 2
OUTSIDER_ID = 3


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repo():
    repository = InMemoryTransactionRepository()
    repository.add_user(BUYER_ID, "Buyer")
    repository.add_user(SELLER_ID, "Seller")
    repository.add_user(OUTSIDER_ID, "Outsider")
    return repository


@pytest.fixture
def gateway(clock):
    return MockPaymentGateway(clock=clock, settle_seconds=30)


@pytest.fixture
def core(repo, gateway):
    return build_settlement_core(repository=repo, gateway=gateway, conflict_retries=3)


@pytest.fixture
def open_trade(core):
    """Factory opening a PENDING trade between the default buyer and seller."""
    def _open(fiat_amount=Decimal('500.00'), asset_amount=Decimal('0.01'), cryptocurrency='BTC',
              buyer_id=BUYER_ID, seller_id=SELLER_ID):
        return core.trades.open_trade(buyer_id, seller_id, cryptocurrency, fiat_amount, asset_amount)
    return _open


@pytest.fixture
def paid_trade(core, open_trade, clock):
    """A trade with locked escrow and a COMPLETED payment, ready for release."""
    transaction = open_trade()
    core.escrow.lock_funds(transaction.pk)
    artifact = core.payments.create_payment(transaction.pk, transaction.fiat_amount, 'buyer@example.com')
    clock.advance(31)
    core.payments.poll_payment(artifact.external_payment_id)
    return transaction


@pytest.fixture
def installed_core():
    """Install a core for code that calls get_settlement_core(); removed afterwards."""
    installed = []

    def _install(core):
        installed.append(set_settlement_core(core))
        return core

    yield _install
    reset_settlement_core()


@pytest.fixture
def traders(db, django_user_model):
    """Buyer, seller and an unrelated user in the test database."""
    buyer = django_user_model.objects.create_user(email='buyer@example.com', password='pass', display_name='Buyer')
    seller = django_user_model.objects.create_user(email='seller@example.com', password='pass', display_name='Seller')
    outsider = django_user_model.objects.create_user(email='outsider@example.com', password='pass')
    return SimpleNamespace(buyer=buyer, seller=seller, outsider=outsider)


@pytest.fixture
def django_repo(db):
    return DjangoTransactionRepository()


@pytest.fixture
def django_core(django_repo, gateway, installed_core):
    """Database-backed core installed as the process-wide core for views and tasks."""
    return installed_core(build_settlement_core(repository=django_repo, gateway=gateway, conflict_retries=3))
