import logging
import threading
from typing import NamedTuple

from django.conf import settings

from escrow.services import EscrowService
from payments.providers import BasePaymentGateway, get_payment_gateway
from payments.services import PaymentReconciler
from reputation.services import ReputationEngine
from trades.services import TradeService
from .django_repository import DjangoTransactionRepository
from .repository import TransactionRepository
from .retry import DEFAULT_ATTEMPTS

logger = logging.getLogger(__name__)


class SettlementCore(NamedTuple):
    """The wired services, all sharing one repository and one gateway."""
    repository: TransactionRepository
    gateway: BasePaymentGateway
    escrow: EscrowService
    payments: PaymentReconciler
    reputation: ReputationEngine
    trades: TradeService


def gateway_from_settings():
    name = getattr(settings, 'PAYMENT_GATEWAY', 'mock')
    if name == 'mercadopago':
        return get_payment_gateway(
            name,
            access_token=settings.MERCADOPAGO_ACCESS_TOKEN,
            api_url=settings.MERCADOPAGO_API_URL,
            webhook_secret=settings.MERCADOPAGO_WEBHOOK_SECRET or None,
            notification_url=settings.MERCADOPAGO_NOTIFICATION_URL or None,
            timeout=settings.GATEWAY_TIMEOUT_SECONDS,
            max_retries=settings.GATEWAY_MAX_RETRIES,
        )
    return get_payment_gateway(
        name,
        settle_seconds=getattr(settings, 'MOCK_GATEWAY_SETTLE_SECONDS', 30),
        expires_minutes=getattr(settings, 'PAYMENT_WINDOW_MINUTES', 30),
    )


def build_settlement_core(repository=None, gateway=None, conflict_retries=None, **reconciler_kwargs):
    """
    Wire the settlement services. Anything not passed in is built from Django settings.
    """
    repository = repository or DjangoTransactionRepository()
    gateway = gateway or gateway_from_settings()
    if conflict_retries is None:
        conflict_retries = getattr(settings, 'SETTLEMENT_CONFLICT_RETRIES', DEFAULT_ATTEMPTS)

    reputation = ReputationEngine(repository)
    payments = PaymentReconciler(repository, gateway, conflict_retries=conflict_retries, **reconciler_kwargs)
    core = SettlementCore(
        repository=repository,
        gateway=gateway,
        escrow=EscrowService(repository, reputation=reputation, payments=payments),
        payments=payments,
        reputation=reputation,
        trades=TradeService(repository, reputation),
    )
    logger.info(f"Settlement core ready with {gateway.name} gateway")
    return core


_core = None
_core_lock = threading.Lock()


def get_settlement_core():
    """The process-wide core, built from settings on first use."""
    global _core
    if _core is None:
        with _core_lock:
            if _core is None:
                _core = build_settlement_core()
    return _core


def set_settlement_core(core):
    global _core
    with _core_lock:
        _core = core
    return core


def reset_settlement_core():
    set_settlement_core(None)
