import logging
import uuid
from collections import OrderedDict
from datetime import datetime, timedelta, timezone as dt_timezone

from django.utils import timezone

from settlement.exceptions import GatewayError
from .base import BasePaymentGateway, GatewayPayment, GatewayPaymentStatus

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_SECONDS = 30
DEFAULT_EXPIRES_MINUTES = 30
# idempotency keys and cancellations remembered per instance
MEMORY_SIZE = 256


def _remember(cache, key, value, limit=MEMORY_SIZE):
    cache[key] = value
    cache.move_to_end(key)
    while len(cache) > limit:
        cache.popitem(last=False)


class MockPaymentGateway(BasePaymentGateway):
    """
    Offline gateway for development and tests.

    A payment reports 'pending' for settle_seconds after creation and
    'approved' afterwards. The creation time is encoded in the payment id
    (mock_<epoch millis>_<hex>), so any instance can answer for any id.
    Cancellations are only known to the instance that made them.
    """

    name = 'mock'

    def __init__(self, clock=None, settle_seconds=DEFAULT_SETTLE_SECONDS, memory_size=MEMORY_SIZE, **kwargs):
        super().__init__(**kwargs)
        self.clock = clock or timezone.now
        self.settle_seconds = settle_seconds
        self.expires_minutes = kwargs.get('expires_minutes', DEFAULT_EXPIRES_MINUTES)
        self.memory_size = memory_size
        self._by_idempotency_key = OrderedDict()
        self._cancelled = OrderedDict()

    def create_payment(self, amount, payer, idempotency_key, **kwargs):
        if idempotency_key in self._by_idempotency_key:
            return self._by_idempotency_key[idempotency_key]

        now = self.clock()
        external_id = f"mock_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}"
        reference = kwargs.get('transaction_id', external_id)
        qr_payload = (
            "00020126330014BR.GOV.BCB.PIX0114+5511999999999"
            f"5204000053039865406{amount:.2f}5802BR6009P2P Trade62140510{reference}6304"
        )
        payment = GatewayPayment(
            external_id=external_id,
            qr_payload=qr_payload,
            qr_image_base64=None,
            gateway_status='pending',
            expires_at=now + timedelta(minutes=self.expires_minutes),
        )
        _remember(self._by_idempotency_key, idempotency_key, payment, self.memory_size)

        logger.info(f"[MOCK] Created payment {external_id} for amount {amount}")
        return payment

    def get_payment(self, external_id):
        created_at = self._created_at(external_id)
        if external_id in self._cancelled:
            return GatewayPaymentStatus(gateway_status='cancelled')
        now = self.clock()
        settles_at = created_at + timedelta(seconds=self.settle_seconds)
        if now < settles_at:
            return GatewayPaymentStatus(gateway_status='pending')
        return GatewayPaymentStatus(gateway_status='approved', paid_at=settles_at)

    def cancel_payment(self, external_id):
        if self.get_payment(external_id).gateway_status == 'approved':
            raise GatewayError(
                f"Mock payment {external_id} is already approved", gateway=self.name, status_code=400
            )
        _remember(self._cancelled, external_id, self.clock(), self.memory_size)
        logger.info(f"[MOCK] Cancelled payment {external_id}")
        return GatewayPaymentStatus(gateway_status='cancelled')

    def _created_at(self, external_id):
        try:
            prefix, millis, _ = str(external_id).split('_', 2)
            if prefix != 'mock':
                raise ValueError(prefix)
            return datetime.fromtimestamp(int(millis) / 1000, tz=dt_timezone.utc)
        except ValueError:
            raise GatewayError(f"Unknown mock payment {external_id}", gateway=self.name, status_code=404)
