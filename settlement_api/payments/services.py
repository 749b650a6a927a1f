import logging
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import NamedTuple, Optional

from django.utils import timezone

from settlement.exceptions import InvalidStateError, NotFoundError, SettlementError
from settlement.repository import Create, Update, TRANSACTION, PAYMENT
from settlement.retry import retry_on_conflict, DEFAULT_ATTEMPTS
from trades.constants import TransactionStatus
from .constants import PaymentStatus, ALLOWED_PREDECESSORS
from .providers.qr import render_qr_base64
from .signals import payment_confirmed
from . import receivers  # noqa: F401 (connects the payment_confirmed receivers)
from .status import map_gateway_status

logger = logging.getLogger(__name__)

# statuses a transaction may leave when its payment is created
PAYABLE_STATUSES = (TransactionStatus.PENDING, TransactionStatus.ACCEPTED)


class PaymentArtifact(NamedTuple):
    external_payment_id: str
    qr_code: str
    qr_code_base64: str
    status: str
    expires_at: Optional[datetime]


class PaymentStatusResult(NamedTuple):
    status: str
    is_paid: bool
    paid_at: Optional[datetime]


class StatusWrite(NamedTuple):
    """Outcome of the shared status write. applied is False for no-op observations."""
    payment: object
    applied: bool
    transaction_status: Optional[str]


class WebhookResult(NamedTuple):
    processed: bool
    payment_id: Optional[str]
    transaction_update: Optional[str]


class PaymentReconciler:
    """
    Keeps local Payment rows in step with the gateway.

    Poller and webhook both end in apply_status(), a compare-and-set write, so
    duplicate notifications and poll/webhook races collapse into a single
    transition and a single payment_confirmed signal.
    """

    def __init__(self, repository, gateway, conflict_retries=DEFAULT_ATTEMPTS, idempotency_key_factory=None):
        self.repository = repository
        self.gateway = gateway
        self.conflict_retries = conflict_retries
        self.idempotency_key_factory = idempotency_key_factory or (lambda: uuid.uuid4().hex)

    def create_payment(self, transaction_id, amount, payer_email, payer_document=None):
        """
        Ask the gateway for payment instructions and record the payment.

        Args:
            transaction_id: Transaction being paid
            amount: Fiat amount to charge
            payer_email: Buyer e-mail sent to the gateway
            payer_document: Optional tax document (CPF)

        Returns:
            PaymentArtifact

        Raises:
            ValueError: for a non-positive amount or missing e-mail
            InvalidStateError: if the trade is not awaiting payment or already has one
            GatewayError: if the gateway call fails
        """
        try:
            amount = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise ValueError(f"Invalid amount: {amount!r}")
        if not amount.is_finite() or amount <= 0:
            raise ValueError("Amount must be greater than zero")
        if not payer_email:
            raise ValueError("payer_email is required")

        try:
            transaction = self.repository.get(TRANSACTION, transaction_id)
            if transaction.status not in PAYABLE_STATUSES:
                raise InvalidStateError(transaction_id, TRANSACTION, transaction.status, PAYABLE_STATUSES)
            existing = self.repository.find(PAYMENT, transaction_id=transaction_id)
            if existing is not None:
                raise InvalidStateError(
                    transaction_id, PAYMENT, existing.status, (),
                    message=f"Transaction {transaction_id} already has payment {existing.external_payment_id}",
                )

            idempotency_key = self.idempotency_key_factory()
            logger.info(
                "Creating gateway payment",
                extra={'transaction_id': transaction_id, 'idempotency_key': idempotency_key},
            )
            charge = self.gateway.create_payment(
                amount,
                {'email': payer_email, 'document': payer_document},
                idempotency_key,
                transaction_id=transaction_id,
            )

            qr_code_base64 = charge.qr_image_base64 or render_qr_base64(charge.qr_payload)
            _, payment = self.repository.atomic_batch([
                Update(TRANSACTION, transaction.pk, {'status': TransactionStatus.WAITING_PAYMENT}, PAYABLE_STATUSES),
                Create(PAYMENT, {
                    'transaction_id': transaction.pk,
                    'external_payment_id': charge.external_id,
                    'provider': self.gateway.name or '',
                    'amount': amount,
                    'status': PaymentStatus.PENDING,
                    'qr_code': charge.qr_payload,
                    'qr_code_base64': qr_code_base64,
                    'expires_at': charge.expires_at,
                }),
            ])
        except SettlementError as e:
            logger.error(f"Payment creation failed: {e}", extra={'transaction_id': transaction_id})
            raise

        logger.info(
            "Payment created",
            extra={'transaction_id': transaction_id, 'external_payment_id': payment.external_payment_id},
        )
        return PaymentArtifact(
            external_payment_id=payment.external_payment_id,
            qr_code=payment.qr_code,
            qr_code_base64=payment.qr_code_base64,
            status=payment.status,
            expires_at=payment.expires_at,
        )

    def check_payment_status(self, external_payment_id):
        """Read-only: ask the gateway and map its answer. Nothing is written."""
        try:
            gateway_status = self.gateway.get_payment(external_payment_id)
            status = map_gateway_status(gateway_status.gateway_status)
        except SettlementError as e:
            logger.error(
                f"Payment status check failed: {e}",
                extra={'external_payment_id': external_payment_id},
            )
            raise
        return PaymentStatusResult(
            status=status,
            is_paid=status == PaymentStatus.COMPLETED,
            paid_at=gateway_status.paid_at,
        )

    def poll_payment(self, external_payment_id):
        result = self.check_payment_status(external_payment_id)
        return self.apply_status(external_payment_id, result.status, result.paid_at)

    def apply_status(self, external_payment_id, status, paid_at=None):
        """
        Record an observed gateway status on the local payment.

        A status the row already holds, or has moved past, is a no-op. COMPLETED
        also confirms the transaction in the same atomic batch. Lost races are
        retried from a fresh read.

        Returns:
            StatusWrite
        """
        allowed = ALLOWED_PREDECESSORS[status]

        def attempt():
            payment = self.repository.find(PAYMENT, external_payment_id=external_payment_id)
            if payment is None:
                raise NotFoundError(PAYMENT, external_payment_id)
            if payment.status not in allowed:
                return StatusWrite(payment, False, None)

            if status != PaymentStatus.COMPLETED:
                payment = self.repository.update(PAYMENT, payment.pk, {'status': status}, allowed)
                return StatusWrite(payment, True, None)

            transaction = self.repository.get(TRANSACTION, payment.transaction_id)
            operations = [
                Update(PAYMENT, payment.pk, {'status': status, 'paid_at': paid_at or timezone.now()}, allowed),
            ]
            confirms_transaction = transaction.status in TransactionStatus.AWAITING_PAYMENT
            if confirms_transaction:
                operations.append(Update(
                    TRANSACTION,
                    transaction.pk,
                    {'status': TransactionStatus.PAYMENT_CONFIRMED},
                    TransactionStatus.AWAITING_PAYMENT,
                ))
            else:
                logger.warning(
                    f"Payment completed for transaction in status {transaction.status}",
                    extra={'transaction_id': transaction.pk, 'external_payment_id': external_payment_id},
                )
            results = self.repository.atomic_batch(operations)
            return StatusWrite(
                results[0], True, TransactionStatus.PAYMENT_CONFIRMED if confirms_transaction else None
            )

        try:
            outcome = retry_on_conflict(attempt, self.conflict_retries)
        except SettlementError as e:
            logger.error(
                f"Payment status write failed: {e}",
                extra={'external_payment_id': external_payment_id, 'payment_status': status},
            )
            raise

        if not outcome.applied:
            logger.debug(
                f"Payment already {outcome.payment.status}, ignoring observed {status}",
                extra={'external_payment_id': external_payment_id},
            )
            return outcome

        logger.info(
            f"Payment moved to {status}",
            extra={'external_payment_id': external_payment_id, 'transaction_status': outcome.transaction_status},
        )
        if status == PaymentStatus.COMPLETED:
            payment_confirmed.send(
                sender=self,
                payment=outcome.payment,
                transaction_id=outcome.payment.transaction_id,
            )
        return outcome

    def cancel_payment(self, external_payment_id):
        """
        Cancel a payment that has not been paid, e.g. after its trade was refunded.

        The gateway is polled first so a payment that completed in the meantime
        is recorded instead of cancelled. A payment already COMPLETED or FAILED
        is left alone.

        Returns:
            StatusWrite

        Raises:
            NotFoundError: for an unknown payment
            GatewayError: if the gateway refuses or cannot be reached
        """
        payment = self.repository.find(PAYMENT, external_payment_id=external_payment_id)
        if payment is None:
            raise NotFoundError(PAYMENT, external_payment_id)
        if payment.status not in PaymentStatus.OPEN:
            return StatusWrite(payment, False, None)

        outcome = self.poll_payment(external_payment_id)
        if outcome.payment.status not in PaymentStatus.OPEN:
            logger.warning(
                f"Payment is {outcome.payment.status}, not cancelling",
                extra={'external_payment_id': external_payment_id, 'transaction_id': payment.transaction_id},
            )
            return outcome

        logger.info(
            "Cancelling gateway payment",
            extra={'external_payment_id': external_payment_id, 'transaction_id': payment.transaction_id},
        )
        try:
            gateway_status = self.gateway.cancel_payment(external_payment_id)
            status = map_gateway_status(gateway_status.gateway_status)
        except SettlementError as e:
            logger.error(
                f"Payment cancellation failed: {e}",
                extra={'external_payment_id': external_payment_id, 'transaction_id': payment.transaction_id},
            )
            raise
        return self.apply_status(external_payment_id, status)

    def handle_webhook(self, notification):
        """
        Process a gateway notification.

        The embedded status is never trusted; the gateway is re-polled. Malformed,
        unsupported or unknown-payment notifications are acknowledged with
        processed=False. Gateway failures propagate so the sender retries.

        Returns:
            WebhookResult
        """
        if not isinstance(notification, dict):
            logger.warning("Ignoring malformed webhook payload")
            return WebhookResult(False, None, None)

        data = notification.get('data')
        payment_id = data.get('id') if isinstance(data, dict) else None
        if payment_id in (None, ''):
            logger.warning("Ignoring webhook without data.id", extra={'notification_type': notification.get('type')})
            return WebhookResult(False, None, None)
        payment_id = str(payment_id)

        if notification.get('type') != 'payment' or notification.get('action') != 'payment.updated':
            logger.info(
                "Ignoring unsupported webhook",
                extra={
                    'notification_type': notification.get('type'),
                    'action': notification.get('action'),
                    'external_payment_id': payment_id,
                },
            )
            return WebhookResult(False, payment_id, None)

        if self.repository.find(PAYMENT, external_payment_id=payment_id) is None:
            logger.warning("Webhook for unknown payment", extra={'external_payment_id': payment_id})
            return WebhookResult(False, payment_id, None)

        outcome = self.poll_payment(payment_id)
        return WebhookResult(True, payment_id, outcome.transaction_status)
