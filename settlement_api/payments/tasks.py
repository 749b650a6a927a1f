import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from settlement.container import get_settlement_core
from settlement.exceptions import BusinessRuleError, PreconditionFailedError, SettlementError
from trades.constants import TransactionStatus
from escrow.constants import EscrowStatus
from trades.models import Transaction
from .constants import PaymentStatus
from .models import Payment

logger = logging.getLogger(__name__)

PAYMENT_WINDOW_EXPIRED = "payment window expired"


@shared_task
def poll_payment(external_payment_id):
    """Reconcile one payment with the gateway. Returns whether a transition was written."""
    outcome = get_settlement_core().payments.poll_payment(external_payment_id)
    return outcome.applied


@shared_task
def cancel_payment(external_payment_id):
    """Cancel the gateway charge of a refunded trade. Returns whether a transition was written."""
    outcome = get_settlement_core().payments.cancel_payment(external_payment_id)
    return outcome.applied


@shared_task
def poll_open_payments():
    """
    Fan out a poll for every payment the gateway may still move.

    Open payments of cancelled trades are cancelled instead, which retries a
    cancellation that failed when the trade was refunded.
    """
    open_payments = list(
        Payment.objects.filter(status__in=PaymentStatus.OPEN)
        .order_by('created_at')
        .values_list('external_payment_id', 'transaction__status')
    )
    for external_id, transaction_status in open_payments:
        if transaction_status == TransactionStatus.CANCELLED:
            cancel_payment.delay(external_id)
        else:
            poll_payment.delay(external_id)

    logger.info(f"Scheduled status poll for {len(open_payments)} open payments")
    return len(open_payments)


@shared_task
def expire_unpaid_trades():
    """
    Refund trades whose payment has not completed within the payment window.

    The window runs from the payment's expiry, or from its creation when the
    gateway gave no expiry, or from the trade's creation while there is no
    payment. A candidate's payment is polled first, so a buyer who paid
    before the poller caught up keeps the trade. A trade that gets paid or
    moved by someone else between the query and the refund is skipped; the
    compare-and-set write decides.
    """
    now = timezone.now()
    cutoff = now - timedelta(minutes=settings.PAYMENT_WINDOW_MINUTES)
    window_over = (
        Q(payment__isnull=True, created_at__lt=cutoff)
        | Q(payment__expires_at__lt=now)
        | Q(payment__expires_at__isnull=True, payment__created_at__lt=cutoff)
    )
    candidates = list(
        Transaction.objects.filter(
            status__in=TransactionStatus.AWAITING_PAYMENT,
            escrow__status__in=EscrowStatus.REFUNDABLE,
        )
        .filter(Q(payment__isnull=True) | ~Q(payment__status=PaymentStatus.COMPLETED))
        .filter(window_over)
        .values_list('pk', 'payment__external_payment_id')
    )

    core = get_settlement_core()
    expired = 0
    for transaction_id, external_id in candidates:
        if external_id:
            try:
                outcome = core.payments.poll_payment(external_id)
            except SettlementError as e:
                logger.error(f"Could not poll payment {external_id} of transaction {transaction_id}: {e}")
                continue
            if outcome.payment.status == PaymentStatus.COMPLETED:
                logger.info(f"Keeping transaction {transaction_id}: payment {external_id} completed")
                continue

        try:
            core.escrow.refund_funds(transaction_id, reason=PAYMENT_WINDOW_EXPIRED)
            expired += 1
        except (BusinessRuleError, PreconditionFailedError) as e:
            logger.info(f"Skipping expiry of transaction {transaction_id}: {e}")
        except SettlementError as e:
            logger.error(f"Expiry of transaction {transaction_id} failed: {e}")

    logger.info(f"Expired {expired} of {len(candidates)} unpaid trades")
    return expired
