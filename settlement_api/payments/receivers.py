import logging

from django.dispatch import receiver

from settlement.repository import Create, NOTIFICATION, TRANSACTION
from trades.constants import NotificationKind
from .signals import payment_confirmed

logger = logging.getLogger(__name__)


@receiver(payment_confirmed)
def notify_seller_payment_received(sender, payment, transaction_id, **kwargs):
    """Tell the seller the buyer's payment is in, so they can release the asset."""
    repository = sender.repository
    transaction = repository.get(TRANSACTION, transaction_id)

    repository.atomic_batch([
        Create(NOTIFICATION, {
            'user_id': transaction.seller_id,
            'transaction_id': transaction.pk,
            'kind': NotificationKind.PAYMENT_RECEIVED,
            'title': 'Payment confirmed',
            'message': (
                f"Payment of {payment.amount} confirmed. "
                f"Release {transaction.asset_amount} {transaction.cryptocurrency}."
            ),
        }),
    ])
    logger.info(
        "Seller notified of confirmed payment",
        extra={'transaction_id': transaction_id, 'user_id': transaction.seller_id},
    )
