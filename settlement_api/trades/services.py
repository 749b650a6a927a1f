import logging
from decimal import Decimal, InvalidOperation

from django.utils import timezone

from settlement.exceptions import InvalidStateError, NotParticipantError, SettlementError
from settlement.repository import Create, Ref, Update, TRANSACTION, ESCROW, RATING
from escrow.constants import EscrowStatus
from .constants import TransactionStatus, MIN_RATING_SCORE, MAX_RATING_SCORE

logger = logging.getLogger(__name__)


def _positive_decimal(value, field):
    try:
        value = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"{field} must be a number")
    if not value.is_finite() or value <= 0:
        raise ValueError(f"{field} must be greater than zero")
    return value


class TradeService:
    """Opens trades and moves them through the statuses the settlement core does not own."""

    def __init__(self, repository, reputation):
        self.repository = repository
        self.reputation = reputation

    def open_trade(self, buyer_id, seller_id, cryptocurrency, fiat_amount, asset_amount):
        if buyer_id == seller_id:
            raise ValueError("Buyer and seller must be different users")
        if not cryptocurrency:
            raise ValueError("cryptocurrency is required")
        fiat_amount = _positive_decimal(fiat_amount, 'fiat_amount')
        asset_amount = _positive_decimal(asset_amount, 'asset_amount')

        transaction, escrow = self.repository.atomic_batch([
            Create(TRANSACTION, {
                'buyer_id': buyer_id,
                'seller_id': seller_id,
                'cryptocurrency': cryptocurrency.upper(),
                'fiat_amount': fiat_amount,
                'asset_amount': asset_amount,
                'status': TransactionStatus.PENDING,
            }),
            Create(ESCROW, {'transaction_id': Ref(0), 'status': EscrowStatus.PENDING}),
        ])
        logger.info(
            f"Trade opened: {asset_amount} {transaction.cryptocurrency} for {fiat_amount}",
            extra={'transaction_id': transaction.pk, 'escrow_id': escrow.pk},
        )
        return transaction

    def _transition(self, transaction_id, expected, fields):
        try:
            transaction = self.repository.get(TRANSACTION, transaction_id)
            if transaction.status not in expected:
                raise InvalidStateError(transaction_id, TRANSACTION, transaction.status, expected)
            transaction = self.repository.update(TRANSACTION, transaction.pk, fields, expected)
        except SettlementError as e:
            logger.warning(f"Trade transition failed: {e}", extra={'transaction_id': transaction_id})
            raise
        logger.info(f"Trade moved to {transaction.status}", extra={'transaction_id': transaction_id})
        return transaction

    def accept_trade(self, transaction_id):
        return self._transition(
            transaction_id,
            (TransactionStatus.PENDING,),
            {'status': TransactionStatus.ACCEPTED},
        )

    def open_dispute(self, transaction_id):
        transaction = self._transition(
            transaction_id,
            TransactionStatus.DISPUTABLE,
            {'status': TransactionStatus.DISPUTED},
        )
        self.reputation.recalculate_participants(transaction)
        return transaction

    def complete_trade(self, transaction_id):
        transaction = self._transition(
            transaction_id,
            (TransactionStatus.RELEASING_CRYPTO,),
            {'status': TransactionStatus.COMPLETED, 'completed_at': timezone.now()},
        )
        self.reputation.recalculate_participants(transaction)
        return transaction

    def submit_rating(self, transaction_id, rater_id, score, comment=""):
        if isinstance(score, bool) or not isinstance(score, int) or not MIN_RATING_SCORE <= score <= MAX_RATING_SCORE:
            raise ValueError(f"score must be an integer between {MIN_RATING_SCORE} and {MAX_RATING_SCORE}")

        transaction = self.repository.get(TRANSACTION, transaction_id)
        if rater_id == transaction.buyer_id:
            rated_user_id = transaction.seller_id
        elif rater_id == transaction.seller_id:
            rated_user_id = transaction.buyer_id
        else:
            raise NotParticipantError(transaction_id, rater_id)

        if transaction.status != TransactionStatus.COMPLETED:
            raise InvalidStateError(transaction_id, TRANSACTION, transaction.status, (TransactionStatus.COMPLETED,))
        if self.repository.find(RATING, transaction_id=transaction.pk, rater_id=rater_id) is not None:
            raise InvalidStateError(
                transaction_id, RATING, 'SUBMITTED', (),
                message=f"User {rater_id} already rated transaction {transaction_id}",
            )

        # the empty update pins the transaction to COMPLETED while the rating is written
        _, rating = self.repository.atomic_batch([
            Update(TRANSACTION, transaction.pk, {}, (TransactionStatus.COMPLETED,)),
            Create(RATING, {
                'transaction_id': transaction.pk,
                'rater_id': rater_id,
                'rated_user_id': rated_user_id,
                'score': score,
                'comment': comment or '',
            }),
        ])
        logger.info(
            f"Rating {score} recorded",
            extra={'transaction_id': transaction_id, 'rater_id': rater_id, 'rated_user_id': rated_user_id},
        )
        self.reputation.recalculate(rated_user_id)
        return rating
