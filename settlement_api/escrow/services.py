import logging

from django.utils import timezone

from settlement.exceptions import (
    BusinessRuleError,
    InvalidStateError,
    NotFoundError,
    PaymentNotConfirmedError,
    SettlementError,
)
from settlement.repository import Update, TRANSACTION, ESCROW, PAYMENT
from trades.constants import TransactionStatus
from payments.constants import PaymentStatus
from .constants import EscrowStatus

logger = logging.getLogger(__name__)


class EscrowService:
    """
    Custody state machine of a trade: PENDING -> LOCKED -> RELEASED | REFUNDED.

    Mutations never trust what the caller last saw. They re-read the rows and
    write them with compare-and-set preconditions, so a seller's release racing
    a refund (or a second release) has exactly one winner and the loser gets
    PreconditionFailedError.
    """

    def __init__(self, repository, reputation=None, payments=None):
        self.repository = repository
        self.reputation = reputation
        self.payments = payments

    def _load(self, transaction_id):
        transaction = self.repository.get(TRANSACTION, transaction_id)
        escrow = self.repository.find(ESCROW, transaction_id=transaction_id)
        if escrow is None:
            raise NotFoundError(ESCROW, f"for transaction {transaction_id}")
        return transaction, escrow

    def _log_failure(self, action, transaction_id, error):
        log = logger.warning if isinstance(error, BusinessRuleError) else logger.error
        log(f"Escrow {action} failed: {error}", extra={'transaction_id': transaction_id})

    def lock_funds(self, transaction_id):
        """Take custody: PENDING -> LOCKED."""
        logger.info("Locking funds in escrow", extra={'transaction_id': transaction_id})
        try:
            _, escrow = self._load(transaction_id)
            if escrow.status != EscrowStatus.PENDING:
                raise InvalidStateError(transaction_id, ESCROW, escrow.status, (EscrowStatus.PENDING,))

            escrow = self.repository.update(
                ESCROW,
                escrow.pk,
                {'status': EscrowStatus.LOCKED, 'locked_at': timezone.now()},
                expected_status=(EscrowStatus.PENDING,),
            )
        except SettlementError as e:
            self._log_failure('lock', transaction_id, e)
            raise

        logger.info("Funds locked in escrow", extra={'transaction_id': transaction_id, 'escrow_id': escrow.pk})
        return escrow

    def release_funds(self, transaction_id):
        """
        Hand the asset to the buyer: LOCKED -> RELEASED, transaction -> RELEASING_CRYPTO.

        The payment must be COMPLETED. The payment check, the escrow write and
        the transaction write are one atomic batch.
        """
        logger.info("Releasing funds from escrow", extra={'transaction_id': transaction_id})
        try:
            transaction, escrow = self._load(transaction_id)
            if escrow.status != EscrowStatus.LOCKED:
                raise InvalidStateError(transaction_id, ESCROW, escrow.status, (EscrowStatus.LOCKED,))

            payment = self.repository.find(PAYMENT, transaction_id=transaction_id)
            if payment is None or payment.status != PaymentStatus.COMPLETED:
                raise PaymentNotConfirmedError(transaction_id, payment.status if payment else None)

            if transaction.status not in TransactionStatus.RELEASABLE:
                raise InvalidStateError(transaction_id, TRANSACTION, transaction.status, TransactionStatus.RELEASABLE)

            _, escrow, _ = self.repository.atomic_batch([
                Update(PAYMENT, payment.pk, {}, (PaymentStatus.COMPLETED,)),
                Update(
                    ESCROW,
                    escrow.pk,
                    {'status': EscrowStatus.RELEASED, 'released_at': timezone.now()},
                    (EscrowStatus.LOCKED,),
                ),
                Update(
                    TRANSACTION,
                    transaction.pk,
                    {'status': TransactionStatus.RELEASING_CRYPTO},
                    TransactionStatus.RELEASABLE,
                ),
            ])
        except SettlementError as e:
            self._log_failure('release', transaction_id, e)
            raise

        logger.info(
            "Funds released from escrow",
            extra={
                'transaction_id': transaction_id,
                'escrow_id': escrow.pk,
                'transaction_status': TransactionStatus.RELEASING_CRYPTO,
            },
        )
        return escrow

    def refund_funds(self, transaction_id, reason=None):
        """
        Return custody to the buyer: PENDING | LOCKED -> REFUNDED, transaction -> CANCELLED.

        Once the refund is committed, a payment the gateway could still collect
        is cancelled. A cancellation failure is raised after the refund stands.
        """
        logger.info("Refunding funds from escrow", extra={'transaction_id': transaction_id, 'reason': reason})
        try:
            transaction, escrow = self._load(transaction_id)
            if escrow.status not in EscrowStatus.REFUNDABLE:
                raise InvalidStateError(transaction_id, ESCROW, escrow.status, EscrowStatus.REFUNDABLE)
            if transaction.status not in TransactionStatus.REFUNDABLE:
                raise InvalidStateError(transaction_id, TRANSACTION, transaction.status, TransactionStatus.REFUNDABLE)

            now = timezone.now()
            escrow, transaction = self.repository.atomic_batch([
                Update(
                    ESCROW,
                    escrow.pk,
                    {'status': EscrowStatus.REFUNDED, 'refunded_at': now, 'refund_reason': reason},
                    EscrowStatus.REFUNDABLE,
                ),
                Update(
                    TRANSACTION,
                    transaction.pk,
                    {'status': TransactionStatus.CANCELLED, 'cancelled_at': now},
                    TransactionStatus.REFUNDABLE,
                ),
            ])
        except SettlementError as e:
            self._log_failure('refund', transaction_id, e)
            raise

        logger.info(
            "Funds refunded from escrow",
            extra={'transaction_id': transaction_id, 'escrow_id': escrow.pk, 'reason': reason},
        )
        if self.reputation is not None:
            self.reputation.recalculate_participants(transaction)
        if self.payments is not None:
            payment = self.repository.find(PAYMENT, transaction_id=transaction_id)
            if payment is not None and payment.status in PaymentStatus.OPEN:
                self.payments.cancel_payment(payment.external_payment_id)
        return escrow

    def get_escrow_status(self, transaction_id):
        _, escrow = self._load(transaction_id)
        return {
            'transaction_id': transaction_id,
            'status': escrow.status,
            'locked_at': escrow.locked_at,
            'released_at': escrow.released_at,
            'refunded_at': escrow.refunded_at,
            'refund_reason': escrow.refund_reason,
        }

    def can_release(self, transaction_id):
        try:
            transaction = self.repository.find(TRANSACTION, pk=transaction_id)
            escrow = self.repository.find(ESCROW, transaction_id=transaction_id)
            payment = self.repository.find(PAYMENT, transaction_id=transaction_id)
            if transaction is None or escrow is None or payment is None:
                return False
            return (
                escrow.status == EscrowStatus.LOCKED
                and payment.status == PaymentStatus.COMPLETED
                and transaction.status in TransactionStatus.RELEASABLE
            )
        except Exception as e:
            logger.error(f"Error checking if escrow can be released: {str(e)}", extra={'transaction_id': transaction_id})
            return False

    def can_refund(self, transaction_id):
        try:
            transaction = self.repository.find(TRANSACTION, pk=transaction_id)
            escrow = self.repository.find(ESCROW, transaction_id=transaction_id)
            if transaction is None or escrow is None:
                return False
            return (
                escrow.status in EscrowStatus.REFUNDABLE
                and transaction.status in TransactionStatus.REFUNDABLE
            )
        except Exception as e:
            logger.error(f"Error checking if escrow can be refunded: {str(e)}", extra={'transaction_id': transaction_id})
            return False
