"""
Escrow state machine: PENDING -> LOCKED -> RELEASED | REFUNDED.
"""

import threading
from decimal import Decimal
from unittest.mock import Mock

import pytest

from escrow.constants import EscrowStatus
from escrow.services import EscrowService
from payments.constants import PaymentStatus
from payments.providers.base import GatewayPaymentStatus
from payments.services import PaymentReconciler
from settlement.exceptions import (
    GatewayError,
    InvalidStateError,
    NotFoundError,
    PaymentNotConfirmedError,
    PreconditionFailedError,
)
from settlement.repository import ESCROW, PAYMENT, TRANSACTION
from trades.constants import TransactionStatus
from tests.conftest import BUYER_ID, SELLER_ID


def escrow_of(repo, transaction_id):
    return repo.find(ESCROW, transaction_id=transaction_id)


class TestLockFunds:

    def test_lock_moves_pending_to_locked(self, core, repo, open_trade):
        transaction = open_trade()

        escrow = core.escrow.lock_funds(transaction.pk)

        assert escrow.status == EscrowStatus.LOCKED
        assert escrow.locked_at is not None
        assert escrow_of(repo, transaction.pk).status == EscrowStatus.LOCKED

    def test_second_lock_is_rejected(self, core, open_trade):
        """Re-applying a transition is an error, never a silent no-op"""
        transaction = open_trade()
        core.escrow.lock_funds(transaction.pk)

        with pytest.raises(InvalidStateError) as excinfo:
            core.escrow.lock_funds(transaction.pk)

        assert excinfo.value.current == EscrowStatus.LOCKED
        assert excinfo.value.expected == (EscrowStatus.PENDING,)

    def test_lock_unknown_transaction(self, core):
        with pytest.raises(NotFoundError):
            core.escrow.lock_funds(999)


class TestReleaseFunds:

    def test_release_after_confirmed_payment(self, core, repo, paid_trade):
        escrow = core.escrow.release_funds(paid_trade.pk)

        assert escrow.status == EscrowStatus.RELEASED
        assert escrow.released_at is not None
        assert repo.get(TRANSACTION, paid_trade.pk).status == TransactionStatus.RELEASING_CRYPTO

    def test_release_without_payment(self, core, open_trade):
        transaction = open_trade()
        core.escrow.lock_funds(transaction.pk)

        with pytest.raises(PaymentNotConfirmedError) as excinfo:
            core.escrow.release_funds(transaction.pk)

        assert excinfo.value.payment_status is None

    @pytest.mark.parametrize("payment_status", [
        PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentStatus.FAILED,
    ])
    def test_release_with_unconfirmed_payment(self, core, repo, open_trade, payment_status):
        transaction = open_trade()
        core.escrow.lock_funds(transaction.pk)
        artifact = core.payments.create_payment(transaction.pk, Decimal('500.00'), 'buyer@example.com')
        payment = repo.find(PAYMENT, external_payment_id=artifact.external_payment_id)
        repo.force(PAYMENT, payment.pk, status=payment_status)

        with pytest.raises(PaymentNotConfirmedError):
            core.escrow.release_funds(transaction.pk)

        assert escrow_of(repo, transaction.pk).status == EscrowStatus.LOCKED

    def test_release_requires_locked_escrow(self, core, open_trade):
        transaction = open_trade()

        with pytest.raises(InvalidStateError) as excinfo:
            core.escrow.release_funds(transaction.pk)

        assert excinfo.value.entity == ESCROW
        assert excinfo.value.current == EscrowStatus.PENDING

    def test_release_twice(self, core, paid_trade):
        core.escrow.release_funds(paid_trade.pk)

        with pytest.raises(InvalidStateError):
            core.escrow.release_funds(paid_trade.pk)

    def test_release_is_all_or_nothing(self, core, repo, paid_trade):
        """A payment that changes between the read and the batch aborts every write"""
        payment = repo.find(PAYMENT, transaction_id=paid_trade.pk)
        original_batch = repo.atomic_batch

        def batch_after_payment_reversal(operations):
            repo.force(PAYMENT, payment.pk, status=PaymentStatus.FAILED)
            return original_batch(operations)

        repo.atomic_batch = batch_after_payment_reversal

        with pytest.raises(PreconditionFailedError):
            core.escrow.release_funds(paid_trade.pk)

        assert escrow_of(repo, paid_trade.pk).status == EscrowStatus.LOCKED
        assert repo.get(TRANSACTION, paid_trade.pk).status == TransactionStatus.PAYMENT_CONFIRMED


class TestRefundFunds:

    def test_refund_pending_escrow(self, core, repo, open_trade):
        transaction = open_trade()

        escrow = core.escrow.refund_funds(transaction.pk, reason="buyer gave up")

        assert escrow.status == EscrowStatus.REFUNDED
        assert escrow.refund_reason == "buyer gave up"
        stored = repo.get(TRANSACTION, transaction.pk)
        assert stored.status == TransactionStatus.CANCELLED
        assert stored.cancelled_at is not None

    def test_refund_locked_escrow(self, core, open_trade):
        transaction = open_trade()
        core.escrow.lock_funds(transaction.pk)

        escrow = core.escrow.refund_funds(transaction.pk)

        assert escrow.status == EscrowStatus.REFUNDED

    def test_refund_then_release_fails(self, core, repo, paid_trade):
        core.escrow.refund_funds(paid_trade.pk, reason="dispute lost")

        with pytest.raises(InvalidStateError):
            core.escrow.release_funds(paid_trade.pk)

        assert escrow_of(repo, paid_trade.pk).status == EscrowStatus.REFUNDED

    def test_release_then_refund_fails(self, core, paid_trade):
        core.escrow.release_funds(paid_trade.pk)

        with pytest.raises(InvalidStateError):
            core.escrow.refund_funds(paid_trade.pk)

    def test_release_racing_refund_has_one_winner(self, core, repo, paid_trade):
        """Both calls pass their checks on the same reads; the conditional writes pick one"""
        repo.pause_batches(2)
        winners, errors = [], []

        def attempt(action):
            try:
                winners.append(action(paid_trade.pk).status)
            except Exception as e:  # collected for the assertions below
                errors.append(e)

        threads = [
            threading.Thread(target=attempt, args=(core.escrow.release_funds,)),
            threading.Thread(target=attempt, args=(core.escrow.refund_funds,)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert len(winners) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], PreconditionFailedError)
        outcome = (escrow_of(repo, paid_trade.pk).status, repo.get(TRANSACTION, paid_trade.pk).status)
        assert outcome in [
            (EscrowStatus.RELEASED, TransactionStatus.RELEASING_CRYPTO),
            (EscrowStatus.REFUNDED, TransactionStatus.CANCELLED),
        ]
        assert outcome[0] == winners[0]

    def test_refund_cancels_open_payment(self, core, repo, gateway, open_trade):
        transaction = open_trade()
        core.escrow.lock_funds(transaction.pk)
        artifact = core.payments.create_payment(transaction.pk, Decimal('500.00'), 'buyer@example.com')

        core.escrow.refund_funds(transaction.pk, reason="payment window expired")

        assert repo.find(PAYMENT, transaction_id=transaction.pk).status == PaymentStatus.FAILED
        assert gateway.get_payment(artifact.external_payment_id).gateway_status == 'cancelled'

    def test_refund_keeps_completed_payment(self, core, repo, gateway, paid_trade):
        core.escrow.refund_funds(paid_trade.pk, reason="dispute lost")

        payment = repo.find(PAYMENT, transaction_id=paid_trade.pk)
        assert payment.status == PaymentStatus.COMPLETED
        assert gateway.get_payment(payment.external_payment_id).gateway_status == 'approved'

    def test_refund_stands_when_cancellation_fails(self, core, repo, open_trade):
        transaction = open_trade()
        core.payments.create_payment(transaction.pk, Decimal('500.00'), 'buyer@example.com')
        gateway = Mock()
        gateway.get_payment.return_value = GatewayPaymentStatus(gateway_status='pending')
        gateway.cancel_payment.side_effect = GatewayError("503", gateway='mock', status_code=503)
        escrow = EscrowService(repo, payments=PaymentReconciler(repo, gateway))

        with pytest.raises(GatewayError):
            escrow.refund_funds(transaction.pk)

        assert escrow_of(repo, transaction.pk).status == EscrowStatus.REFUNDED
        assert repo.get(TRANSACTION, transaction.pk).status == TransactionStatus.CANCELLED
        assert repo.find(PAYMENT, transaction_id=transaction.pk).status == PaymentStatus.PENDING

    def test_refund_recomputes_both_participants(self, core, repo, open_trade):
        transaction = open_trade()

        core.escrow.refund_funds(transaction.pk)

        for user_id in (BUYER_ID, SELLER_ID):
            reputation = core.reputation.get_user_reputation(user_id)
            assert reputation.completed_transactions == 0
            assert reputation.success_rate == Decimal('0')

    def test_refund_rejected_for_completed_trade(self, core, repo, open_trade):
        transaction = open_trade()
        repo.force(TRANSACTION, transaction.pk, status=TransactionStatus.COMPLETED)

        with pytest.raises(InvalidStateError) as excinfo:
            core.escrow.refund_funds(transaction.pk)

        assert excinfo.value.entity == TRANSACTION
        assert escrow_of(repo, transaction.pk).status == EscrowStatus.PENDING


class TestPredicates:

    def test_can_release_and_refund_missing_records(self, core):
        """Predicates answer False for unknown trades instead of raising"""
        assert core.escrow.can_release(12345) is False
        assert core.escrow.can_refund(12345) is False

    def test_predicates_follow_the_guards(self, core, open_trade, paid_trade):
        pending = open_trade()
        assert core.escrow.can_release(pending.pk) is False
        assert core.escrow.can_refund(pending.pk) is True

        assert core.escrow.can_release(paid_trade.pk) is True
        assert core.escrow.can_refund(paid_trade.pk) is True

        core.escrow.release_funds(paid_trade.pk)
        assert core.escrow.can_release(paid_trade.pk) is False
        assert core.escrow.can_refund(paid_trade.pk) is False

    def test_predicates_swallow_repository_failures(self, core, repo, open_trade):
        transaction = open_trade()

        def broken_find(entity, **lookup):
            raise RuntimeError("connection lost")

        repo.find = broken_find

        assert core.escrow.can_release(transaction.pk) is False
        assert core.escrow.can_refund(transaction.pk) is False


class TestEscrowStatus:

    def test_projection(self, core, open_trade):
        transaction = open_trade()
        core.escrow.lock_funds(transaction.pk)

        status = core.escrow.get_escrow_status(transaction.pk)

        assert status['status'] == EscrowStatus.LOCKED
        assert status['locked_at'] is not None
        assert status['released_at'] is None
        assert status['refunded_at'] is None
        assert status['refund_reason'] is None

    def test_missing_escrow(self, core):
        with pytest.raises(NotFoundError):
            core.escrow.get_escrow_status(404)
