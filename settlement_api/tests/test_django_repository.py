"""
DjangoTransactionRepository against the test database: conditional writes,
all-or-nothing batches and the reputation queries.
"""

from decimal import Decimal

import pytest
from auditlog.models import LogEntry

from escrow.constants import EscrowStatus
from escrow.models import Escrow
from payments.constants import PaymentStatus
from settlement.exceptions import NotFoundError, PreconditionFailedError
from settlement.repository import Create, Ref, Update, TRANSACTION, ESCROW, PAYMENT, RATING, REPUTATION
from trades.constants import TransactionStatus
from trades.models import Transaction

pytestmark = pytest.mark.django_db


@pytest.fixture
def trade(django_repo, traders):
    transaction, _ = django_repo.atomic_batch([
        Create(TRANSACTION, {
            'buyer_id': traders.buyer.pk,
            'seller_id': traders.seller.pk,
            'cryptocurrency': 'BTC',
            'fiat_amount': Decimal('500.00'),
            'asset_amount': Decimal('0.01'),
        }),
        Create(ESCROW, {'transaction_id': Ref(0)}),
    ])
    return transaction


def add_trade(django_repo, buyer, seller, status, fiat_amount='100.00', cryptocurrency='BTC'):
    transaction = django_repo.atomic_batch([Create(TRANSACTION, {
        'buyer_id': buyer.pk,
        'seller_id': seller.pk,
        'cryptocurrency': cryptocurrency,
        'fiat_amount': Decimal(fiat_amount),
        'asset_amount': Decimal('0.5'),
        'status': status,
    })])[0]
    return transaction


class TestConditionalWrites:

    def test_batch_resolves_refs(self, trade):
        escrow = Escrow.objects.get(transaction=trade)
        assert escrow.status == EscrowStatus.PENDING

    def test_update_with_expected_status(self, django_repo, trade):
        updated = django_repo.update(
            TRANSACTION, trade.pk, {'status': TransactionStatus.ACCEPTED}, (TransactionStatus.PENDING,)
        )

        assert updated.status == TransactionStatus.ACCEPTED
        assert updated.updated_at >= trade.updated_at

    def test_update_precondition_failed(self, django_repo, trade):
        with pytest.raises(PreconditionFailedError) as excinfo:
            django_repo.update(
                TRANSACTION, trade.pk, {'status': TransactionStatus.COMPLETED}, (TransactionStatus.RELEASING_CRYPTO,)
            )

        assert excinfo.value.actual == TransactionStatus.PENDING
        assert Transaction.objects.get(pk=trade.pk).status == TransactionStatus.PENDING

    def test_update_missing_row(self, django_repo, db):
        with pytest.raises(NotFoundError):
            django_repo.update(TRANSACTION, 999999, {'status': TransactionStatus.ACCEPTED})

    def test_failed_batch_writes_nothing(self, django_repo, trade):
        escrow = django_repo.find(ESCROW, transaction_id=trade.pk)

        with pytest.raises(PreconditionFailedError):
            django_repo.atomic_batch([
                Update(ESCROW, escrow.pk, {'status': EscrowStatus.LOCKED}, (EscrowStatus.PENDING,)),
                Update(TRANSACTION, trade.pk, {'status': TransactionStatus.CANCELLED}, (TransactionStatus.COMPLETED,)),
            ])

        assert Escrow.objects.get(pk=escrow.pk).status == EscrowStatus.PENDING

    def test_empty_update_asserts_status(self, django_repo, trade):
        assert django_repo.update(TRANSACTION, trade.pk, {}, (TransactionStatus.PENDING,)).pk == trade.pk

        with pytest.raises(PreconditionFailedError):
            django_repo.update(TRANSACTION, trade.pk, {}, (TransactionStatus.COMPLETED,))

    def test_get_and_find(self, django_repo, trade):
        assert django_repo.get(TRANSACTION, trade.pk).cryptocurrency == 'BTC'
        assert django_repo.find(PAYMENT, transaction_id=trade.pk) is None
        with pytest.raises(NotFoundError):
            django_repo.get(PAYMENT, 12345)

    def test_payment_round_trip(self, django_repo, trade):
        payment = django_repo.atomic_batch([Create(PAYMENT, {
            'transaction_id': trade.pk,
            'external_payment_id': 'mock_1_abc',
            'provider': 'mock',
            'amount': Decimal('500.00'),
        })])[0]

        assert django_repo.find(PAYMENT, external_payment_id='mock_1_abc').pk == payment.pk
        assert payment.status == PaymentStatus.PENDING


class TestAuditLog:

    def test_lock_and_refund_are_logged(self, django_core, traders):
        transaction = django_core.trades.open_trade(
            traders.buyer.pk, traders.seller.pk, 'BTC', Decimal('500.00'), Decimal('0.01')
        )
        django_core.escrow.lock_funds(transaction.pk)
        django_core.escrow.refund_funds(transaction.pk, reason="buyer gave up")

        escrow = Escrow.objects.get(transaction_id=transaction.pk)
        updates = LogEntry.objects.get_for_object(escrow).filter(action=LogEntry.Action.UPDATE).order_by('pk')
        assert [entry.changes_dict['status'] for entry in updates] == [
            [EscrowStatus.PENDING, EscrowStatus.LOCKED],
            [EscrowStatus.LOCKED, EscrowStatus.REFUNDED],
        ]
        cancelled = LogEntry.objects.get_for_object(Transaction.objects.get(pk=transaction.pk))
        assert cancelled.filter(action=LogEntry.Action.UPDATE).count() == 1

    def test_failed_precondition_is_not_logged(self, django_repo, trade):
        with pytest.raises(PreconditionFailedError):
            django_repo.update(TRANSACTION, trade.pk, {'status': TransactionStatus.COMPLETED}, (TransactionStatus.ACCEPTED,))

        assert not LogEntry.objects.get_for_object(trade).filter(action=LogEntry.Action.UPDATE).exists()


class TestQueries:

    def test_counts_and_volumes(self, django_repo, traders):
        buyer, seller = traders.buyer, traders.seller
        add_trade(django_repo, buyer, seller, TransactionStatus.COMPLETED, '100.00', 'BTC')
        add_trade(django_repo, buyer, seller, TransactionStatus.COMPLETED, '50.00', 'ETH')
        add_trade(django_repo, seller, buyer, TransactionStatus.COMPLETED, '25.00', 'BTC')
        add_trade(django_repo, buyer, seller, TransactionStatus.CANCELLED)
        add_trade(django_repo, buyer, seller, TransactionStatus.PENDING)

        completed = (TransactionStatus.COMPLETED,)
        assert django_repo.count_transactions(buyer.pk, statuses=completed) == 3
        assert django_repo.count_transactions(buyer.pk, statuses=completed, role='buyer') == 2
        assert django_repo.count_transactions(buyer.pk, statuses=completed, role='seller') == 1
        assert django_repo.count_transactions(buyer.pk, exclude_statuses=(TransactionStatus.PENDING,)) == 4

        volumes = django_repo.sum_amount_by_crypto_for_user(buyer.pk)
        assert [row['cryptocurrency'] for row in volumes] == ['BTC', 'ETH']
        assert volumes[0]['fiat_volume'] == Decimal('125.00')
        assert volumes[0]['count'] == 2
        assert django_repo.sum_fiat_volume_for_user(buyer.pk) == Decimal('175.00')
        assert django_repo.sum_fiat_volume_for_user(traders.outsider.pk) == Decimal('0')

    def test_rating_scores(self, django_repo, traders, trade):
        django_repo.atomic_batch([Create(RATING, {
            'transaction_id': trade.pk,
            'rater_id': traders.buyer.pk,
            'rated_user_id': traders.seller.pk,
            'score': 4,
        })])

        assert django_repo.list_rating_scores(traders.seller.pk) == [4]
        assert django_repo.list_rating_scores(traders.buyer.pk) == []

    def test_upsert_and_top_reputations(self, django_repo, traders):
        django_repo.upsert_reputation(traders.buyer.pk, {'average_score': Decimal('4.50'), 'completed_transactions': 3})
        django_repo.upsert_reputation(traders.seller.pk, {'average_score': Decimal('4.90'), 'completed_transactions': 1})
        django_repo.upsert_reputation(traders.outsider.pk, {'average_score': Decimal('5.00'), 'completed_transactions': 0})
        django_repo.upsert_reputation(traders.buyer.pk, {'average_score': Decimal('4.60'), 'completed_transactions': 4})

        top = django_repo.list_top_reputations(10)

        assert [r.user_id for r in top] == [traders.seller.pk, traders.buyer.pk]
        assert django_repo.find(REPUTATION, user_id=traders.buyer.pk).average_score == Decimal('4.60')

    def test_display_name(self, django_repo, traders):
        assert django_repo.get_display_name(traders.buyer.pk) == 'Buyer'
        assert django_repo.get_display_name(traders.outsider.pk) == 'outsider@example.com'
        assert django_repo.get_display_name(999999) is None
