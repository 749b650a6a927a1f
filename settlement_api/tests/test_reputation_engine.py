"""
Reputation recalculation, tiers, badges and rankings.
"""

from decimal import Decimal

import pytest

from reputation.constants import Badge, ReputationLevel
from reputation.services import compute_level
from settlement.exceptions import NotFoundError
from settlement.repository import Create, RATING, REPUTATION, TRANSACTION
from trades.constants import TransactionStatus
from tests.conftest import BUYER_ID, OUTSIDER_ID, SELLER_ID


def seed_trades(repo, user_id, status, count, counterparty=OUTSIDER_ID, fiat_amount=Decimal('100.00'),
                cryptocurrency='BTC', as_buyer=True):
    operations = []
    for _ in range(count):
        buyer, seller = (user_id, counterparty) if as_buyer else (counterparty, user_id)
        operations.append(Create(TRANSACTION, {
            'buyer_id': buyer,
            'seller_id': seller,
            'cryptocurrency': cryptocurrency,
            'fiat_amount': fiat_amount,
            'asset_amount': Decimal('0.001'),
            'status': status,
        }))
    return repo.atomic_batch(operations) if operations else []


def seed_ratings(repo, user_id, scores, rater_id=OUTSIDER_ID):
    operations = []
    for score in scores:
        transaction = seed_trades(repo, rater_id, TransactionStatus.CANCELLED, 1, counterparty=BUYER_ID + 100)[0]
        operations.append(Create(RATING, {
            'transaction_id': transaction.pk,
            'rater_id': rater_id,
            'rated_user_id': user_id,
            'score': score,
        }))
    return repo.atomic_batch(operations)


class TestComputeLevel:

    @pytest.mark.parametrize("completed, average, rate, expected", [
        (50, '4.5', '0.95', ReputationLevel.EXPERT),
        (49, '4.5', '0.95', ReputationLevel.ADVANCED),
        (50, '4.49', '0.95', ReputationLevel.ADVANCED),
        (50, '4.5', '0.9499', ReputationLevel.ADVANCED),
        (20, '4.0', '0.90', ReputationLevel.ADVANCED),
        (19, '4.0', '0.90', ReputationLevel.INTERMEDIATE),
        (5, '3.5', '0.80', ReputationLevel.INTERMEDIATE),
        (4, '5', '1', ReputationLevel.BEGINNER),
        (5, '3.49', '1', ReputationLevel.BEGINNER),
        (100, '5', '0.79', ReputationLevel.BEGINNER),
        (0, '0', '0', ReputationLevel.BEGINNER),
    ])
    def test_boundaries(self, completed, average, rate, expected):
        assert compute_level(completed, Decimal(average), Decimal(rate)) == expected


class TestRecalculate:

    def test_new_user_is_beginner(self, core):
        reputation = core.reputation.recalculate(BUYER_ID)

        assert reputation.level == ReputationLevel.BEGINNER
        assert reputation.total_ratings == 0
        assert reputation.average_score == Decimal('0')
        assert reputation.success_rate == Decimal('0')

    def test_counts_buyer_and_seller_sides(self, core, repo):
        seed_trades(repo, BUYER_ID, TransactionStatus.COMPLETED, 3, as_buyer=True)
        seed_trades(repo, BUYER_ID, TransactionStatus.COMPLETED, 2, as_buyer=False)
        seed_trades(repo, BUYER_ID, TransactionStatus.CANCELLED, 1)
        seed_trades(repo, BUYER_ID, TransactionStatus.PENDING, 4)

        reputation = core.reputation.recalculate(BUYER_ID)

        assert reputation.completed_transactions == 5
        assert reputation.success_rate == Decimal('0.8333')

    def test_disputes_count_against_success_rate(self, core, repo):
        seed_trades(repo, BUYER_ID, TransactionStatus.COMPLETED, 1)
        seed_trades(repo, BUYER_ID, TransactionStatus.DISPUTED, 1)

        assert core.reputation.recalculate(BUYER_ID).success_rate == Decimal('0.5')

    def test_expert_at_exact_thresholds(self, core, repo):
        """57 of 60 settled trades is exactly 0.95 and scores 5/4 average exactly 4.5"""
        seed_trades(repo, SELLER_ID, TransactionStatus.COMPLETED, 57)
        seed_trades(repo, SELLER_ID, TransactionStatus.CANCELLED, 3)
        seed_ratings(repo, SELLER_ID, [5, 4] * 10)

        reputation = core.reputation.recalculate(SELLER_ID)

        assert reputation.average_score == Decimal('4.50')
        assert reputation.success_rate == Decimal('0.9500')
        assert reputation.level == ReputationLevel.EXPERT

    def test_just_below_success_threshold(self, core, repo):
        seed_trades(repo, SELLER_ID, TransactionStatus.COMPLETED, 56)
        seed_trades(repo, SELLER_ID, TransactionStatus.CANCELLED, 4)
        seed_ratings(repo, SELLER_ID, [5, 4] * 10)

        assert core.reputation.recalculate(SELLER_ID).level == ReputationLevel.ADVANCED

    def test_average_is_stored_rounded_down(self, core, repo):
        seed_ratings(repo, BUYER_ID, [5, 5, 4])

        reputation = core.reputation.recalculate(BUYER_ID)

        assert reputation.total_ratings == 3
        assert reputation.average_score == Decimal('4.66')

    def test_recalculation_is_idempotent(self, core, repo):
        seed_trades(repo, BUYER_ID, TransactionStatus.COMPLETED, 6)
        seed_ratings(repo, BUYER_ID, [4, 3, 5])

        first = core.reputation.recalculate(BUYER_ID)
        second = core.reputation.recalculate(BUYER_ID)

        fields = ('total_ratings', 'average_score', 'completed_transactions', 'success_rate', 'level')
        assert [getattr(first, f) for f in fields] == [getattr(second, f) for f in fields]
        assert len(repo.rows(REPUTATION)) == 1

    def test_completed_count_is_monotone(self, core, repo):
        seen = []
        for _ in range(4):
            seed_trades(repo, BUYER_ID, TransactionStatus.COMPLETED, 2)
            seen.append(core.reputation.recalculate(BUYER_ID).completed_transactions)

        assert seen == sorted(seen)
        assert seen[-1] == 8

    def test_recalculate_participants(self, core, open_trade):
        transaction = open_trade()

        buyer, seller = core.reputation.recalculate_participants(transaction)

        assert buyer.user_id == BUYER_ID
        assert seller.user_id == SELLER_ID


class TestReads:

    def test_reputation_is_computed_on_first_access(self, core, repo):
        assert repo.find(REPUTATION, user_id=BUYER_ID) is None

        reputation = core.reputation.get_user_reputation(BUYER_ID)

        assert reputation.level == ReputationLevel.BEGINNER
        assert repo.find(REPUTATION, user_id=BUYER_ID) is not None

    def test_unknown_user(self, core):
        with pytest.raises(NotFoundError):
            core.reputation.get_user_reputation(9999)

    def test_user_stats(self, core, repo):
        seed_trades(repo, BUYER_ID, TransactionStatus.COMPLETED, 8, fiat_amount=Decimal('1000.00'))
        seed_trades(repo, BUYER_ID, TransactionStatus.COMPLETED, 2, fiat_amount=Decimal('1500.00'),
                    cryptocurrency='ETH', as_buyer=False)
        seed_trades(repo, BUYER_ID, TransactionStatus.CANCELLED, 2)
        seed_trades(repo, BUYER_ID, TransactionStatus.PENDING, 5)
        seed_ratings(repo, BUYER_ID, [5, 5, 4, 5])
        core.reputation.recalculate(BUYER_ID)

        stats = core.reputation.get_user_stats(BUYER_ID)

        assert stats['purchases'] == 8
        assert stats['sales'] == 2
        assert stats['total_fiat_volume'] == Decimal('11000.00')
        assert stats['completion_rate'] == Decimal('0.8333')
        assert [row['cryptocurrency'] for row in stats['volume_by_crypto']] == ['BTC', 'ETH']
        assert stats['volume_by_crypto'][1]['count'] == 2
        assert stats['badges'] == [
            Badge.FIRST_TRADE, Badge.VERIFIED_TRADER, Badge.HIGH_REPUTATION, Badge.HIGH_VOLUME,
        ]

    def test_badges_for_newcomer(self, core):
        assert core.reputation.get_user_stats(BUYER_ID)['badges'] == []

    def test_top_traders_ordering(self, core, repo):
        seed_trades(repo, BUYER_ID, TransactionStatus.COMPLETED, 3)
        seed_ratings(repo, BUYER_ID, [4])
        seed_trades(repo, SELLER_ID, TransactionStatus.COMPLETED, 1, counterparty=BUYER_ID + 200)
        seed_ratings(repo, SELLER_ID, [5])
        for user_id in (BUYER_ID, SELLER_ID, OUTSIDER_ID):
            core.reputation.recalculate(user_id)

        traders = core.reputation.get_top_traders()

        assert [t['user_id'] for t in traders][:2] == [SELLER_ID, BUYER_ID]
        assert traders[0]['display_name'] == "Seller"
        assert traders[0]['total_volume'] == Decimal('100.00')

    def test_top_traders_excludes_users_without_completed_trades(self, core, repo):
        seed_ratings(repo, BUYER_ID, [5])
        core.reputation.recalculate(BUYER_ID)

        assert core.reputation.get_top_traders() == []

    @pytest.mark.parametrize("limit", [0, -3, 2.5, '10', True])
    def test_top_traders_rejects_bad_limit(self, core, limit):
        with pytest.raises(ValueError):
            core.reputation.get_top_traders(limit)

    def test_top_traders_limit_is_capped(self, core, repo, monkeypatch):
        requested = []
        original = repo.list_top_reputations
        monkeypatch.setattr(repo, 'list_top_reputations', lambda limit: requested.append(limit) or original(limit))

        core.reputation.get_top_traders(500)

        assert requested == [100]
