import logging
from decimal import Decimal, ROUND_DOWN

from settlement.exceptions import NotFoundError
from settlement.repository import REPUTATION
from trades.constants import TransactionStatus
from .constants import (
    ReputationLevel,
    LEVEL_RULES,
    Badge,
    VERIFIED_TRADER_MIN_TRADES,
    HIGH_REPUTATION_MIN_SCORE,
    HIGH_VOLUME_MIN_FIAT,
    DEFAULT_TOP_TRADERS,
    MAX_TOP_TRADERS,
)

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
SCORE_PLACES = Decimal('0.01')
RATE_PLACES = Decimal('0.0001')


def compute_level(completed, average_score, success_rate):
    """First rule whose three thresholds are all met wins; BEGINNER otherwise."""
    for level, min_completed, min_average, min_rate in LEVEL_RULES:
        if completed >= min_completed and average_score >= min_average and success_rate >= min_rate:
            return level
    return ReputationLevel.BEGINNER


def _ratio(numerator, denominator):
    if not denominator:
        return ZERO
    return Decimal(numerator) / Decimal(denominator)


class ReputationEngine:
    """
    Derives a user's trust score from their ratings and transaction history.

    The stored UserReputation row is always rebuilt from scratch, never
    patched, so recalculating twice gives the same row.
    """

    def __init__(self, repository):
        self.repository = repository

    def recalculate(self, user_id):
        scores = self.repository.list_rating_scores(user_id)
        total_ratings = len(scores)
        average_score = _ratio(sum(scores), total_ratings)

        completed = self.repository.count_transactions(user_id, statuses=(TransactionStatus.COMPLETED,))
        settled = self.repository.count_transactions(user_id, statuses=TransactionStatus.SETTLED_OUTCOMES)
        success_rate = _ratio(completed, settled)

        # tier from the exact values, storage rounded down so it never overstates
        level = compute_level(completed, average_score, success_rate)
        reputation = self.repository.upsert_reputation(user_id, {
            'total_ratings': total_ratings,
            'average_score': average_score.quantize(SCORE_PLACES, rounding=ROUND_DOWN),
            'completed_transactions': completed,
            'success_rate': success_rate.quantize(RATE_PLACES, rounding=ROUND_DOWN),
            'level': level,
        })

        logger.info(
            f"Reputation recalculated: {level}",
            extra={'user_id': user_id, 'completed': completed, 'total_ratings': total_ratings},
        )
        return reputation

    def recalculate_participants(self, transaction):
        return [self.recalculate(transaction.buyer_id), self.recalculate(transaction.seller_id)]

    def get_user_reputation(self, user_id):
        reputation = self.repository.find(REPUTATION, user_id=user_id)
        if reputation is not None:
            return reputation
        if self.repository.get_display_name(user_id) is None:
            raise NotFoundError('user', user_id)
        return self.recalculate(user_id)

    def get_badges(self, completed, average_score, fiat_volume):
        badges = []
        if completed >= 1:
            badges.append(Badge.FIRST_TRADE)
        if completed >= VERIFIED_TRADER_MIN_TRADES:
            badges.append(Badge.VERIFIED_TRADER)
        if average_score >= HIGH_REPUTATION_MIN_SCORE:
            badges.append(Badge.HIGH_REPUTATION)
        if fiat_volume >= HIGH_VOLUME_MIN_FIAT:
            badges.append(Badge.HIGH_VOLUME)
        return badges

    def get_user_stats(self, user_id):
        """
        Trading summary of a user.

        Returns:
            dict with reputation, purchases, sales, volume_by_crypto,
            completion_rate (fraction of non-pending trades completed) and badges
        """
        reputation = self.get_user_reputation(user_id)
        completed = (TransactionStatus.COMPLETED,)
        purchases = self.repository.count_transactions(user_id, statuses=completed, role='buyer')
        sales = self.repository.count_transactions(user_id, statuses=completed, role='seller')
        started = self.repository.count_transactions(user_id, exclude_statuses=(TransactionStatus.PENDING,))
        volume_by_crypto = self.repository.sum_amount_by_crypto_for_user(user_id)
        fiat_volume = sum((row['fiat_volume'] for row in volume_by_crypto), ZERO)

        return {
            'user_id': user_id,
            'reputation': reputation,
            'purchases': purchases,
            'sales': sales,
            'total_trades': purchases + sales,
            'volume_by_crypto': volume_by_crypto,
            'total_fiat_volume': fiat_volume,
            'completion_rate': _ratio(purchases + sales, started).quantize(RATE_PLACES, rounding=ROUND_DOWN),
            'badges': self.get_badges(purchases + sales, reputation.average_score, fiat_volume),
        }

    def get_top_traders(self, limit=DEFAULT_TOP_TRADERS):
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValueError("limit must be a positive integer")
        limit = min(limit, MAX_TOP_TRADERS)

        return [
            {
                'user_id': reputation.user_id,
                'display_name': self.repository.get_display_name(reputation.user_id),
                'level': reputation.level,
                'average_score': reputation.average_score,
                'total_ratings': reputation.total_ratings,
                'completed_transactions': reputation.completed_transactions,
                'success_rate': reputation.success_rate,
                'total_volume': self.repository.sum_fiat_volume_for_user(reputation.user_id),
            }
            for reputation in self.repository.list_top_reputations(limit)
        ]
