from decimal import Decimal


class ReputationLevel:
    BEGINNER = 'BEGINNER'
    INTERMEDIATE = 'INTERMEDIATE'
    ADVANCED = 'ADVANCED'
    EXPERT = 'EXPERT'

    CHOICES = (
        (BEGINNER, 'Beginner'),
        (INTERMEDIATE, 'Intermediate'),
        (ADVANCED, 'Advanced'),
        (EXPERT, 'Expert'),
    )


# (level, min completed trades, min average score, min success rate), checked in order
LEVEL_RULES = (
    (ReputationLevel.EXPERT, 50, Decimal('4.5'), Decimal('0.95')),
    (ReputationLevel.ADVANCED, 20, Decimal('4.0'), Decimal('0.90')),
    (ReputationLevel.INTERMEDIATE, 5, Decimal('3.5'), Decimal('0.80')),
)


class Badge:
    FIRST_TRADE = 'FIRST_TRADE'
    VERIFIED_TRADER = 'VERIFIED_TRADER'
    HIGH_REPUTATION = 'HIGH_REPUTATION'
    HIGH_VOLUME = 'HIGH_VOLUME'


VERIFIED_TRADER_MIN_TRADES = 10
HIGH_REPUTATION_MIN_SCORE = Decimal('4.5')
HIGH_VOLUME_MIN_FIAT = Decimal('10000')

DEFAULT_TOP_TRADERS = 10
MAX_TOP_TRADERS = 100
