class TransactionStatus:
    PENDING = 'PENDING'
    ACCEPTED = 'ACCEPTED'
    WAITING_PAYMENT = 'WAITING_PAYMENT'
    PAYMENT_CONFIRMED = 'PAYMENT_CONFIRMED'
    RELEASING_CRYPTO = 'RELEASING_CRYPTO'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'
    DISPUTED = 'DISPUTED'

    CHOICES = (
        (PENDING, 'Pending'),
        (ACCEPTED, 'Accepted'),
        (WAITING_PAYMENT, 'Waiting Payment'),
        (PAYMENT_CONFIRMED, 'Payment Confirmed'),
        (RELEASING_CRYPTO, 'Releasing Crypto'),
        (COMPLETED, 'Completed'),
        (CANCELLED, 'Cancelled'),
        (DISPUTED, 'Disputed'),
    )

    TERMINAL = (COMPLETED, CANCELLED)
    # statuses counted as a settled outcome when computing success rate
    SETTLED_OUTCOMES = (COMPLETED, CANCELLED, DISPUTED)
    REFUNDABLE = (PENDING, ACCEPTED, WAITING_PAYMENT, PAYMENT_CONFIRMED, DISPUTED)
    RELEASABLE = REFUNDABLE
    AWAITING_PAYMENT = (PENDING, ACCEPTED, WAITING_PAYMENT)
    DISPUTABLE = (ACCEPTED, WAITING_PAYMENT, PAYMENT_CONFIRMED, RELEASING_CRYPTO)


MIN_RATING_SCORE = 1
MAX_RATING_SCORE = 5


class NotificationKind:
    PAYMENT_RECEIVED = 'PAYMENT_RECEIVED'

    CHOICES = (
        (PAYMENT_RECEIVED, 'Payment Received'),
    )
