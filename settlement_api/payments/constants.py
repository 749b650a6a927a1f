class PaymentStatus:
    PENDING = 'PENDING'
    PROCESSING = 'PROCESSING'
    COMPLETED = 'COMPLETED'
    FAILED = 'FAILED'

    CHOICES = (
        (PENDING, 'Pending'),
        (PROCESSING, 'Processing'),
        (COMPLETED, 'Completed'),
        (FAILED, 'Failed'),
    )

    OPEN = (PENDING, PROCESSING)
    FINAL = (COMPLETED, FAILED)


# statuses a payment may hold for a write of the key status to apply
ALLOWED_PREDECESSORS = {
    PaymentStatus.PENDING: (),
    PaymentStatus.PROCESSING: (PaymentStatus.PENDING,),
    PaymentStatus.COMPLETED: (PaymentStatus.PENDING, PaymentStatus.PROCESSING),
    PaymentStatus.FAILED: (PaymentStatus.PENDING, PaymentStatus.PROCESSING),
}
