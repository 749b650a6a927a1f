class EscrowStatus:
    PENDING = 'PENDING'
    LOCKED = 'LOCKED'
    RELEASED = 'RELEASED'
    REFUNDED = 'REFUNDED'

    CHOICES = (
        (PENDING, 'Pending'),
        (LOCKED, 'Locked'),
        (RELEASED, 'Released'),
        (REFUNDED, 'Refunded'),
    )

    TERMINAL = (RELEASED, REFUNDED)
    REFUNDABLE = (PENDING, LOCKED)
