from django.db import models
from auditlog.registry import auditlog

from trades.models import Transaction
from .constants import EscrowStatus


class Escrow(models.Model):
    """
    Custody record of a trade. Moves PENDING -> LOCKED -> RELEASED | REFUNDED and never back.
    """
    transaction = models.OneToOneField(Transaction, on_delete=models.CASCADE, related_name='escrow')
    status = models.CharField(max_length=20, choices=EscrowStatus.CHOICES, default=EscrowStatus.PENDING)
    locked_at = models.DateTimeField(null=True, blank=True)
    released_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    refund_reason = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Escrow for transaction {self.transaction_id} ({self.status})"


auditlog.register(Escrow)
