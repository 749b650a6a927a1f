from django.db import models
from auditlog.registry import auditlog

from trades.models import Transaction
from .constants import PaymentStatus


class Payment(models.Model):
    """
    Fiat leg of a trade, paid out of band through the gateway.
    external_payment_id is assigned by the gateway at creation and never changes.
    """
    transaction = models.OneToOneField(Transaction, on_delete=models.CASCADE, related_name='payment')
    external_payment_id = models.CharField(max_length=255, unique=True)
    provider = models.CharField(max_length=50, blank=True)  # e.g., 'mock', 'mercadopago'
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    status = models.CharField(max_length=20, choices=PaymentStatus.CHOICES, default=PaymentStatus.PENDING)
    qr_code = models.TextField(blank=True)  # copy-and-paste payment code
    qr_code_base64 = models.TextField(blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [models.Index(fields=['status'], name='payment_status_idx')]

    def __str__(self):
        return f"{self.provider} payment {self.external_payment_id} of {self.amount} ({self.status})"


class WebhookEvent(models.Model):
    """
    Stores processed webhook event IDs so re-deliveries are acknowledged without reprocessing.
    """
    provider = models.CharField(max_length=50)
    event_id = models.CharField(max_length=255, unique=True)
    received_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.provider}:{self.event_id}"


auditlog.register(Payment)
