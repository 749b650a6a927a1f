from django.db import models
from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from auditlog.registry import auditlog

from .constants import TransactionStatus, NotificationKind, MIN_RATING_SCORE, MAX_RATING_SCORE


class Transaction(models.Model):
    """
    A single trade: the buyer pays fiat_amount out of band and receives
    asset_amount of cryptocurrency from the seller.
    Status is only moved by the settlement services, always through conditional updates.
    """
    buyer = models.ForeignKey(settings.AUTH_USER_MODEL, related_name='purchases', on_delete=models.PROTECT)
    seller = models.ForeignKey(settings.AUTH_USER_MODEL, related_name='sales', on_delete=models.PROTECT)
    cryptocurrency = models.CharField(max_length=20)
    fiat_amount = models.DecimalField(max_digits=14, decimal_places=2)
    asset_amount = models.DecimalField(max_digits=24, decimal_places=8)
    status = models.CharField(max_length=20, choices=TransactionStatus.CHOICES, default=TransactionStatus.PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['buyer', 'status'], name='trade_buyer_status_idx'),
            models.Index(fields=['seller', 'status'], name='trade_seller_status_idx'),
        ]

    @property
    def is_terminal(self):
        return self.status in TransactionStatus.TERMINAL

    def __str__(self):
        return f"{self.asset_amount} {self.cryptocurrency} for {self.fiat_amount} ({self.status})"


class Rating(models.Model):
    """Feedback left by one participant about the other after a completed trade. Never edited."""
    transaction = models.ForeignKey(Transaction, on_delete=models.CASCADE, related_name='ratings')
    rater = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='given_ratings')
    rated_user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='received_ratings')
    score = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(MIN_RATING_SCORE), MaxValueValidator(MAX_RATING_SCORE)]
    )
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ['transaction', 'rater']

    def __str__(self):
        return f"{self.rater} rated {self.rated_user} {self.score}/5"


class Notification(models.Model):
    """Message to a participant about one of their trades, e.g. that the buyer has paid."""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    transaction = models.ForeignKey(Transaction, on_delete=models.CASCADE, related_name='notifications')
    kind = models.CharField(max_length=30, choices=NotificationKind.CHOICES)
    title = models.CharField(max_length=120)
    message = models.TextField()
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.kind} for {self.user}"


auditlog.register(Transaction)
