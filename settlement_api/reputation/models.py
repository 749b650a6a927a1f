from django.db import models
from django.conf import settings

from .constants import ReputationLevel


class UserReputation(models.Model):
    """
    Cached trust score of a user. Derived entirely from transactions and ratings,
    so it can be dropped and rebuilt at any time.
    """
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name='reputation',
    )
    total_ratings = models.PositiveIntegerField(default=0)
    average_score = models.DecimalField(max_digits=4, decimal_places=2, default=0)
    completed_transactions = models.PositiveIntegerField(default=0)
    success_rate = models.DecimalField(max_digits=5, decimal_places=4, default=0)
    level = models.CharField(max_length=20, choices=ReputationLevel.CHOICES, default=ReputationLevel.BEGINNER)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-average_score', '-completed_transactions']

    def __str__(self):
        return f"{self.user} - {self.level} ({self.average_score})"
