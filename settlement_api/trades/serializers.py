from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .constants import MIN_RATING_SCORE, MAX_RATING_SCORE
from .models import Transaction, Rating, Notification


class TransactionSerializer(serializers.ModelSerializer):
    buyer_email = serializers.EmailField(source="buyer.email", read_only=True)
    seller_email = serializers.EmailField(source="seller.email", read_only=True)
    escrow_status = serializers.CharField(source="escrow.status", read_only=True, default=None)
    payment_status = serializers.CharField(source="payment.status", read_only=True, default=None)

    class Meta:
        model = Transaction
        fields = (
            "id",
            "buyer_id",
            "buyer_email",
            "seller_id",
            "seller_email",
            "cryptocurrency",
            "fiat_amount",
            "asset_amount",
            "status",
            "escrow_status",
            "payment_status",
            "created_at",
            "updated_at",
            "cancelled_at",
            "completed_at",
        )
        read_only_fields = fields


class OpenTradeSerializer(serializers.Serializer):
    """The authenticated user opens the trade as buyer."""

    seller_id = serializers.IntegerField()
    cryptocurrency = serializers.CharField(max_length=20)
    fiat_amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0.01"))
    asset_amount = serializers.DecimalField(max_digits=24, decimal_places=8, min_value=Decimal("0.00000001"))

    def validate_seller_id(self, value):
        if not get_user_model().objects.filter(pk=value, is_active=True).exists():
            raise serializers.ValidationError("Seller not found.")
        request = self.context.get("request")
        if request is not None and request.user.id == value:
            raise serializers.ValidationError("You cannot trade with yourself.")
        return value


class RatingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Rating
        fields = ("id", "transaction_id", "rater_id", "rated_user_id", "score", "comment", "created_at")
        read_only_fields = fields


class SubmitRatingSerializer(serializers.Serializer):
    score = serializers.IntegerField(min_value=MIN_RATING_SCORE, max_value=MAX_RATING_SCORE)
    comment = serializers.CharField(required=False, allow_blank=True, default="")


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ("id", "transaction_id", "kind", "title", "message", "is_read", "created_at")
        read_only_fields = fields
