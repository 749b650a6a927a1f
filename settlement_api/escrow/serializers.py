from rest_framework import serializers

from .models import Escrow


class EscrowSerializer(serializers.ModelSerializer):
    transaction_id = serializers.IntegerField(source="transaction.id", read_only=True)
    transaction_status = serializers.CharField(source="transaction.status", read_only=True)

    class Meta:
        model = Escrow
        fields = (
            "id",
            "transaction_id",
            "transaction_status",
            "status",
            "locked_at",
            "released_at",
            "refunded_at",
            "refund_reason",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class EscrowStatusSerializer(serializers.Serializer):
    transaction_id = serializers.IntegerField()
    status = serializers.CharField()
    locked_at = serializers.DateTimeField(allow_null=True)
    released_at = serializers.DateTimeField(allow_null=True)
    refunded_at = serializers.DateTimeField(allow_null=True)
    refund_reason = serializers.CharField(allow_null=True)
    can_release = serializers.BooleanField()
    can_refund = serializers.BooleanField()


class EscrowRefundSerializer(serializers.Serializer):
    """Reason is stored on the escrow and shown to both parties."""

    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
