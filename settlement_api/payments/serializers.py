from rest_framework import serializers

from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    transaction_id = serializers.IntegerField(source="transaction.id", read_only=True)

    class Meta:
        model = Payment
        fields = (
            "id",
            "transaction_id",
            "external_payment_id",
            "provider",
            "amount",
            "status",
            "qr_code",
            "qr_code_base64",
            "expires_at",
            "paid_at",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class CreatePaymentSerializer(serializers.Serializer):
    """
    The amount is always the trade's fiat amount and the payer is the
    authenticated buyer. payer_document overrides the profile's tax document.
    """
    transaction_id = serializers.IntegerField()
    payer_document = serializers.CharField(max_length=20, required=False, allow_blank=True)


class PaymentArtifactSerializer(serializers.Serializer):
    external_payment_id = serializers.CharField()
    qr_code = serializers.CharField()
    qr_code_base64 = serializers.CharField()
    status = serializers.CharField()
    expires_at = serializers.DateTimeField(allow_null=True)


class PaymentStatusSerializer(serializers.Serializer):
    external_payment_id = serializers.CharField()
    status = serializers.CharField()
    is_paid = serializers.BooleanField()
    paid_at = serializers.DateTimeField(allow_null=True)
    transaction_status = serializers.CharField()


class WebhookDataSerializer(serializers.Serializer):
    id = serializers.CharField()


class WebhookNotificationSerializer(serializers.Serializer):
    """Only used to document the webhook body; the view accepts anything."""
    id = serializers.CharField(required=False)
    type = serializers.CharField()
    action = serializers.CharField()
    data = WebhookDataSerializer()
