from django.shortcuts import get_object_or_404
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status, permissions
from rest_framework.exceptions import ParseError
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
import logging

from settlement.container import get_settlement_core
from trades.models import Transaction
from trades.permissions import IsTradeBuyer, IsTradeParticipant
from .constants import PaymentStatus
from .models import Payment, WebhookEvent
from .serializers import (
    CreatePaymentSerializer,
    PaymentArtifactSerializer,
    PaymentStatusSerializer,
    WebhookNotificationSerializer,
)


logger = logging.getLogger(__name__)


class CreatePaymentView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsTradeBuyer]

    @swagger_auto_schema(
        operation_summary="Create payment instructions (QR code) for a trade",
        request_body=CreatePaymentSerializer,
        responses={
            201: PaymentArtifactSerializer(),
            403: "Only the buyer can pay",
            409: "Trade not awaiting payment or already has a payment",
            503: "Payment gateway unavailable",
        }
    )
    def post(self, request):
        serializer = CreatePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        transaction = get_object_or_404(Transaction, pk=serializer.validated_data['transaction_id'])
        self.check_object_permissions(request, transaction)

        artifact = get_settlement_core().payments.create_payment(
            transaction_id=transaction.pk,
            amount=transaction.fiat_amount,
            payer_email=request.user.email,
            payer_document=serializer.validated_data.get('payer_document') or getattr(request.user, 'tax_document', None) or None,
        )
        return Response(PaymentArtifactSerializer(artifact._asdict()).data, status=status.HTTP_201_CREATED)


class PaymentStatusView(APIView):
    """Polls the gateway and reconciles the local payment before answering."""

    permission_classes = [permissions.IsAuthenticated, IsTradeParticipant]

    @swagger_auto_schema(
        operation_summary="Check and reconcile the status of a payment",
        manual_parameters=[
            openapi.Parameter('external_id', openapi.IN_PATH, description="Gateway payment ID", type=openapi.TYPE_STRING)
        ],
        responses={200: PaymentStatusSerializer(), 403: "Forbidden", 404: "Not found", 503: "Payment gateway unavailable"}
    )
    def get(self, request, external_id):
        payment = get_object_or_404(Payment.objects.select_related('transaction'), external_payment_id=external_id)
        self.check_object_permissions(request, payment)

        outcome = get_settlement_core().payments.poll_payment(external_id)
        payment = outcome.payment
        transaction = Transaction.objects.only('status').get(pk=payment.transaction_id)
        data = {
            'external_payment_id': payment.external_payment_id,
            'status': payment.status,
            'is_paid': payment.status == PaymentStatus.COMPLETED,
            'paid_at': payment.paid_at,
            'transaction_status': transaction.status,
        }
        return Response(PaymentStatusSerializer(data).data, status=status.HTTP_200_OK)


class PaymentWebhookView(APIView):
    """
    Gateway notification endpoint.

    Answers 200 for anything it can acknowledge, including malformed and
    unsupported notifications, so the gateway stops re-sending them. Signature
    failures get 401; gateway errors propagate as 5xx so the gateway retries.
    """
    authentication_classes = []
    permission_classes = [permissions.AllowAny]

    @swagger_auto_schema(
        operation_summary="Payment gateway webhook",
        request_body=WebhookNotificationSerializer,
        responses={200: "Acknowledged", 401: "Invalid signature", 503: "Gateway unavailable, retry"}
    )
    def post(self, request):
        try:
            payload = request.data
        except ParseError:
            logger.warning("Webhook body is not valid JSON")
            payload = None
        if not isinstance(payload, dict):
            payload = None

        core = get_settlement_core()
        data = (payload or {}).get('data')
        data_id = data.get('id') if isinstance(data, dict) else None

        if data_id not in (None, ''):
            signature = request.headers.get('x-signature')
            request_id = request.headers.get('x-request-id')
            if not core.gateway.validate_webhook(str(data_id), signature, request_id):
                logger.warning(f"Webhook signature rejected for payment {data_id}")
                return Response({'status': 'error', 'message': 'Invalid signature'}, status=status.HTTP_401_UNAUTHORIZED)

        event_id = str(payload['id']) if payload and payload.get('id') not in (None, '') else None
        if event_id and WebhookEvent.objects.filter(event_id=event_id).exists():
            logger.info(f"Webhook event {event_id} already processed")
            return Response({'received': True, 'processed': False, 'duplicate': True}, status=status.HTTP_200_OK)

        result = core.payments.handle_webhook(payload)

        if event_id and result.processed:
            WebhookEvent.objects.get_or_create(event_id=event_id, defaults={'provider': core.gateway.name or ''})

        return Response({
            'received': True,
            'processed': result.processed,
            'payment_id': result.payment_id,
            'transaction_update': result.transaction_update,
        }, status=status.HTTP_200_OK)
