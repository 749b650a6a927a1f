from django.shortcuts import get_object_or_404
from rest_framework import permissions, status, views
from rest_framework.response import Response
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from settlement.container import get_settlement_core
from trades.models import Transaction
from trades.permissions import IsTradeParticipant, IsTradeSeller
from .models import Escrow
from .serializers import (
	EscrowRefundSerializer,
	EscrowSerializer,
	EscrowStatusSerializer,
)

transaction_id_param = openapi.Parameter(
	'transaction_id',
	openapi.IN_PATH,
	description="Transaction ID",
	type=openapi.TYPE_INTEGER,
)


class EscrowActionMixin:
	"""Loads the trade behind the URL and checks the view's object permissions on it."""

	def get_transaction(self, request, transaction_id):
		transaction = get_object_or_404(Transaction, pk=transaction_id)
		self.check_object_permissions(request, transaction)
		return transaction

	def escrow_response(self, escrow):
		escrow = Escrow.objects.select_related("transaction").get(pk=escrow.pk)
		return Response({"status": "success", "escrow": EscrowSerializer(escrow).data}, status=status.HTTP_200_OK)


class EscrowStatusView(EscrowActionMixin, views.APIView):
	permission_classes = [permissions.IsAuthenticated, IsTradeParticipant]

	@swagger_auto_schema(
		operation_summary="Escrow status of a trade",
		manual_parameters=[transaction_id_param],
		responses={200: EscrowStatusSerializer(), 403: "Forbidden", 404: "Not found"}
	)
	def get(self, request, transaction_id):
		self.get_transaction(request, transaction_id)
		escrow = get_settlement_core().escrow
		data = escrow.get_escrow_status(transaction_id)
		data["can_release"] = escrow.can_release(transaction_id)
		data["can_refund"] = escrow.can_refund(transaction_id)
		return Response(EscrowStatusSerializer(data).data, status=status.HTTP_200_OK)


class EscrowLockView(EscrowActionMixin, views.APIView):
	permission_classes = [permissions.IsAuthenticated, IsTradeSeller]

	@swagger_auto_schema(
		operation_summary="Lock the seller's asset in escrow",
		manual_parameters=[transaction_id_param],
		request_body=openapi.Schema(type=openapi.TYPE_OBJECT),
		responses={200: EscrowSerializer(), 403: "Forbidden", 404: "Not found", 409: "Escrow is not pending"}
	)
	def post(self, request, transaction_id):
		self.get_transaction(request, transaction_id)
		escrow = get_settlement_core().escrow.lock_funds(transaction_id)
		return self.escrow_response(escrow)


class EscrowReleaseFundsView(EscrowActionMixin, views.APIView):
	permission_classes = [permissions.IsAuthenticated, IsTradeSeller]

	@swagger_auto_schema(
		operation_summary="Release escrowed funds to the buyer",
		manual_parameters=[transaction_id_param],
		request_body=openapi.Schema(type=openapi.TYPE_OBJECT),
		responses={
			200: EscrowSerializer(),
			403: "Only the seller can release escrow funds",
			404: "Not found",
			409: "Escrow not locked or payment not confirmed",
		}
	)
	def post(self, request, transaction_id):
		self.get_transaction(request, transaction_id)
		escrow = get_settlement_core().escrow.release_funds(transaction_id)
		return self.escrow_response(escrow)


class EscrowRefundView(EscrowActionMixin, views.APIView):
	permission_classes = [permissions.IsAuthenticated, IsTradeParticipant]

	@swagger_auto_schema(
		operation_summary="Refund the escrow and cancel the trade",
		manual_parameters=[transaction_id_param],
		request_body=EscrowRefundSerializer,
		responses={200: EscrowSerializer(), 403: "Forbidden", 404: "Not found", 409: "Escrow cannot be refunded"}
	)
	def post(self, request, transaction_id):
		self.get_transaction(request, transaction_id)
		serializer = EscrowRefundSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)

		escrow = get_settlement_core().escrow.refund_funds(
			transaction_id,
			reason=serializer.validated_data["reason"] or None,
		)
		return self.escrow_response(escrow)
