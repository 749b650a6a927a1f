from django.db.models import Q
from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, permissions, status, views
from rest_framework.filters import OrderingFilter
from rest_framework.response import Response
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from settlement.container import get_settlement_core
from .filters import TransactionFilter
from .models import Transaction, Notification
from .pagination import TradeListPagination
from .permissions import IsTradeParticipant, IsTradeSeller, IsTradeBuyer
from .serializers import (
    NotificationSerializer,
    OpenTradeSerializer,
    RatingSerializer,
    SubmitRatingSerializer,
    TransactionSerializer,
)

trade_id_param = openapi.Parameter('pk', openapi.IN_PATH, description="Transaction ID", type=openapi.TYPE_INTEGER)


def trade_queryset():
    return Transaction.objects.select_related("buyer", "seller", "escrow", "payment")


class TradeListCreateView(generics.ListCreateAPIView):
    """List the trades of the authenticated user, or open a new one as buyer."""

    serializer_class = TransactionSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = TradeListPagination
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = TransactionFilter
    ordering_fields = ["created_at", "fiat_amount"]

    def get_queryset(self):
        user = self.request.user
        queryset = trade_queryset()
        if user.is_staff:
            return queryset
        return queryset.filter(Q(buyer=user) | Q(seller=user))

    @swagger_auto_schema(
        operation_summary="Open a trade with a seller",
        request_body=OpenTradeSerializer,
        responses={201: TransactionSerializer(), 400: "Validation error"}
    )
    def post(self, request, *args, **kwargs):
        serializer = OpenTradeSerializer(data=request.data, context={"request": request})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        transaction = get_settlement_core().trades.open_trade(
            buyer_id=request.user.id,
            seller_id=data["seller_id"],
            cryptocurrency=data["cryptocurrency"],
            fiat_amount=data["fiat_amount"],
            asset_amount=data["asset_amount"],
        )
        transaction = trade_queryset().get(pk=transaction.pk)
        return Response(TransactionSerializer(transaction).data, status=status.HTTP_201_CREATED)


class TradeDetailView(generics.RetrieveAPIView):
    serializer_class = TransactionSerializer
    permission_classes = [permissions.IsAuthenticated, IsTradeParticipant]

    def get_queryset(self):
        return trade_queryset()


class TradeActionView(views.APIView):
    """Base for POST actions on a single trade. Subclasses set action_permission and implement perform()."""

    permission_classes = [permissions.IsAuthenticated]
    action_permission = IsTradeParticipant

    def get_permissions(self):
        return super().get_permissions() + [self.action_permission()]

    def get_transaction(self, request, pk):
        transaction = get_object_or_404(Transaction, pk=pk)
        self.check_object_permissions(request, transaction)
        return transaction

    def post(self, request, pk):
        self.get_transaction(request, pk)
        self.perform(request, pk)
        transaction = trade_queryset().get(pk=pk)
        return Response({"status": "success", "trade": TransactionSerializer(transaction).data})

    def perform(self, request, pk):
        raise NotImplementedError


class TradeAcceptView(TradeActionView):
    action_permission = IsTradeSeller

    @swagger_auto_schema(
        operation_summary="Accept a pending trade (seller)",
        manual_parameters=[trade_id_param],
        request_body=openapi.Schema(type=openapi.TYPE_OBJECT),
        responses={200: TransactionSerializer(), 403: "Forbidden", 409: "Trade is not pending"}
    )
    def post(self, request, pk):
        return super().post(request, pk)

    def perform(self, request, pk):
        get_settlement_core().trades.accept_trade(pk)


class TradeDisputeView(TradeActionView):
    @swagger_auto_schema(
        operation_summary="Open a dispute on a trade",
        manual_parameters=[trade_id_param],
        request_body=openapi.Schema(type=openapi.TYPE_OBJECT),
        responses={200: TransactionSerializer(), 403: "Forbidden", 409: "Trade cannot be disputed"}
    )
    def post(self, request, pk):
        return super().post(request, pk)

    def perform(self, request, pk):
        get_settlement_core().trades.open_dispute(pk)


class TradeCompleteView(TradeActionView):
    action_permission = IsTradeBuyer

    @swagger_auto_schema(
        operation_summary="Confirm the asset was received (buyer)",
        manual_parameters=[trade_id_param],
        request_body=openapi.Schema(type=openapi.TYPE_OBJECT),
        responses={200: TransactionSerializer(), 403: "Forbidden", 409: "Asset not released yet"}
    )
    def post(self, request, pk):
        return super().post(request, pk)

    def perform(self, request, pk):
        get_settlement_core().trades.complete_trade(pk)


class TradeRateView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Rate the counterparty of a completed trade",
        manual_parameters=[trade_id_param],
        request_body=SubmitRatingSerializer,
        responses={201: RatingSerializer(), 409: "Not a participant, trade not completed or already rated"}
    )
    def post(self, request, pk):
        serializer = SubmitRatingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        rating = get_settlement_core().trades.submit_rating(
            transaction_id=pk,
            rater_id=request.user.id,
            score=serializer.validated_data["score"],
            comment=serializer.validated_data["comment"],
        )
        return Response(RatingSerializer(rating).data, status=status.HTTP_201_CREATED)


class NotificationListView(generics.ListAPIView):
    """Notifications of the authenticated user, newest first."""

    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = TradeListPagination

    def get_queryset(self):
        return Notification.objects.filter(user=self.request.user)
