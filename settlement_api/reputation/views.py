from rest_framework import permissions, status, views
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from settlement.container import get_settlement_core
from .constants import DEFAULT_TOP_TRADERS
from .serializers import TopTraderSerializer, UserReputationSerializer, UserStatsSerializer

user_id_param = openapi.Parameter('user_id', openapi.IN_PATH, description="User ID", type=openapi.TYPE_INTEGER)


class UserReputationView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Reputation of a user",
        manual_parameters=[user_id_param],
        responses={200: UserReputationSerializer(), 404: "Not found"}
    )
    def get(self, request, user_id):
        reputation = get_settlement_core().reputation.get_user_reputation(user_id)
        return Response(UserReputationSerializer(reputation).data, status=status.HTTP_200_OK)


class UserStatsView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        operation_summary="Trading statistics and badges of a user",
        manual_parameters=[user_id_param],
        responses={200: UserStatsSerializer(), 404: "Not found"}
    )
    def get(self, request, user_id):
        stats = get_settlement_core().reputation.get_user_stats(user_id)
        return Response(UserStatsSerializer(stats).data, status=status.HTTP_200_OK)


class TopTradersView(views.APIView):
    permission_classes = [permissions.AllowAny]

    @swagger_auto_schema(
        operation_summary="Best rated traders",
        manual_parameters=[
            openapi.Parameter('limit', openapi.IN_QUERY, description="Number of traders (max 100)", type=openapi.TYPE_INTEGER)
        ],
        responses={200: TopTraderSerializer(many=True), 400: "Invalid limit"}
    )
    def get(self, request):
        limit = request.query_params.get('limit', DEFAULT_TOP_TRADERS)
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            raise ValidationError({'limit': 'Must be a positive integer.'})

        traders = get_settlement_core().reputation.get_top_traders(limit)
        return Response(TopTraderSerializer(traders, many=True).data, status=status.HTTP_200_OK)


class RecalculateReputationView(views.APIView):
    permission_classes = [permissions.IsAdminUser]

    @swagger_auto_schema(
        operation_summary="Rebuild the reputation of a user",
        manual_parameters=[user_id_param],
        request_body=openapi.Schema(type=openapi.TYPE_OBJECT),
        responses={200: UserReputationSerializer(), 403: "Forbidden", 404: "Not found"}
    )
    def post(self, request, user_id):
        core = get_settlement_core()
        # raises NotFoundError for unknown users before anything is written
        core.reputation.get_user_reputation(user_id)
        reputation = core.reputation.recalculate(user_id)
        return Response(UserReputationSerializer(reputation).data, status=status.HTTP_200_OK)
