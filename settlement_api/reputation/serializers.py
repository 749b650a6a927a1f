from rest_framework import serializers

from .models import UserReputation


class UserReputationSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True)
    display_name = serializers.SerializerMethodField()

    class Meta:
        model = UserReputation
        fields = (
            "user_id",
            "display_name",
            "level",
            "average_score",
            "total_ratings",
            "completed_transactions",
            "success_rate",
            "updated_at",
        )
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.user.get_display_name()


class CryptoVolumeSerializer(serializers.Serializer):
    cryptocurrency = serializers.CharField()
    asset_volume = serializers.DecimalField(max_digits=30, decimal_places=8)
    fiat_volume = serializers.DecimalField(max_digits=18, decimal_places=2)
    count = serializers.IntegerField()


class UserStatsSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    reputation = UserReputationSerializer()
    purchases = serializers.IntegerField()
    sales = serializers.IntegerField()
    total_trades = serializers.IntegerField()
    volume_by_crypto = CryptoVolumeSerializer(many=True)
    total_fiat_volume = serializers.DecimalField(max_digits=18, decimal_places=2)
    completion_rate = serializers.DecimalField(max_digits=5, decimal_places=4)
    badges = serializers.ListField(child=serializers.CharField())


class TopTraderSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    display_name = serializers.CharField(allow_null=True)
    level = serializers.CharField()
    average_score = serializers.DecimalField(max_digits=4, decimal_places=2)
    total_ratings = serializers.IntegerField()
    completed_transactions = serializers.IntegerField()
    success_rate = serializers.DecimalField(max_digits=5, decimal_places=4)
    total_volume = serializers.DecimalField(max_digits=18, decimal_places=2)
