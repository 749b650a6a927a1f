from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed

from .models import Trader


class TraderTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Serializer for login and token generation.

    Fields:
        - email (required)
        - password (required)
    Adds the trader's email and display name as token claims.
    """
    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['email'] = user.email
        token['display_name'] = user.get_display_name()
        return token

    def validate(self, attrs):
        user = Trader.objects.filter(email=attrs.get('email')).first()
        if user is not None and not user.is_active:
            raise AuthenticationFailed("This account is deactivated.")
        return super().validate(attrs)


class TraderProfileSerializer(serializers.ModelSerializer):
    """
    Serializer for trader profile retrieval and updates.

    Fields:
        read-only: id, email, date_joined
        - first_name, last_name, display_name, avatar_url, tax_document
    """
    class Meta:
        model = Trader
        fields = ('id', 'email', 'first_name', 'last_name', 'display_name', 'avatar_url', 'tax_document', 'date_joined')
        read_only_fields = ('id', 'email', 'date_joined')
