from rest_framework import generics, permissions
from rest_framework_simplejwt import views as jwt_views, authentication
from drf_yasg.utils import swagger_auto_schema

from . import serializers as my_serializers
from .throttles import LoginRateThrottle


class TraderTokenObtainPairView(jwt_views.TokenObtainPairView):
    serializer_class = my_serializers.TraderTokenObtainPairSerializer
    throttle_classes = [LoginRateThrottle]


class TraderProfileRetrieveUpdateAPIView(generics.RetrieveUpdateAPIView):
    """
    Allows authenticated traders to retrieve and update their own profile.

    The display name shown in rankings and the tax document sent to the
    payment gateway are edited here.
    """
    serializer_class = my_serializers.TraderProfileSerializer
    authentication_classes = [authentication.JWTAuthentication]
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(operation_summary="Retrieve trader profile")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @swagger_auto_schema(operation_summary="Update trader profile")
    def put(self, request, *args, **kwargs):
        return super().put(request, *args, **kwargs)

    @swagger_auto_schema(operation_summary="Partially update trader profile")
    def patch(self, request, *args, **kwargs):
        return super().patch(request, *args, **kwargs)

    def get_object(self):
        return self.request.user
