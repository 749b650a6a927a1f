from rest_framework_simplejwt.views import TokenRefreshView
from django.urls import path


from . import views as my_views


urlpatterns = [
    path('token/', my_views.TraderTokenObtainPairView.as_view(), name='token-obtain-pair'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),
    path('users/me/', my_views.TraderProfileRetrieveUpdateAPIView.as_view(), name='profile-retrieve-update'),
]
