from django.urls import path

from . import views

urlpatterns = [
    path("users/<int:user_id>/", views.UserReputationView.as_view(), name="reputation-detail"),
    path("users/<int:user_id>/stats/", views.UserStatsView.as_view(), name="reputation-stats"),
    path("users/<int:user_id>/recalculate/", views.RecalculateReputationView.as_view(), name="reputation-recalculate"),
    path("top-traders/", views.TopTradersView.as_view(), name="reputation-top-traders"),
]
