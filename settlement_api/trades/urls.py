from django.urls import path

from . import views

urlpatterns = [
    path("", views.TradeListCreateView.as_view(), name="trade-list"),
    path("notifications/", views.NotificationListView.as_view(), name="notification-list"),
    path("<int:pk>/", views.TradeDetailView.as_view(), name="trade-detail"),
    path("<int:pk>/accept/", views.TradeAcceptView.as_view(), name="trade-accept"),
    path("<int:pk>/dispute/", views.TradeDisputeView.as_view(), name="trade-dispute"),
    path("<int:pk>/complete/", views.TradeCompleteView.as_view(), name="trade-complete"),
    path("<int:pk>/rate/", views.TradeRateView.as_view(), name="trade-rate"),
]
