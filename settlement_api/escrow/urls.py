from django.urls import path

from . import views

urlpatterns = [
    path("<int:transaction_id>/", views.EscrowStatusView.as_view(), name="escrow-status"),
    path("<int:transaction_id>/lock/", views.EscrowLockView.as_view(), name="escrow-lock"),
    path("<int:transaction_id>/release/", views.EscrowReleaseFundsView.as_view(), name="escrow-release"),
    path("<int:transaction_id>/refund/", views.EscrowRefundView.as_view(), name="escrow-refund"),
]
