from django.urls import path

from . import views

urlpatterns = [
    path("", views.CreatePaymentView.as_view(), name="payment-create"),
    path("<str:external_id>/status/", views.PaymentStatusView.as_view(), name="payment-status"),
    path("webhook/", views.PaymentWebhookView.as_view(), name="payment-webhook"),
]
