from django.contrib import admin
from .models import Payment, WebhookEvent


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('id', 'transaction', 'external_payment_id', 'amount', 'provider', 'status', 'paid_at', 'created_at')
    list_filter = ('provider', 'status')
    search_fields = ('external_payment_id', 'transaction__buyer__email')
    readonly_fields = ('external_payment_id', 'qr_code', 'qr_code_base64', 'paid_at', 'created_at', 'updated_at')


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = ('provider', 'event_id', 'received_at')
    list_filter = ('provider',)
    search_fields = ('event_id',)
