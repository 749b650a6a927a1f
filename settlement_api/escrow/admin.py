from django.contrib import admin
from .models import Escrow


@admin.register(Escrow)
class EscrowAdmin(admin.ModelAdmin):
    list_display = ('id', 'transaction', 'status', 'locked_at', 'released_at', 'refunded_at')
    list_filter = ('status',)
    search_fields = ('transaction__buyer__email', 'transaction__seller__email')
    readonly_fields = ('status', 'locked_at', 'released_at', 'refunded_at', 'refund_reason')
