from django.contrib import admin
from .models import Transaction, Rating, Notification


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ('id', 'buyer', 'seller', 'cryptocurrency', 'fiat_amount', 'asset_amount', 'status', 'created_at')
    list_filter = ('status', 'cryptocurrency')
    search_fields = ('buyer__email', 'seller__email')
    readonly_fields = ('status', 'cancelled_at', 'completed_at')


@admin.register(Rating)
class RatingAdmin(admin.ModelAdmin):
    list_display = ('id', 'transaction', 'rater', 'rated_user', 'score', 'created_at')
    list_filter = ('score',)
    search_fields = ('rater__email', 'rated_user__email')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'transaction', 'kind', 'is_read', 'created_at')
    list_filter = ('kind', 'is_read')
    search_fields = ('user__email',)
