from django.contrib import admin
from .models import UserReputation


@admin.register(UserReputation)
class UserReputationAdmin(admin.ModelAdmin):
    list_display = ('user', 'level', 'average_score', 'total_ratings', 'completed_transactions', 'success_rate', 'updated_at')
    list_filter = ('level',)
    search_fields = ('user__email', 'user__display_name')
    readonly_fields = ('total_ratings', 'average_score', 'completed_transactions', 'success_rate', 'level')
