from django.contrib import admin
from .models import Trader


@admin.register(Trader)
class TraderAdmin(admin.ModelAdmin):
    list_display = ('id', 'email', 'display_name', 'is_active', 'is_staff', 'date_joined')
    list_filter = ('is_active', 'is_staff')
    search_fields = ('email', 'display_name', 'first_name', 'last_name')
