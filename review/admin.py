from django.contrib import admin

from .models import Review


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    """
    Admin configuration for Review model.
    """
    list_display = ('id', 'restaurant', 'user', 'rating', 'created_at')
    list_filter = ('rating', 'restaurant')
    search_fields = ('restaurant__name', 'user__username', 'comment')
    ordering = ('-created_at',)
    list_select_related = ('restaurant', 'user')
    readonly_fields = ('created_at', 'updated_at')
