# restaurant/admin.py

from django.contrib import admin

from reservation.models import Reservation
from .models import Restaurant


class ReservationInline(admin.TabularInline):
    """
    Read-only list of reservations within the restaurant admin page.
    """
    model = Reservation
    extra = 0
    fields = ('user', 'date', 'time', 'party_size', 'status')
    readonly_fields = fields
    can_delete = False
    show_change_link = True


@admin.register(Restaurant)
class RestaurantAdmin(admin.ModelAdmin):
    """
    Admin configuration for Restaurant model.
    """
    list_display = ('name', 'owner', 'cuisine_type', 'location', 'tables_per_slot', 'capacity')
    list_filter = ('cuisine_type', 'price_range')
    search_fields = ('name', 'location', 'owner__username')
    ordering = ('name',)
    raw_id_fields = ('owner',)

    inlines = [ReservationInline]

    fieldsets = (
        (None, {
            'fields': ('name', 'owner', 'description', 'cuisine_type', 'location', 'contact')
        }),
        ('Pricing', {
            'fields': ('price', 'price_range')
        }),
        ('Details', {
            'fields': ('features', 'menu_items', 'hours')
        }),
        ('Capacity', {
            'fields': ('tables_per_slot', 'capacity')
        }),
    )
