# reservation/admin.py

import logging

from django.contrib import admin, messages
from django.utils.html import format_html
from rest_framework.exceptions import APIException

from reservation.services.reservation import ReservationService
from .models import Reservation

logger = logging.getLogger(__name__)


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    """
    Admin configuration for Reservation model.
    """
    list_display = (
        'id',
        'user',
        'restaurant',
        'date',
        'time',
        'party_size',
        'status_badge',
        'created_at'
    )
    list_filter = ('status', 'restaurant')
    search_fields = (
        'user__username',
        'user__email',
        'restaurant__name',
        'date',
    )
    ordering = ('date', 'time')
    readonly_fields = ('created_at', 'updated_at')
    list_select_related = ('user', 'restaurant')

    raw_id_fields = ('user', 'restaurant')

    fieldsets = (
        ('Tracking', {
            'fields': ('status',)
        }),
        ('Reservation Details', {
            'fields': ('user', 'restaurant', 'date', 'time', 'party_size')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def status_badge(self, obj):
        """
        Display status as colored badge.
        """
        colors = {
            'pending': '#f0ad4e',
            'confirmed': '#5cb85c',
            'cancelled': '#d9534f',
            'completed': '#5bc0de',
        }
        color = colors.get(obj.status, '#777')
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px; font-size: 11px;">{}</span>',
            color,
            obj.get_status_display()
        )
    status_badge.short_description = 'Status'

    # Admin actions
    actions = ['mark_as_confirmed', 'mark_as_cancelled', 'mark_as_completed']

    def _transition(self, request, queryset, status, label):
        """
        Apply a status to every selected reservation the state machine
        allows it for. Goes through ReservationService so connected clients
        get the same events as from the API.
        """
        service = ReservationService()
        count = 0
        skipped = 0
        for reservation in queryset:
            if not reservation.can_transition_to(status):
                skipped += 1
                continue
            try:
                if status == Reservation.Status.CANCELLED:
                    service.cancel_reservation(request.user, reservation.pk)
                else:
                    service.update_status(request.user, reservation.pk, status)
            except APIException as exc:
                logger.warning(f"Admin could not mark reservation {reservation.pk} as {label}: {exc}")
                skipped += 1
                continue
            count += 1

        self.message_user(request, f'{count} reservation(s) marked as {label}.')
        if skipped:
            self.message_user(
                request, f'{skipped} reservation(s) skipped.', level=messages.WARNING
            )

    @admin.action(description='Mark selected reservations as confirmed')
    def mark_as_confirmed(self, request, queryset):
        self._transition(request, queryset, Reservation.Status.CONFIRMED, 'confirmed')

    @admin.action(description='Mark selected reservations as cancelled')
    def mark_as_cancelled(self, request, queryset):
        self._transition(request, queryset, Reservation.Status.CANCELLED, 'cancelled')

    @admin.action(description='Mark selected reservations as completed')
    def mark_as_completed(self, request, queryset):
        self._transition(request, queryset, Reservation.Status.COMPLETED, 'completed')
