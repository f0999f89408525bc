# reservation/models.py

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Reservation(models.Model):
    """
    A party booked into one (restaurant, date, time) slot.

    ``date`` and ``time`` are stored exactly as the client sent them; two
    reservations share a slot only when both strings are equal.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CONFIRMED = "confirmed", "Confirmed"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    TRANSITIONS = {
        Status.PENDING: {Status.CONFIRMED, Status.COMPLETED, Status.CANCELLED},
        Status.CONFIRMED: {Status.COMPLETED, Status.CANCELLED},
        Status.COMPLETED: set(),
        Status.CANCELLED: set(),
    }

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="reservations"
    )
    restaurant = models.ForeignKey(
        "restaurant.Restaurant", on_delete=models.CASCADE, related_name="reservations"
    )

    date = models.CharField(max_length=32, help_text="Calendar date, e.g. 2025-01-01")
    time = models.CharField(max_length=32, help_text="Slot label, e.g. 19:00")

    party_size = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    status = models.CharField(
        max_length=15, choices=Status.choices, default=Status.PENDING
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["date", "time"]
        indexes = [
            models.Index(
                fields=["restaurant", "date", "time", "status"],
                name="reservation_slot_idx",
            ),
            models.Index(fields=["user", "status"], name="reservation_user_idx"),
        ]

    def __str__(self):
        return f"{self.user} - {self.restaurant_id} {self.date} {self.time} ({self.status})"

    @property
    def is_active(self) -> bool:
        """Active reservations occupy their slot."""
        return self.status != self.Status.CANCELLED

    def can_transition_to(self, status: str) -> bool:
        return status in self.TRANSITIONS.get(self.status, set())

    def cancel(self):
        """Handle reservation cancellation."""
        if not self.can_transition_to(self.Status.CANCELLED):
            raise ValueError(f"Cannot cancel reservation with status '{self.status}'.")
        self.status = self.Status.CANCELLED
        self.save(update_fields=["status", "updated_at"])
