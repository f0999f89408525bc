from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Restaurant(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='restaurants',
    )

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    cuisine_type = models.CharField(max_length=100, blank=True)

    # Average price per person
    price = models.PositiveIntegerField(null=True, blank=True)
    price_range = models.CharField(max_length=20, blank=True)

    location = models.CharField(max_length=255, blank=True)
    contact = models.CharField(max_length=100, blank=True)
    features = models.JSONField(default=list, blank=True)
    menu_items = models.JSONField(default=list, blank=True)
    hours = models.CharField(max_length=100, blank=True)

    # Number of reservations accepted per date + time slot
    tables_per_slot = models.PositiveIntegerField(
        default=10,
        null=True,
        blank=True,
        validators=[MinValueValidator(1)],
    )
    # Legacy capacity field, only read when tables_per_slot is unset
    capacity = models.PositiveIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1)],
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    def is_owned_by(self, user) -> bool:
        return self.owner_id is not None and self.owner_id == getattr(user, 'pk', None)
