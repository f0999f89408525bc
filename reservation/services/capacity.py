# reservation/services/capacity.py

from numbers import Number
from typing import Optional, TypedDict

from django.conf import settings
from rest_framework.exceptions import NotFound

from reservation.models import Reservation
from restaurant.models import Restaurant


class Availability(TypedDict):
    capacity: int
    booked: int
    available: int


class CapacityService:
    """
    Per-slot capacity and occupancy. Read-only against restaurants and
    reservations.
    """

    @staticmethod
    def _is_number(value) -> bool:
        return isinstance(value, Number) and not isinstance(value, bool)

    @classmethod
    def resolve_capacity(cls, restaurant: Restaurant) -> int:
        """
        tables_per_slot, then the legacy capacity field, then the project
        default (10).
        """
        tables_per_slot = getattr(restaurant, "tables_per_slot", None)
        if cls._is_number(tables_per_slot):
            return int(tables_per_slot)

        legacy_capacity = getattr(restaurant, "capacity", None)
        if cls._is_number(legacy_capacity):
            return int(legacy_capacity)

        return getattr(settings, "RESERVATION_DEFAULT_CAPACITY", 10)

    @staticmethod
    def occupancy(
        restaurant_id: int,
        date: str,
        time: str,
        exclude_reservation_id: Optional[int] = None,
    ) -> int:
        """
        Count non-cancelled reservations holding the slot. Date and time are
        compared as exact strings.
        """
        query = Reservation.objects.filter(
            restaurant_id=restaurant_id,
            date=date,
            time=time,
        ).exclude(status=Reservation.Status.CANCELLED)

        # Exclude the reservation being moved so it is not counted against itself
        if exclude_reservation_id is not None:
            query = query.exclude(pk=exclude_reservation_id)

        return query.count()

    @classmethod
    def availability(cls, restaurant_id: int, date: str, time: str) -> Availability:
        restaurant = Restaurant.objects.filter(pk=restaurant_id).first()
        if restaurant is None:
            raise NotFound("Restaurant not found")

        capacity = cls.resolve_capacity(restaurant)
        booked = cls.occupancy(restaurant.pk, date, time)

        return {
            "capacity": capacity,
            "booked": booked,
            "available": max(0, capacity - booked),
        }
