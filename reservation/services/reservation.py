# reservation/services/reservation.py

import enum
import logging
from contextlib import contextmanager
from typing import FrozenSet, Iterable, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import QuerySet
from rest_framework.exceptions import NotFound

from config.exceptions import (
    Forbidden,
    SlotConflict,
    SlotFull,
    ValidationFailed,
    parse_id,
)
from notifications.gateway import NotificationGateway, notification_gateway
from reservation.models import Reservation
from reservation.serializers import ReservationSerializer
from reservation.services.capacity import CapacityService
from restaurant.models import Restaurant
from users.models import CustomUser

logger = logging.getLogger(__name__)


class Relationship(enum.Enum):
    SELF = "self"
    RESTAURANT_OWNER = "restaurant-owner"
    ADMIN = "admin"
    NONE = "none"


class ReservationService:
    """
    Create, list, move, cancel and re-status reservations.

    Capacity is checked with a count followed by an insert. Unless
    RESERVATION_SLOT_LOCKING is enabled the two steps are not atomic, so
    concurrent bookings of the last seat in a slot can both succeed.
    """

    def __init__(self, notifier: Optional[NotificationGateway] = None):
        self.notifier = notifier or notification_gateway

    # Helpers

    @staticmethod
    def resolve_relationships(
        actor: Optional[CustomUser], reservation: Reservation
    ) -> FrozenSet[Relationship]:
        """
        Every relationship the actor has to the reservation, or {NONE}.
        """
        if actor is None or not getattr(actor, "is_authenticated", False):
            return frozenset({Relationship.NONE})

        found = set()
        if reservation.user_id == actor.pk:
            found.add(Relationship.SELF)

        restaurant = reservation.restaurant
        if restaurant is not None and restaurant.is_owned_by(actor):
            found.add(Relationship.RESTAURANT_OWNER)

        if getattr(actor, "is_admin", False):
            found.add(Relationship.ADMIN)

        return frozenset(found) or frozenset({Relationship.NONE})

    @classmethod
    def _authorize(
        cls,
        actor: CustomUser,
        reservation: Reservation,
        allowed: Iterable[Relationship],
        message: str,
    ) -> None:
        if not cls.resolve_relationships(actor, reservation) & set(allowed):
            raise Forbidden(message)

    @staticmethod
    def _parse_party_size(value) -> int:
        # No upper bound: any positive integer is accepted
        if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
            raise ValidationFailed("Party size must be a positive integer")
        try:
            party_size = int(value)
        except (TypeError, ValueError):
            raise ValidationFailed("Party size must be a positive integer")
        if party_size < 1:
            raise ValidationFailed("Party size must be a positive integer")
        return party_size

    @staticmethod
    def _get_reservation(reservation_id) -> Reservation:
        pk = parse_id(reservation_id, "Invalid reservation id")
        reservation = (
            Reservation.objects.select_related("restaurant", "user")
            .filter(pk=pk)
            .first()
        )
        if reservation is None:
            raise NotFound("Reservation not found")
        return reservation

    @staticmethod
    @contextmanager
    def _slot_scope(restaurant: Restaurant):
        """
        Scope of a capacity check and the write that depends on it.

        With RESERVATION_SLOT_LOCKING the restaurant row stays locked until
        the write commits; otherwise nothing is held.
        """
        if not getattr(settings, "RESERVATION_SLOT_LOCKING", False):
            yield restaurant
            return

        with transaction.atomic():
            yield Restaurant.objects.select_for_update().get(pk=restaurant.pk)

    @staticmethod
    def serialize(reservation: Reservation) -> dict:
        return ReservationSerializer(reservation).data

    # Queries

    @staticmethod
    def _ordered(queryset: QuerySet) -> QuerySet:
        return queryset.select_related("user", "restaurant").order_by("date", "time", "id")

    def list_for_user(self, user: CustomUser) -> QuerySet:
        return self._ordered(Reservation.objects.filter(user=user))

    def list_for_owner(self, owner: CustomUser) -> QuerySet:
        return self._ordered(Reservation.objects.filter(restaurant__owner=owner))

    def list_all(self) -> QuerySet:
        return self._ordered(Reservation.objects.all())

    # Commands

    def create_reservation(
        self,
        user: CustomUser,
        restaurant_id,
        date,
        time,
        party_size,
    ) -> Reservation:
        """
        Book a slot for ``user``.

        Raises ValidationFailed, NotFound, SlotConflict (same user, same
        slot) or SlotFull. Publishes ``reservationCreated`` on success.
        """
        if not restaurant_id or not date or not time or not party_size:
            raise ValidationFailed("Missing reservation fields")

        restaurant_pk = parse_id(restaurant_id, "Invalid restaurant id")
        party_size = self._parse_party_size(party_size)
        date, time = str(date), str(time)

        restaurant = Restaurant.objects.filter(pk=restaurant_pk).first()
        if restaurant is None:
            raise NotFound("Restaurant not found")

        with self._slot_scope(restaurant) as restaurant:
            duplicate = (
                Reservation.objects.filter(
                    user=user, restaurant=restaurant, date=date, time=time
                )
                .exclude(status=Reservation.Status.CANCELLED)
                .exists()
            )
            if duplicate:
                raise SlotConflict()

            capacity = CapacityService.resolve_capacity(restaurant)
            booked = CapacityService.occupancy(restaurant.pk, date, time)
            if booked >= capacity:
                logger.info(
                    f"Slot full for restaurant {restaurant.pk} at {date} {time} "
                    f"({booked}/{capacity})"
                )
                raise SlotFull()

            reservation = Reservation.objects.create(
                user=user,
                restaurant=restaurant,
                date=date,
                time=time,
                party_size=party_size,
                status=Reservation.Status.PENDING,
            )

        logger.info(
            f"Reservation {reservation.pk} created by user {user.pk} for restaurant "
            f"{restaurant.pk} at {date} {time}"
        )

        snapshot = self.serialize(reservation)
        self.notifier.broadcast("reservationCreated", snapshot, restaurant_id=restaurant.pk)

        return reservation

    def cancel_reservation(self, actor: CustomUser, reservation_id) -> Reservation:
        """
        Cancel on behalf of the reservation's user, the restaurant's owner or
        an admin. Cancelled and completed reservations cannot be cancelled.
        """
        reservation = self._get_reservation(reservation_id)
        self._authorize(
            actor,
            reservation,
            {Relationship.SELF, Relationship.RESTAURANT_OWNER, Relationship.ADMIN},
            "Not authorized to cancel this reservation",
        )

        if not reservation.can_transition_to(Reservation.Status.CANCELLED):
            raise ValidationFailed(
                f"Cannot cancel reservation with status '{reservation.status}'."
            )

        reservation.cancel()
        logger.info(f"Reservation {reservation.pk} cancelled by user {actor.pk}")

        self.notifier.broadcast(
            "reservationCancelled",
            {"reservationId": reservation.pk, "restaurant": reservation.restaurant_id},
            restaurant_id=reservation.restaurant_id,
            scoped_payload=self.serialize(reservation),
        )

        return reservation

    def update_reservation(
        self,
        actor: CustomUser,
        reservation_id,
        date=None,
        time=None,
        party_size=None,
    ) -> Reservation:
        """
        Move a reservation and/or change its party size.

        The target slot is checked against capacity without counting the
        reservation itself. On SlotFull nothing is changed.
        """
        reservation = self._get_reservation(reservation_id)
        self._authorize(
            actor,
            reservation,
            {Relationship.SELF, Relationship.ADMIN},
            "Not authorized to update this reservation",
        )

        if party_size not in (None, ""):
            party_size = self._parse_party_size(party_size)
        else:
            party_size = None

        new_date = str(date) if date else reservation.date
        new_time = str(time) if time else reservation.time

        restaurant = Restaurant.objects.filter(pk=reservation.restaurant_id).first()
        if restaurant is None:
            raise NotFound("Restaurant not found")

        # Only capacity is checked here. The user may already hold the
        # target slot; no duplicate check is made on a move.
        with self._slot_scope(restaurant) as restaurant:
            capacity = CapacityService.resolve_capacity(restaurant)
            booked = CapacityService.occupancy(
                restaurant.pk,
                new_date,
                new_time,
                exclude_reservation_id=reservation.pk,
            )
            if booked >= capacity:
                logger.info(
                    f"Reservation {reservation.pk} cannot move to {new_date} {new_time}: "
                    f"slot full ({booked}/{capacity})"
                )
                raise SlotFull("Requested slot is fully booked")

            reservation.date = new_date
            reservation.time = new_time
            if party_size is not None:
                reservation.party_size = party_size
            reservation.save(update_fields=["date", "time", "party_size", "updated_at"])

        logger.info(f"Reservation {reservation.pk} updated by user {actor.pk}")

        snapshot = self.serialize(reservation)
        self.notifier.broadcast(
            "reservationUpdated", snapshot, restaurant_id=reservation.restaurant_id
        )

        return reservation

    def update_status(self, actor: CustomUser, reservation_id, status) -> Reservation:
        """
        Set any of the four statuses on behalf of the restaurant's owner or an
        admin. An unknown status is rejected before authorization is checked.
        """
        reservation = self._get_reservation(reservation_id)

        if status not in Reservation.Status.values:
            raise ValidationFailed("Invalid status")

        self._authorize(
            actor,
            reservation,
            {Relationship.RESTAURANT_OWNER, Relationship.ADMIN},
            "Not authorized to update status",
        )

        reservation.status = status
        reservation.save(update_fields=["status", "updated_at"])
        logger.info(
            f"Reservation {reservation.pk} status set to {status} by user {actor.pk}"
        )

        self.notifier.broadcast(
            "reservationStatusChanged",
            {"reservationId": reservation.pk, "status": status},
            restaurant_id=reservation.restaurant_id,
            scoped_payload={
                "reservationId": reservation.pk,
                "status": status,
                "reservation": self.serialize(reservation),
            },
        )

        return reservation
