from unittest import mock

from django.contrib import admin
from django.test import RequestFactory, TestCase, override_settings
from rest_framework.exceptions import NotFound

from config.exceptions import Forbidden, SlotConflict, SlotFull, ValidationFailed
from notifications.gateway import notification_gateway
from notifications.testing import RecordingLayer, recording_gateway
from reservation.admin import ReservationAdmin
from reservation.models import Reservation
from reservation.services.capacity import CapacityService
from reservation.services.reservation import ReservationService, Relationship
from restaurant.models import Restaurant
from users.models import CustomUser


class ReservationModelTest(TestCase):
    """Unit tests for Reservation model"""

    fixtures = ['users.json', 'restaurant.json']

    def setUp(self):
        self.user = CustomUser.objects.get(username='alice')
        self.restaurant = Restaurant.objects.get(pk=1)

    def _reservation(self, status=Reservation.Status.PENDING):
        return Reservation.objects.create(
            user=self.user,
            restaurant=self.restaurant,
            date='2025-01-01',
            time='19:00',
            party_size=2,
            status=status,
        )

    def test_reservation_created_pending(self):
        reservation = self._reservation()

        self.assertIsNotNone(reservation.id)
        self.assertEqual(reservation.status, Reservation.Status.PENDING)
        self.assertTrue(reservation.is_active)

    def test_transitions_from_pending(self):
        reservation = self._reservation()

        self.assertTrue(reservation.can_transition_to(Reservation.Status.CONFIRMED))
        self.assertTrue(reservation.can_transition_to(Reservation.Status.COMPLETED))
        self.assertTrue(reservation.can_transition_to(Reservation.Status.CANCELLED))

    def test_transitions_from_confirmed(self):
        reservation = self._reservation(Reservation.Status.CONFIRMED)

        self.assertFalse(reservation.can_transition_to(Reservation.Status.PENDING))
        self.assertTrue(reservation.can_transition_to(Reservation.Status.CANCELLED))
        self.assertTrue(reservation.can_transition_to(Reservation.Status.COMPLETED))

    def test_terminal_statuses(self):
        for status in (Reservation.Status.CANCELLED, Reservation.Status.COMPLETED):
            reservation = self._reservation(status)
            for target in Reservation.Status.values:
                self.assertFalse(reservation.can_transition_to(target))

    def test_cancel_helper(self):
        reservation = self._reservation(Reservation.Status.CONFIRMED)

        reservation.cancel()
        reservation.refresh_from_db()

        self.assertEqual(reservation.status, Reservation.Status.CANCELLED)
        self.assertFalse(reservation.is_active)

    def test_cancel_helper_refuses_terminal_reservations(self):
        for status in (Reservation.Status.CANCELLED, Reservation.Status.COMPLETED):
            reservation = self._reservation(status)

            with self.assertRaises(ValueError):
                reservation.cancel()

            reservation.refresh_from_db()
            self.assertEqual(reservation.status, status)


class CapacityServiceTest(TestCase):
    """Unit tests for CapacityService"""

    fixtures = ['users.json', 'restaurant.json']

    def setUp(self):
        self.alice = CustomUser.objects.get(username='alice')
        self.bob = CustomUser.objects.get(username='bob')
        self.restaurant = Restaurant.objects.get(pk=1)

    def test_resolve_capacity_uses_tables_per_slot(self):
        self.assertEqual(CapacityService.resolve_capacity(self.restaurant), 2)

    def test_resolve_capacity_falls_back_to_legacy_capacity(self):
        restaurant = Restaurant.objects.get(pk=2)

        self.assertIsNone(restaurant.tables_per_slot)
        self.assertEqual(CapacityService.resolve_capacity(restaurant), 3)

    def test_resolve_capacity_defaults_to_ten(self):
        restaurant = Restaurant.objects.get(pk=3)

        self.assertEqual(CapacityService.resolve_capacity(restaurant), 10)

    def test_resolve_capacity_prefers_tables_per_slot_over_legacy(self):
        restaurant = Restaurant(tables_per_slot=4, capacity=20)

        self.assertEqual(CapacityService.resolve_capacity(restaurant), 4)

    def test_new_restaurant_defaults_to_ten_tables(self):
        restaurant = Restaurant.objects.create(name='Fresh')

        self.assertEqual(restaurant.tables_per_slot, 10)
        self.assertEqual(CapacityService.resolve_capacity(restaurant), 10)

    def test_occupancy_ignores_cancelled(self):
        Reservation.objects.create(
            user=self.alice, restaurant=self.restaurant, date='2025-01-01',
            time='19:00', party_size=2,
        )
        Reservation.objects.create(
            user=self.bob, restaurant=self.restaurant, date='2025-01-01',
            time='19:00', party_size=2, status=Reservation.Status.CANCELLED,
        )

        self.assertEqual(
            CapacityService.occupancy(self.restaurant.pk, '2025-01-01', '19:00'), 1
        )

    def test_occupancy_counts_confirmed_and_completed(self):
        for user, status in (
            (self.alice, Reservation.Status.CONFIRMED),
            (self.bob, Reservation.Status.COMPLETED),
        ):
            Reservation.objects.create(
                user=user, restaurant=self.restaurant, date='2025-01-01',
                time='19:00', party_size=2, status=status,
            )

        self.assertEqual(
            CapacityService.occupancy(self.restaurant.pk, '2025-01-01', '19:00'), 2
        )

    def test_occupancy_uses_exact_string_match(self):
        Reservation.objects.create(
            user=self.alice, restaurant=self.restaurant, date='2025-01-01',
            time='19:00', party_size=2,
        )

        self.assertEqual(
            CapacityService.occupancy(self.restaurant.pk, '2025-01-01', '19:00:00'), 0
        )
        self.assertEqual(
            CapacityService.occupancy(self.restaurant.pk, '2025-1-1', '19:00'), 0
        )

    def test_occupancy_excludes_reservation(self):
        reservation = Reservation.objects.create(
            user=self.alice, restaurant=self.restaurant, date='2025-01-01',
            time='19:00', party_size=2,
        )

        self.assertEqual(
            CapacityService.occupancy(
                self.restaurant.pk, '2025-01-01', '19:00',
                exclude_reservation_id=reservation.pk,
            ),
            0,
        )

    def test_availability(self):
        Reservation.objects.create(
            user=self.alice, restaurant=self.restaurant, date='2025-01-01',
            time='19:00', party_size=2,
        )

        result = CapacityService.availability(self.restaurant.pk, '2025-01-01', '19:00')

        self.assertEqual(result, {'capacity': 2, 'booked': 1, 'available': 1})

    def test_availability_never_negative(self):
        # Overbooked slot, e.g. after the restaurant lowered its capacity
        for user in (self.alice, self.bob, CustomUser.objects.get(username='carol')):
            Reservation.objects.create(
                user=user, restaurant=self.restaurant, date='2025-01-01',
                time='19:00', party_size=2,
            )

        result = CapacityService.availability(self.restaurant.pk, '2025-01-01', '19:00')

        self.assertEqual(result['booked'], 3)
        self.assertEqual(result['available'], 0)

    def test_availability_unknown_restaurant(self):
        with self.assertRaises(NotFound):
            CapacityService.availability(999, '2025-01-01', '19:00')


class ReservationServiceTest(TestCase):
    """Unit tests for ReservationService"""

    fixtures = ['users.json', 'restaurant.json']

    def setUp(self):
        self.alice = CustomUser.objects.get(username='alice')
        self.bob = CustomUser.objects.get(username='bob')
        self.carol = CustomUser.objects.get(username='carol')
        self.owner = CustomUser.objects.get(username='olivia')
        self.other_owner = CustomUser.objects.get(username='oscar')
        self.admin = CustomUser.objects.get(username='adam')
        self.restaurant = Restaurant.objects.get(pk=1)

        self.gateway, self.layer = recording_gateway()
        self.service = ReservationService(notifier=self.gateway)

    def _book(self, user, date='2025-01-01', time='19:00', party_size=2, restaurant=None):
        return self.service.create_reservation(
            user=user,
            restaurant_id=(restaurant or self.restaurant).pk,
            date=date,
            time=time,
            party_size=party_size,
        )

    # Create

    def test_create_reservation_success(self):
        reservation = self._book(self.alice)

        self.assertEqual(reservation.status, Reservation.Status.PENDING)
        self.assertEqual(reservation.user, self.alice)
        self.assertEqual(reservation.restaurant, self.restaurant)
        self.assertEqual(reservation.party_size, 2)

    def test_create_publishes_globally_and_to_restaurant_room(self):
        reservation = self._book(self.alice)

        events = self.layer.events()
        self.assertEqual([(group, event) for group, event, _ in events], [
            ('broadcast', 'reservationCreated'),
            ('restaurant_1', 'reservationCreated'),
        ])
        payload = events[0][2]
        self.assertEqual(payload['id'], reservation.pk)
        self.assertEqual(payload['user']['username'], 'alice')
        self.assertEqual(payload['restaurant']['name'], 'Trattoria Roma')
        self.assertEqual(payload['partySize'], 2)

    def test_create_missing_fields(self):
        for kwargs in (
            {'restaurant_id': None, 'date': '2025-01-01', 'time': '19:00', 'party_size': 2},
            {'restaurant_id': 1, 'date': '', 'time': '19:00', 'party_size': 2},
            {'restaurant_id': 1, 'date': '2025-01-01', 'time': None, 'party_size': 2},
            {'restaurant_id': 1, 'date': '2025-01-01', 'time': '19:00', 'party_size': None},
        ):
            with self.assertRaises(ValidationFailed) as ctx:
                self.service.create_reservation(user=self.alice, **kwargs)
            self.assertEqual(str(ctx.exception.detail), 'Missing reservation fields')

        self.assertEqual(Reservation.objects.count(), 0)
        self.assertEqual(self.layer.sent, [])

    def test_create_invalid_restaurant_id(self):
        with self.assertRaises(ValidationFailed) as ctx:
            self.service.create_reservation(
                user=self.alice, restaurant_id='not-an-id',
                date='2025-01-01', time='19:00', party_size=2,
            )
        self.assertEqual(str(ctx.exception.detail), 'Invalid restaurant id')

    def test_create_invalid_party_size(self):
        for party_size in (-1, 'abc', 2.5):
            with self.assertRaises(ValidationFailed):
                self._book(self.alice, party_size=party_size)

    def test_create_large_party_accepted(self):
        reservation = self._book(self.alice, party_size=250)

        self.assertEqual(reservation.party_size, 250)

    def test_create_unknown_restaurant(self):
        with self.assertRaises(NotFound):
            self.service.create_reservation(
                user=self.alice, restaurant_id=999,
                date='2025-01-01', time='19:00', party_size=2,
            )

    def test_create_duplicate_slot_for_same_user(self):
        self._book(self.alice)

        with self.assertRaises(SlotConflict):
            self._book(self.alice)

        self.assertEqual(Reservation.objects.filter(user=self.alice).count(), 1)

    def test_create_after_own_cancellation_allowed(self):
        first = self._book(self.alice)
        self.service.cancel_reservation(self.alice, first.pk)

        second = self._book(self.alice)

        self.assertNotEqual(first.pk, second.pk)

    def test_same_user_different_time_allowed(self):
        self._book(self.alice, time='19:00')
        reservation = self._book(self.alice, time='20:00')

        self.assertEqual(reservation.time, '20:00')

    def test_capacity_reached(self):
        """N bookings fit a slot of capacity N, the next one is rejected"""
        self._book(self.alice)
        self._book(self.bob)

        with self.assertRaises(SlotFull):
            self._book(self.carol)

        self.assertEqual(
            CapacityService.occupancy(self.restaurant.pk, '2025-01-01', '19:00'), 2
        )

    def test_capacity_uses_legacy_field(self):
        restaurant = Restaurant.objects.get(pk=2)
        for user in (self.alice, self.bob, self.carol):
            self._book(user, restaurant=restaurant)

        with self.assertRaises(SlotFull):
            self._book(self.owner, restaurant=restaurant)

    def test_booking_scenario(self):
        """
        Capacity 2: A and B book, C is turned away, A cancels, C books.
        """
        a = self._book(self.alice)
        self.assertEqual(CapacityService.availability(1, '2025-01-01', '19:00')['booked'], 1)

        self._book(self.bob)
        self.assertEqual(CapacityService.availability(1, '2025-01-01', '19:00')['booked'], 2)

        with self.assertRaises(SlotFull):
            self._book(self.carol)
        self.assertEqual(CapacityService.availability(1, '2025-01-01', '19:00')['booked'], 2)

        self.service.cancel_reservation(self.alice, a.pk)
        self._book(self.carol)

        availability = CapacityService.availability(1, '2025-01-01', '19:00')
        self.assertEqual(availability['booked'], 2)
        self.assertEqual(availability['available'], 0)

    @override_settings(RESERVATION_SLOT_LOCKING=True)
    def test_capacity_enforced_with_slot_locking(self):
        self._book(self.alice)
        self._book(self.bob)

        with self.assertRaises(SlotFull):
            self._book(self.carol)

        self.assertEqual(Reservation.objects.count(), 2)

    def test_create_succeeds_without_initialized_gateway(self):
        from notifications.gateway import NotificationGateway

        service = ReservationService(notifier=NotificationGateway())
        reservation = service.create_reservation(
            user=self.alice, restaurant_id=1, date='2025-01-01', time='19:00', party_size=2,
        )

        self.assertIsNotNone(reservation.pk)

    # Relationships

    def test_resolve_relationships(self):
        reservation = self._book(self.alice)

        self.assertEqual(
            ReservationService.resolve_relationships(self.alice, reservation),
            {Relationship.SELF},
        )
        self.assertEqual(
            ReservationService.resolve_relationships(self.owner, reservation),
            {Relationship.RESTAURANT_OWNER},
        )
        self.assertEqual(
            ReservationService.resolve_relationships(self.admin, reservation),
            {Relationship.ADMIN},
        )
        self.assertEqual(
            ReservationService.resolve_relationships(self.bob, reservation),
            {Relationship.NONE},
        )
        self.assertEqual(
            ReservationService.resolve_relationships(None, reservation),
            {Relationship.NONE},
        )

    def test_owner_booking_own_restaurant_has_both_relationships(self):
        reservation = self._book(self.owner)

        self.assertEqual(
            ReservationService.resolve_relationships(self.owner, reservation),
            {Relationship.SELF, Relationship.RESTAURANT_OWNER},
        )

    # Listing

    def test_list_for_user_ordered_by_slot(self):
        self._book(self.alice, date='2025-01-02', time='18:00')
        self._book(self.alice, date='2025-01-01', time='20:00')
        self._book(self.alice, date='2025-01-01', time='19:00')
        self._book(self.bob)

        reservations = list(self.service.list_for_user(self.alice))

        self.assertEqual(
            [(r.date, r.time) for r in reservations],
            [('2025-01-01', '19:00'), ('2025-01-01', '20:00'), ('2025-01-02', '18:00')],
        )

    def test_list_for_owner(self):
        self._book(self.alice)
        self._book(self.bob, restaurant=Restaurant.objects.get(pk=2))
        self._book(self.carol, restaurant=Restaurant.objects.get(pk=3), date='2024-12-31')

        reservations = list(self.service.list_for_owner(self.owner))

        # Olivia owns restaurants 1 and 3
        self.assertEqual([r.restaurant_id for r in reservations], [3, 1])
        self.assertEqual(list(self.service.list_for_owner(self.alice)), [])

    def test_list_all(self):
        self._book(self.alice)
        self._book(self.bob, restaurant=Restaurant.objects.get(pk=2))

        self.assertEqual(self.service.list_all().count(), 2)

    # Cancel

    def test_cancel_by_user_owner_and_admin(self):
        for actor in (self.alice, self.owner, self.admin):
            reservation = self._book(self.alice)

            cancelled = self.service.cancel_reservation(actor, reservation.pk)

            self.assertEqual(cancelled.status, Reservation.Status.CANCELLED)

    def test_cancel_forbidden_for_other_actors(self):
        reservation = self._book(self.alice)

        for actor in (self.bob, self.other_owner):
            with self.assertRaises(Forbidden):
                self.service.cancel_reservation(actor, reservation.pk)

        reservation.refresh_from_db()
        self.assertEqual(reservation.status, Reservation.Status.PENDING)

    def test_cancel_publishes_summary_and_record(self):
        reservation = self._book(self.alice)
        self.layer.sent.clear()

        self.service.cancel_reservation(self.alice, reservation.pk)

        (global_event, room_event) = self.layer.events()
        self.assertEqual(global_event[0], 'broadcast')
        self.assertEqual(global_event[1], 'reservationCancelled')
        self.assertEqual(global_event[2], {'reservationId': reservation.pk, 'restaurant': 1})
        self.assertEqual(room_event[0], 'restaurant_1')
        self.assertEqual(room_event[2]['status'], 'cancelled')

    def test_cancel_missing_and_malformed(self):
        with self.assertRaises(NotFound):
            self.service.cancel_reservation(self.alice, 999)
        with self.assertRaises(ValidationFailed):
            self.service.cancel_reservation(self.alice, 'abc')

    def test_cancel_terminal_reservation_rejected(self):
        reservation = self._book(self.alice)
        self.service.update_status(self.owner, reservation.pk, 'completed')

        with self.assertRaises(ValidationFailed):
            self.service.cancel_reservation(self.alice, reservation.pk)

    # Update details

    def test_update_details(self):
        reservation = self._book(self.alice)

        updated = self.service.update_reservation(
            self.alice, reservation.pk, date='2025-01-02', time='20:00', party_size=6,
        )

        self.assertEqual((updated.date, updated.time, updated.party_size), ('2025-01-02', '20:00', 6))
        self.assertEqual(
            [(group, event) for group, event, _ in self.layer.events()][-2:],
            [('broadcast', 'reservationUpdated'), ('restaurant_1', 'reservationUpdated')],
        )

    def test_update_keeps_unsupplied_fields(self):
        reservation = self._book(self.alice, party_size=3)

        updated = self.service.update_reservation(self.alice, reservation.pk, time='21:00')

        self.assertEqual((updated.date, updated.time, updated.party_size), ('2025-01-01', '21:00', 3))

    def test_update_within_full_slot_allowed(self):
        """The reservation's own seat is not counted against it"""
        reservation = self._book(self.alice)
        self._book(self.bob)

        updated = self.service.update_reservation(self.alice, reservation.pk, party_size=4)

        self.assertEqual(updated.party_size, 4)

    def test_update_to_full_slot_rejected(self):
        self._book(self.alice, time='20:00')
        self._book(self.bob, time='20:00')
        reservation = self._book(self.carol, time='19:00')

        with self.assertRaises(SlotFull):
            self.service.update_reservation(self.carol, reservation.pk, time='20:00')

        reservation.refresh_from_db()
        self.assertEqual((reservation.date, reservation.time), ('2025-01-01', '19:00'))

    def test_update_onto_own_held_slot_is_not_a_duplicate(self):
        """Moving only checks capacity, not the one-per-user-per-slot rule"""
        self._book(self.alice, time='19:00')
        second = self._book(self.alice, time='20:00')

        moved = self.service.update_reservation(self.alice, second.pk, time='19:00')

        self.assertEqual(moved.time, '19:00')
        self.assertEqual(
            Reservation.objects.filter(
                user=self.alice, date='2025-01-01', time='19:00'
            ).count(),
            2,
        )

    def test_update_allowed_for_admin_only_besides_user(self):
        reservation = self._book(self.alice)

        self.service.update_reservation(self.admin, reservation.pk, party_size=5)

        for actor in (self.owner, self.bob):
            with self.assertRaises(Forbidden):
                self.service.update_reservation(actor, reservation.pk, party_size=6)

    # Update status

    def test_update_status_by_owner(self):
        reservation = self._book(self.alice)
        self.layer.sent.clear()

        updated = self.service.update_status(self.owner, reservation.pk, 'confirmed')

        self.assertEqual(updated.status, Reservation.Status.CONFIRMED)
        (global_event, room_event) = self.layer.events()
        self.assertEqual(global_event, (
            'broadcast', 'reservationStatusChanged',
            {'reservationId': reservation.pk, 'status': 'confirmed'},
        ))
        self.assertEqual(room_event[0], 'restaurant_1')
        self.assertEqual(room_event[2]['reservation']['status'], 'confirmed')

    def test_update_status_by_admin(self):
        reservation = self._book(self.alice)

        updated = self.service.update_status(self.admin, reservation.pk, 'completed')

        self.assertEqual(updated.status, Reservation.Status.COMPLETED)

    def test_update_status_forbidden_for_reservation_user(self):
        reservation = self._book(self.alice)

        for actor in (self.alice, self.other_owner):
            with self.assertRaises(Forbidden):
                self.service.update_status(actor, reservation.pk, 'confirmed')

    def test_update_status_invalid_value(self):
        reservation = self._book(self.alice)

        for actor in (self.owner, self.admin, self.bob):
            with self.assertRaises(ValidationFailed):
                self.service.update_status(actor, reservation.pk, 'archived')

        reservation.refresh_from_db()
        self.assertEqual(reservation.status, Reservation.Status.PENDING)

    def test_status_cancelled_frees_slot(self):
        a = self._book(self.alice)
        self._book(self.bob)

        self.service.update_status(self.owner, a.pk, 'cancelled')

        self.assertEqual(self._book(self.carol).status, Reservation.Status.PENDING)


class ReservationAdminActionTest(TestCase):
    """Bulk status actions on the admin site"""

    fixtures = ['users.json', 'restaurant.json']

    def setUp(self):
        self.alice = CustomUser.objects.get(username='alice')
        self.bob = CustomUser.objects.get(username='bob')
        self.admin_user = CustomUser.objects.get(username='adam')
        self.restaurant = Restaurant.objects.get(pk=1)

        self.model_admin = ReservationAdmin(Reservation, admin.site)
        self.request = RequestFactory().post('/admin/reservation/reservation/')
        self.request.user = self.admin_user

        self.layer = RecordingLayer()
        notification_gateway.init(self.layer)
        self.addCleanup(notification_gateway.init)

    def _reservation(self, user, status=Reservation.Status.PENDING):
        return Reservation.objects.create(
            user=user, restaurant=self.restaurant, date='2025-01-01',
            time='19:00', party_size=2, status=status,
        )

    def test_bulk_cancel_publishes_like_the_api(self):
        reservation = self._reservation(self.alice)

        with mock.patch.object(ReservationAdmin, 'message_user'):
            self.model_admin.mark_as_cancelled(
                self.request, Reservation.objects.filter(pk=reservation.pk)
            )

        reservation.refresh_from_db()
        self.assertEqual(reservation.status, Reservation.Status.CANCELLED)
        (global_event, room_event) = self.layer.events()
        self.assertEqual(
            global_event,
            ('broadcast', 'reservationCancelled', {'reservationId': reservation.pk, 'restaurant': 1}),
        )
        self.assertEqual(room_event[0], 'restaurant_1')
        self.assertEqual(room_event[1], 'reservationCancelled')
        self.assertEqual(room_event[2]['id'], reservation.pk)
        self.assertEqual(room_event[2]['status'], 'cancelled')

    def test_bulk_confirm_skips_terminal_reservations(self):
        pending = self._reservation(self.alice)
        cancelled = self._reservation(self.bob, Reservation.Status.CANCELLED)

        with mock.patch.object(ReservationAdmin, 'message_user') as message_user:
            self.model_admin.mark_as_confirmed(
                self.request, Reservation.objects.filter(pk__in=[pending.pk, cancelled.pk])
            )

        pending.refresh_from_db()
        cancelled.refresh_from_db()
        self.assertEqual(pending.status, Reservation.Status.CONFIRMED)
        self.assertEqual(cancelled.status, Reservation.Status.CANCELLED)
        self.assertEqual(
            [event for _, event, _ in self.layer.events()],
            ['reservationStatusChanged', 'reservationStatusChanged'],
        )
        self.assertEqual(message_user.call_count, 2)

    def test_bulk_action_by_staff_without_admin_role_changes_nothing(self):
        reservation = self._reservation(self.alice)
        self.request.user = self.bob

        with mock.patch.object(ReservationAdmin, 'message_user'):
            self.model_admin.mark_as_completed(
                self.request, Reservation.objects.filter(pk=reservation.pk)
            )

        reservation.refresh_from_db()
        self.assertEqual(reservation.status, Reservation.Status.PENDING)
        self.assertEqual(self.layer.sent, [])
