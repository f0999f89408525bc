from django.urls import reverse
from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from notifications.gateway import notification_gateway
from notifications.testing import RecordingLayer
from reservation.models import Reservation
from restaurant.models import Restaurant
from users.models import CustomUser


class ReservationAPITestCase(APITestCase):
    """Shared fixtures and helpers for the reservation endpoints"""

    fixtures = ['users.json', 'restaurant.json']

    def setUp(self):
        self.client = APIClient()
        self.alice = CustomUser.objects.get(username='alice')
        self.bob = CustomUser.objects.get(username='bob')
        self.carol = CustomUser.objects.get(username='carol')
        self.owner = CustomUser.objects.get(username='olivia')
        self.other_owner = CustomUser.objects.get(username='oscar')
        self.admin = CustomUser.objects.get(username='adam')
        self.restaurant = Restaurant.objects.get(pk=1)

        self.layer = RecordingLayer()
        notification_gateway.init(self.layer)
        self.addCleanup(notification_gateway.init)

    def book(self, user, time='19:00', party_size=2, restaurant=None):
        return Reservation.objects.create(
            user=user,
            restaurant=restaurant or self.restaurant,
            date='2025-01-01',
            time=time,
            party_size=party_size,
        )


class CreateReservationAPITest(ReservationAPITestCase):
    """API tests for reservation creation endpoint"""

    def setUp(self):
        super().setUp()
        self.url = reverse('reservation-list-create')
        self.client.force_authenticate(user=self.alice)
        self.data = {
            'restaurant': str(self.restaurant.id),
            'date': '2025-01-01',
            'time': '19:00',
            'partySize': 2,
        }

    def test_create_reservation_success(self):
        """Test successful reservation creation"""
        response = self.client.post(self.url, self.data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['partySize'], 2)
        self.assertEqual(response.data['user']['username'], 'alice')
        self.assertEqual(response.data['restaurant']['id'], self.restaurant.id)
        self.assertEqual(
            [(group, event) for group, event, _ in self.layer.events()],
            [('broadcast', 'reservationCreated'), ('restaurant_1', 'reservationCreated')],
        )

    def test_time_with_trailing_space_is_another_slot(self):
        """Date and time are kept exactly as sent"""
        response = self.client.post(self.url, self.data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        self.data['time'] = '19:00 '
        response = self.client.post(self.url, self.data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['time'], '19:00 ')
        self.assertEqual(
            sorted(Reservation.objects.filter(user=self.alice).values_list('time', flat=True)),
            ['19:00', '19:00 '],
        )

    def test_create_reservation_unauthenticated(self):
        """Test reservation creation without authentication"""
        self.client.force_authenticate(user=None)

        response = self.client.post(self.url, self.data, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertIn('message', response.data)

    def test_create_reservation_missing_fields(self):
        """Test reservation creation without a time"""
        del self.data['time']

        response = self.client.post(self.url, self.data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Missing reservation fields')

    def test_create_reservation_invalid_restaurant_id(self):
        self.data['restaurant'] = 'abc'

        response = self.client.post(self.url, self.data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Invalid restaurant id')

    def test_create_reservation_invalid_party_size(self):
        self.data['partySize'] = -3

        response = self.client.post(self.url, self.data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_reservation_unknown_restaurant(self):
        self.data['restaurant'] = '999'

        response = self.client.post(self.url, self.data, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['message'], 'Restaurant not found')

    def test_create_reservation_duplicate(self):
        """Test a second booking of the same slot by the same user"""
        self.book(self.alice)

        response = self.client.post(self.url, self.data, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            response.data['message'], 'You already have a reservation for this slot'
        )

    def test_create_reservation_slot_full(self):
        """Test reservation creation when every table is taken"""
        self.book(self.bob)
        self.book(self.carol)

        response = self.client.post(self.url, self.data, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['message'], 'No availability for selected slot')
        self.assertEqual(Reservation.objects.count(), 2)
        self.assertEqual(self.layer.sent, [])


class ListReservationsAPITest(ReservationAPITestCase):
    """API tests for the reservation listings"""

    def setUp(self):
        super().setUp()
        self.book(self.alice, time='20:00')
        self.book(self.alice, time='18:00')
        self.book(self.bob, restaurant=Restaurant.objects.get(pk=2))

    def test_my_reservations(self):
        self.client.force_authenticate(user=self.alice)

        response = self.client.get(reverse('my-reservations'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([r['time'] for r in response.data], ['18:00', '20:00'])

    def test_owner_reservations(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.get(reverse('owner-reservations'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)
        self.assertTrue(all(r['restaurant']['id'] == 1 for r in response.data))

    def test_owner_reservations_forbidden_for_users(self):
        self.client.force_authenticate(user=self.alice)

        response = self.client.get(reverse('owner-reservations'))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_all_admin_only(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('reservation-list-create'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 3)

        self.client.force_authenticate(user=self.owner)
        response = self.client.get(reverse('reservation-list-create'))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class CancelReservationAPITest(ReservationAPITestCase):
    """API tests for reservation cancellation endpoint"""

    def setUp(self):
        super().setUp()
        self.reservation = self.book(self.alice)
        self.url = reverse('cancel-reservation', kwargs={'pk': self.reservation.pk})

    def test_cancel_reservation_success(self):
        """Test successful reservation cancellation"""
        self.client.force_authenticate(user=self.alice)

        response = self.client.put(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Reservation cancelled')
        self.assertEqual(response.data['reservation']['status'], 'cancelled')

        self.reservation.refresh_from_db()
        self.assertEqual(self.reservation.status, Reservation.Status.CANCELLED)

    def test_cancel_by_restaurant_owner(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.post(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_cancel_other_users_reservation(self):
        """Test cancelling a reservation that belongs to another user"""
        self.client.force_authenticate(user=self.bob)

        response = self.client.put(self.url)

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(
            response.data['message'], 'Not authorized to cancel this reservation'
        )

    def test_cancel_unknown_and_malformed_id(self):
        self.client.force_authenticate(user=self.alice)

        response = self.client.put(reverse('cancel-reservation', kwargs={'pk': 999}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.put(reverse('cancel-reservation', kwargs={'pk': 'abc'}))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Invalid reservation id')

    def test_cancel_twice(self):
        self.client.force_authenticate(user=self.alice)
        self.client.put(self.url)

        response = self.client.put(self.url)

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class UpdateReservationAPITest(ReservationAPITestCase):
    """API tests for moving a reservation"""

    def setUp(self):
        super().setUp()
        self.reservation = self.book(self.alice)
        self.url = reverse('update-reservation', kwargs={'pk': self.reservation.pk})

    def test_update_reservation_success(self):
        self.client.force_authenticate(user=self.alice)

        response = self.client.put(self.url, {'time': '20:00', 'partySize': 4}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Reservation updated')
        self.assertEqual(response.data['reservation']['time'], '20:00')
        self.assertEqual(response.data['reservation']['partySize'], 4)

    def test_update_keeps_date_string_as_sent(self):
        self.client.force_authenticate(user=self.alice)

        response = self.client.patch(self.url, {'date': ' 2025-01-01'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.reservation.refresh_from_db()
        self.assertEqual(self.reservation.date, ' 2025-01-01')

    def test_update_to_full_slot(self):
        self.book(self.bob, time='20:00')
        self.book(self.carol, time='20:00')
        self.client.force_authenticate(user=self.alice)

        response = self.client.patch(self.url, {'time': '20:00'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['message'], 'Requested slot is fully booked')
        self.reservation.refresh_from_db()
        self.assertEqual(self.reservation.time, '19:00')

    def test_update_by_restaurant_owner_forbidden(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.put(self.url, {'partySize': 4}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ReservationStatusAPITest(ReservationAPITestCase):
    """API tests for the owner status endpoint"""

    def setUp(self):
        super().setUp()
        self.reservation = self.book(self.alice)
        self.url = reverse('reservation-status', kwargs={'pk': self.reservation.pk})

    def test_owner_confirms(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.put(self.url, {'status': 'confirmed'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Status updated')
        self.assertEqual(response.data['reservation']['status'], 'confirmed')
        self.assertIn(
            ('broadcast', 'reservationStatusChanged',
             {'reservationId': self.reservation.pk, 'status': 'confirmed'}),
            self.layer.events(),
        )

    def test_invalid_status(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.put(self.url, {'status': 'archived'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Invalid status')

    def test_invalid_status_reported_before_authorization(self):
        self.client.force_authenticate(user=self.bob)

        response = self.client.put(self.url, {'status': 'archived'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_by_reservation_user_forbidden(self):
        self.client.force_authenticate(user=self.alice)

        response = self.client.put(self.url, {'status': 'confirmed'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['message'], 'Not authorized to update status')

    def test_status_unknown_reservation(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.put(
            reverse('reservation-status', kwargs={'pk': 999}),
            {'status': 'confirmed'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
