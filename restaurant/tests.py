from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from notifications.gateway import notification_gateway
from notifications.testing import RecordingLayer
from reservation.models import Reservation
from restaurant.models import Restaurant
from review.models import Review
from users.models import CustomUser


class RestaurantAPITestCase(APITestCase):

    fixtures = ['users.json', 'restaurant.json']

    def setUp(self):
        self.client = APIClient()
        self.alice = CustomUser.objects.get(username='alice')
        self.owner = CustomUser.objects.get(username='olivia')
        self.other_owner = CustomUser.objects.get(username='oscar')
        self.admin = CustomUser.objects.get(username='adam')
        self.restaurant = Restaurant.objects.get(pk=1)

        self.layer = RecordingLayer()
        notification_gateway.init(self.layer)
        self.addCleanup(notification_gateway.init)


class RestaurantDirectoryAPITest(RestaurantAPITestCase):
    """API tests for browsing and managing restaurants"""

    def test_list_is_public(self):
        response = self.client.get(reverse('restaurant-list'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 3)

    def test_retrieve_uses_api_field_names(self):
        response = self.client.get(reverse('restaurant-detail', kwargs={'pk': 1}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Trattoria Roma')
        self.assertEqual(response.data['tablesPerSlot'], 2)
        self.assertEqual(response.data['cuisineType'], 'Italian')
        self.assertEqual(response.data['features'], ['terrace', 'wifi'])

    def test_retrieve_missing_and_malformed(self):
        response = self.client.get(reverse('restaurant-detail', kwargs={'pk': 999}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.get(reverse('restaurant-detail', kwargs={'pk': 'abc'}))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Invalid id')

    def test_create_sets_owner(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.post(
            reverse('restaurant-list'),
            {'name': 'Bistro', 'cuisineType': 'French', 'tablesPerSlot': 4},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        restaurant = Restaurant.objects.get(pk=response.data['id'])
        self.assertEqual(restaurant.owner, self.owner)
        self.assertEqual(restaurant.tables_per_slot, 4)

    def test_create_forbidden_for_plain_users(self):
        self.client.force_authenticate(user=self.alice)

        response = self.client.post(reverse('restaurant-list'), {'name': 'Nope'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_rejects_invalid_features(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.post(
            reverse('restaurant-list'),
            {'name': 'Bistro', 'features': 'terrace'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('errors', response.data)

    def test_my_restaurants(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.get(reverse('restaurant-my'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(sorted(r['id'] for r in response.data), [1, 3])

    def test_update_by_owner(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.put(
            reverse('restaurant-detail', kwargs={'pk': 1}),
            {'description': 'Fresh pasta daily'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.restaurant.refresh_from_db()
        self.assertEqual(self.restaurant.description, 'Fresh pasta daily')
        self.assertEqual(self.restaurant.name, 'Trattoria Roma')
        # Capacity untouched, nothing to announce
        self.assertEqual(self.layer.sent, [])

    def test_update_by_other_owner_forbidden(self):
        self.client.force_authenticate(user=self.other_owner)

        response = self.client.patch(
            reverse('restaurant-detail', kwargs={'pk': 1}), {'name': 'Mine'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['message'], 'Not authorized')

    def test_update_by_admin(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.patch(
            reverse('restaurant-detail', kwargs={'pk': 2}), {'hours': '17:00-23:00'}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_capacity_change_is_announced(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.patch(
            reverse('restaurant-detail', kwargs={'pk': 1}), {'tablesPerSlot': 5}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(self.layer.events(), [
            ('broadcast', 'restaurantCapacityChanged', {'restaurantId': '1', 'capacity': 5}),
            ('restaurant_1', 'restaurantCapacityChanged', {'restaurantId': '1', 'capacity': 5}),
        ])

    def test_clearing_tables_per_slot_falls_back(self):
        self.client.force_authenticate(user=self.admin)

        self.client.patch(
            reverse('restaurant-detail', kwargs={'pk': 1}), {'tablesPerSlot': None}, format='json'
        )

        events = self.layer.events(group='broadcast')
        self.assertEqual(events[0][2]['capacity'], 10)

    def test_destroy_admin_only(self):
        self.client.force_authenticate(user=self.owner)
        response = self.client.delete(reverse('restaurant-detail', kwargs={'pk': 1}))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(reverse('restaurant-detail', kwargs={'pk': 1}))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Restaurant.objects.filter(pk=1).exists())

    def test_destroy_cascades_and_announces(self):
        Reservation.objects.create(
            user=self.alice, restaurant=self.restaurant, date='2025-01-01',
            time='19:00', party_size=2,
        )
        Review.objects.create(user=self.alice, restaurant=self.restaurant, rating=5)
        self.client.force_authenticate(user=self.admin)

        self.client.delete(reverse('restaurant-detail', kwargs={'pk': 1}))

        self.assertEqual(Reservation.objects.filter(restaurant_id=1).count(), 0)
        self.assertEqual(Review.objects.filter(restaurant_id=1).count(), 0)
        self.assertEqual(
            self.layer.events(), [('broadcast', 'restaurantDeleted', {'restaurantId': '1'})]
        )


class AvailabilityAPITest(RestaurantAPITestCase):
    """API tests for slot availability endpoint"""

    def url(self, pk=1):
        return reverse('restaurant-availability', kwargs={'pk': pk})

    def test_get_availability_success(self):
        Reservation.objects.create(
            user=self.alice, restaurant=self.restaurant, date='2025-01-01',
            time='19:00', party_size=2,
        )

        response = self.client.get(self.url(), {'date': '2025-01-01', 'time': '19:00'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {
            'restaurant': 1,
            'date': '2025-01-01',
            'time': '19:00',
            'capacity': 2,
            'booked': 1,
            'available': 1,
        })

    def test_cancelled_reservations_do_not_count(self):
        Reservation.objects.create(
            user=self.alice, restaurant=self.restaurant, date='2025-01-01',
            time='19:00', party_size=2, status=Reservation.Status.CANCELLED,
        )

        response = self.client.get(self.url(), {'date': '2025-01-01', 'time': '19:00'})

        self.assertEqual(response.data['booked'], 0)
        self.assertEqual(response.data['available'], 2)

    def test_slot_strings_are_not_trimmed(self):
        Reservation.objects.create(
            user=self.alice, restaurant=self.restaurant, date='2025-01-01',
            time='19:00', party_size=2,
        )

        response = self.client.get(self.url(), {'date': '2025-01-01', 'time': '19:00 '})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['time'], '19:00 ')
        self.assertEqual(response.data['booked'], 0)

    def test_get_availability_missing_parameters(self):
        response = self.client.get(self.url(), {'date': '2025-01-01'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'date and time query parameters required')

    def test_get_availability_invalid_restaurant_id(self):
        response = self.client.get(self.url('abc'), {'date': '2025-01-01', 'time': '19:00'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_get_availability_unknown_restaurant(self):
        response = self.client.get(self.url(999), {'date': '2025-01-01', 'time': '19:00'})

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['message'], 'Restaurant not found')
