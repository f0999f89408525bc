from unittest import mock

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from review.models import Review
from review.views import ReviewDetailView
from notifications.testing import recording_gateway
from restaurant.models import Restaurant
from users.models import CustomUser


class ReviewAPITest(APITestCase):
    """API tests for restaurant reviews"""

    fixtures = ['users.json', 'restaurant.json']

    def setUp(self):
        self.client = APIClient()
        self.alice = CustomUser.objects.get(username='alice')
        self.bob = CustomUser.objects.get(username='bob')
        self.owner = CustomUser.objects.get(username='olivia')
        self.admin = CustomUser.objects.get(username='adam')
        self.restaurant = Restaurant.objects.get(pk=1)
        self.review = Review.objects.create(
            restaurant=self.restaurant, user=self.alice, rating=4, comment='Lovely pasta'
        )

    def test_create_review(self):
        self.client.force_authenticate(user=self.bob)

        response = self.client.post(
            reverse('create-review'),
            {'restaurant': 1, 'rating': 5, 'comment': 'Great'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['username'], 'bob')
        self.assertEqual(response.data['restaurantDetail']['name'], 'Trattoria Roma')

    def test_create_review_invalid(self):
        self.client.force_authenticate(user=self.bob)

        for data in (
            {'restaurant': 1, 'rating': 6, 'comment': 'Too good'},
            {'restaurant': 999, 'rating': 3, 'comment': 'Where?'},
            {'restaurant': 1, 'rating': 3},
        ):
            response = self.client.post(reverse('create-review'), data, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
            self.assertIn('message', response.data)

    def test_create_review_unauthenticated(self):
        response = self.client.post(
            reverse('create-review'),
            {'restaurant': 1, 'rating': 5, 'comment': 'Great'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_restaurant_reviews_are_public(self):
        response = self.client.get(reverse('restaurant-reviews', kwargs={'restaurant_id': 1}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([r['id'] for r in response.data], [self.review.pk])

        response = self.client.get(reverse('restaurant-reviews', kwargs={'restaurant_id': 'x'}))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_my_reviews(self):
        Review.objects.create(restaurant=self.restaurant, user=self.bob, rating=2, comment='Meh')
        self.client.force_authenticate(user=self.alice)

        response = self.client.get(reverse('my-reviews'))

        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['comment'], 'Lovely pasta')

    def test_author_edits_review(self):
        self.client.force_authenticate(user=self.alice)

        response = self.client.patch(
            reverse('review-detail', kwargs={'pk': self.review.pk}), {'rating': 5}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['rating'], 5)
        self.assertEqual(response.data['comment'], 'Lovely pasta')

    def test_admin_cannot_edit_review(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.put(
            reverse('review-detail', kwargs={'pk': self.review.pk}), {'rating': 1}, format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_edit_missing_review(self):
        self.client.force_authenticate(user=self.alice)

        response = self.client.put(reverse('review-detail', kwargs={'pk': 999}), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        response = self.client.put(reverse('review-detail', kwargs={'pk': 'nope'}), {}, format='json')
        self.assertEqual(response.data['message'], 'Invalid review id')

    def test_author_deletes_review_quietly(self):
        gateway, layer = recording_gateway()
        self.client.force_authenticate(user=self.alice)

        with mock.patch.object(ReviewDetailView, 'notifier', gateway):
            response = self.client.delete(reverse('review-detail', kwargs={'pk': self.review.pk}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'message': 'Review deleted'})
        self.assertFalse(Review.objects.filter(pk=self.review.pk).exists())
        self.assertEqual(layer.sent, [])

    def test_admin_deletes_review_and_announces(self):
        gateway, layer = recording_gateway()
        review_id = self.review.pk
        self.client.force_authenticate(user=self.admin)

        with mock.patch.object(ReviewDetailView, 'notifier', gateway):
            response = self.client.delete(reverse('review-detail', kwargs={'pk': review_id}))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(layer.events(), [('broadcast', 'reviewDeleted', {'reviewId': str(review_id)})])

    def test_other_user_cannot_delete(self):
        self.client.force_authenticate(user=self.bob)

        response = self.client.delete(reverse('review-detail', kwargs={'pk': self.review.pk}))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertTrue(Review.objects.filter(pk=self.review.pk).exists())

    def test_owner_responds(self):
        self.client.force_authenticate(user=self.owner)

        response = self.client.put(
            reverse('respond-review', kwargs={'pk': self.review.pk}),
            {'response': 'Thank you!'},
            format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Response added')
        self.assertEqual(response.data['review']['response'], 'Thank you!')

    def test_non_owner_cannot_respond(self):
        for user in (self.alice, self.admin, CustomUser.objects.get(username='oscar')):
            self.client.force_authenticate(user=user)

            response = self.client.put(
                reverse('respond-review', kwargs={'pk': self.review.pk}),
                {'response': 'Hi'},
                format='json',
            )

            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
            self.assertEqual(response.data['message'], 'Not authorized to respond')
