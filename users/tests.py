from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from users.models import CustomUser


class CustomUserModelTest(TestCase):
    """Unit tests for CustomUser roles"""

    fixtures = ['users.json']

    def test_roles(self):
        alice = CustomUser.objects.get(username='alice')
        olivia = CustomUser.objects.get(username='olivia')
        adam = CustomUser.objects.get(username='adam')

        self.assertFalse(alice.is_owner)
        self.assertFalse(alice.is_admin)
        self.assertTrue(olivia.is_owner)
        self.assertTrue(adam.is_admin)
        self.assertTrue(olivia.has_role('owner', 'admin'))
        self.assertFalse(alice.has_role('owner', 'admin'))

    def test_new_user_defaults_to_user_role(self):
        user = CustomUser.objects.create_user(username='dave', password='s3cret-pass!')

        self.assertEqual(user.role, CustomUser.Role.USER)


class AuthAPITest(APITestCase):
    """API tests for registration and the current user endpoint"""

    fixtures = ['users.json']

    def setUp(self):
        self.client = APIClient()

    def test_register(self):
        response = self.client.post(reverse('register'), {
            'username': 'dave',
            'email': 'dave@example.com',
            'password': 'a-long-Passphrase-42',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['role'], 'user')
        self.assertNotIn('password', response.data)
        self.assertTrue(
            CustomUser.objects.get(username='dave').check_password('a-long-Passphrase-42')
        )

    def test_register_owner(self):
        response = self.client.post(reverse('register'), {
            'username': 'erin',
            'password': 'a-long-Passphrase-42',
            'role': 'owner',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['role'], 'owner')

    def test_register_admin_rejected(self):
        response = self.client.post(reverse('register'), {
            'username': 'mallory',
            'password': 'a-long-Passphrase-42',
            'role': 'admin',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('role', response.data['errors'])

    def test_register_duplicate_username(self):
        response = self.client.post(reverse('register'), {
            'username': 'alice',
            'password': 'a-long-Passphrase-42',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_login_returns_tokens(self):
        self.client.post(reverse('register'), {
            'username': 'dave',
            'password': 'a-long-Passphrase-42',
        }, format='json')

        response = self.client.post(reverse('login'), {
            'username': 'dave',
            'password': 'a-long-Passphrase-42',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)

    def test_me(self):
        self.client.force_authenticate(user=CustomUser.objects.get(username='olivia'))

        response = self.client.get(reverse('me'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['username'], 'olivia')
        self.assertEqual(response.data['role'], 'owner')

    def test_me_unauthenticated(self):
        response = self.client.get(reverse('me'))

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
