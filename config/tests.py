from django.db import OperationalError
from django.http import Http404
from django.test import SimpleTestCase
from rest_framework import exceptions, serializers

from config.exceptions import (
    SlotConflict,
    SlotFull,
    ValidationFailed,
    api_exception_handler,
    parse_id,
)


class ParseIdTest(SimpleTestCase):

    def test_accepts_positive_integers(self):
        self.assertEqual(parse_id(3, 'Invalid id'), 3)
        self.assertEqual(parse_id('42', 'Invalid id'), 42)

    def test_rejects_everything_else(self):
        for value in ('abc', '', None, 0, -1, '1.5', True):
            with self.assertRaises(ValidationFailed) as ctx:
                parse_id(value, 'Invalid id')
            self.assertEqual(str(ctx.exception.detail), 'Invalid id')


class ApiExceptionHandlerTest(SimpleTestCase):
    """Every error leaves the API as {"message": ...}"""

    def handle(self, exc):
        return api_exception_handler(exc, {'view': None})

    def test_slot_errors(self):
        response = self.handle(SlotFull())
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data, {'message': 'No availability for selected slot'})

        response = self.handle(SlotConflict())
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data, {'message': 'You already have a reservation for this slot'})

    def test_not_found(self):
        response = self.handle(Http404())

        self.assertEqual(response.status_code, 404)
        self.assertIn('message', response.data)

    def test_serializer_errors_keep_field_detail(self):
        response = self.handle(serializers.ValidationError({'rating': ['Too high.']}))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['message'], 'rating: Too high.')
        self.assertEqual(response.data['errors'], {'rating': ['Too high.']})

    def test_non_field_errors_are_bare(self):
        response = self.handle(
            serializers.ValidationError({'non_field_errors': ['date and time query parameters required']})
        )

        self.assertEqual(response.data['message'], 'date and time query parameters required')

    def test_permission_denied(self):
        response = self.handle(exceptions.PermissionDenied('Not authorized'))

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data, {'message': 'Not authorized'})

    def test_unhandled_errors_become_500(self):
        for exc in (RuntimeError('boom'), OperationalError('db down')):
            with self.assertLogs('config.exceptions', level='ERROR'):
                response = self.handle(exc)

            self.assertEqual(response.status_code, 500)
            self.assertEqual(response.data, {'message': 'Server error'})
