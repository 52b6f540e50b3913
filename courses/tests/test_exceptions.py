from django.db import DatabaseError
from django.test import SimpleTestCase
from rest_framework import serializers, status
from rest_framework.exceptions import NotAuthenticated, PermissionDenied

from courses.exceptions import (
    api_exception_handler, require_field, MissingField, Unauthorized, SlotFull, StorageUnavailable,
)


class SampleSerializer(serializers.Serializer):
    name = serializers.CharField()
    age = serializers.IntegerField(required=False)


class ExceptionHandlerTestCase(SimpleTestCase):
    """測試錯誤回應格式 {"error", "code"}"""

    def handle(self, exc):
        return api_exception_handler(exc, {})

    def test_domain_errors(self):
        response = self.handle(SlotFull())
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data, {'error': '此時段名額已滿。', 'code': 'slot_full'})

        response = self.handle(Unauthorized())
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['code'], 'unauthorized')

        response = self.handle(StorageUnavailable())
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        self.assertEqual(response.data['code'], 'storage_unavailable')

    def test_database_error_becomes_storage_error(self):
        response = self.handle(DatabaseError('database is locked'))

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['code'], 'storage_error')

    def test_drf_auth_errors(self):
        self.assertEqual(self.handle(NotAuthenticated()).data['code'], 'unauthorized')
        self.assertEqual(self.handle(PermissionDenied()).data['code'], 'forbidden')

    def test_validation_errors(self):
        serializer = SampleSerializer(data={})
        serializer.is_valid()
        response = self.handle(serializers.ValidationError(serializer.errors))
        # ValidationError 的 code 從 serializer.errors 的 ErrorDetail 保留下來
        self.assertEqual(response.data['code'], 'missing_field')
        self.assertIn('name', response.data['fields'])

        serializer = SampleSerializer(data={'name': 'x', 'age': 'abc'})
        serializer.is_valid()
        response = self.handle(serializers.ValidationError(serializer.errors))
        self.assertEqual(response.data['code'], 'validation_error')

    def test_unhandled_exception_passes_through(self):
        self.assertIsNone(self.handle(ValueError('boom')))

    def test_require_field(self):
        self.assertEqual(require_field({'id': 3}, 'id'), 3)
        with self.assertRaises(MissingField) as ctx:
            require_field({'id': ''}, 'id')
        self.assertEqual(ctx.exception.get_codes(), 'missing_field')
        self.assertIn('id', str(ctx.exception.detail))
