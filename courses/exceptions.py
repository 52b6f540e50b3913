"""
API 錯誤分類

每個錯誤都有固定的 code，前端依 code 判斷而不是比對錯誤訊息文字。
所有錯誤回應統一為 {"error": <訊息>, "code": <code>}。
"""
import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class MissingField(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = '缺少必要欄位。'
    default_code = 'missing_field'

    def __init__(self, field=None, detail=None, code=None):
        if detail is None and field:
            detail = f'缺少必要欄位: {field}'
        super().__init__(detail, code)


class NotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = '找不到資料。'
    default_code = 'not_found'


class Forbidden(APIException):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = '您沒有權限執行此操作。'
    default_code = 'forbidden'


class Unauthorized(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = '請先登入。'
    default_code = 'unauthorized'


class Conflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = '資料狀態衝突。'
    default_code = 'conflict'


class InvalidTransition(Conflict):
    default_detail = '不允許的狀態變更。'
    default_code = 'invalid_transition'


class SlotFull(Conflict):
    default_detail = '此時段名額已滿。'
    default_code = 'slot_full'


class AlreadyBooked(Conflict):
    default_detail = '您已預約此時段。'
    default_code = 'already_booked'


class CourseKeyConflict(Conflict):
    default_detail = '已有相同名稱與代碼的課程。'
    default_code = 'course_key_conflict'


class StorageError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = '資料庫操作失敗。'
    default_code = 'storage_error'


class StorageUnavailable(StorageError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = '資料庫暫時無法使用，請稍後再試。'
    default_code = 'storage_unavailable'


STATUS_CODE_NAMES = {
    status.HTTP_400_BAD_REQUEST: 'bad_request',
    status.HTTP_401_UNAUTHORIZED: 'unauthorized',
    status.HTTP_403_FORBIDDEN: 'forbidden',
    status.HTTP_404_NOT_FOUND: 'not_found',
    status.HTTP_405_METHOD_NOT_ALLOWED: 'method_not_allowed',
    status.HTTP_409_CONFLICT: 'conflict',
}


def _has_code(codes, target):
    if isinstance(codes, dict):
        return any(_has_code(value, target) for value in codes.values())
    if isinstance(codes, list):
        return any(_has_code(value, target) for value in codes)
    return codes == target


def _first_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
    if isinstance(detail, list):
        for value in detail:
            return _first_message(value)
    return str(detail)


def api_exception_handler(exc, context):
    if isinstance(exc, DatabaseError):
        logger.exception('資料庫錯誤: %s', exc)
        exc = StorageError()

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, ValidationError):
        code = 'missing_field' if _has_code(exc.get_codes(), 'required') else 'validation_error'
        response.data = {
            'error': _first_message(exc.detail),
            'code': code,
            'fields': exc.detail,
        }
        return response

    if isinstance(exc, APIException) and isinstance(exc.get_codes(), str):
        code = exc.get_codes()
    else:
        code = STATUS_CODE_NAMES.get(response.status_code, 'error')
    # DRF 內建的認證 / 權限錯誤統一成 unauthorized / forbidden
    if response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN) and \
            code in ('not_authenticated', 'authentication_failed', 'permission_denied'):
        code = STATUS_CODE_NAMES[response.status_code]

    message = response.data.get('detail', '') if isinstance(response.data, dict) else _first_message(response.data)
    response.data = {'error': str(message), 'code': code}
    return response


def require_field(data, name):
    """從 request body 取必要欄位，缺少時回 missing_field"""
    value = data.get(name)
    if value in (None, ''):
        raise MissingField(name)
    return value
