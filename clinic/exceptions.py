"""
Error types and the unified API exception handler.

Every error leaves the API as ``{"success": false, "data": null,
"error": "<message>"}`` with the status code chosen by the raised
exception.
"""
from __future__ import annotations

import logging

from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class SlotConflict(APIException):
    """The requested appointment slot is taken, held or blocked."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This time slot is already taken'
    default_code = 'conflict'


def error_message(data) -> str:
    """Flatten DRF error data into one readable sentence."""
    if isinstance(data, dict):
        if 'detail' in data:
            return error_message(data['detail'])
        parts = []
        for field, value in data.items():
            text = error_message(value)
            parts.append(text if field == 'non_field_errors' else f'{field}: {text}')
        return '; '.join(parts)
    if isinstance(data, (list, tuple)):
        return ' '.join(error_message(v) for v in data)
    return str(data)


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        view = context.get('view')
        logger.error('Unhandled error in %s', getattr(view, '__class__', type(view)).__name__, exc_info=exc)
        message = str(exc) if settings.DEBUG else 'Internal server error'
        return Response({'success': False, 'data': None, 'error': message}, status=500)
    resp.data = {'success': False, 'data': None, 'error': error_message(resp.data)}
    return resp
