"""Success envelope shared by all API views."""
from __future__ import annotations

from typing import Any

from rest_framework import status as http_status
from rest_framework.response import Response


def success(data: Any = None, status: int = http_status.HTTP_200_OK, **kwargs) -> Response:
    return Response({'success': True, 'data': data, 'error': None}, status=status, **kwargs)
