from __future__ import annotations

import logging

from django.db import DatabaseError, connection
from django.http import JsonResponse
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny

from ..responses import success

logger = logging.getLogger(__name__)


def _db_ok() -> bool:
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
            cursor.fetchone()
    except DatabaseError:
        logger.exception('Database health check failed')
        return False
    return True


@api_view(['GET'])
@permission_classes([AllowAny])
def api_health(request):
    return success({
        'message': 'Smart Health Care System API is running',
        'timestamp': timezone.now().isoformat(),
        'db': 'ok' if _db_ok() else 'unavailable',
    })


def healthz(request):
    """Liveness probe for load balancers; plain Django, no authentication."""
    if _db_ok():
        return JsonResponse({'status': 'ok'})
    return JsonResponse({'status': 'error'}, status=503)
