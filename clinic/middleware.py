import logging
import time

logger = logging.getLogger(__name__)


class RequestLogMiddleware:
    """Log each API request with its status code and duration."""
    PREFIXES = ('/api/',)

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        started = time.monotonic()
        response = self.get_response(request)
        path = request.path or ''
        if any(path.startswith(p) for p in self.PREFIXES):
            logger.debug(
                '%s %s -> %s (%.1f ms)',
                request.method, path, response.status_code, (time.monotonic() - started) * 1000,
            )
        return response
