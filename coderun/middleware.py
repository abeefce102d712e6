import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"


class HTTPLogMiddleware(BaseHTTPMiddleware):
    """Log each request with a correlation id echoed back to the client."""

    def __init__(self, app, logger_name: str = "coderun.http"):
        super().__init__(app)
        self._logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:16]
        request.state.request_id = request_id
        start = time.monotonic()
        self._logger.debug("http.request start id=%s method=%s path=%s",
                           request_id, request.method, request.url.path)
        try:
            response: Response = await call_next(request)
        except Exception as e:
            self._logger.warning("http.request error id=%s dur_ms=%d err=%r",
                                 request_id, int((time.monotonic() - start) * 1000), e)
            raise
        response.headers[REQUEST_ID_HEADER] = request_id
        self._logger.debug("http.request end id=%s status=%s dur_ms=%d",
                           request_id, response.status_code, int((time.monotonic() - start) * 1000))
        return response
