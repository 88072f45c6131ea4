import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from stats_keeper.logs.server_log import api_logger
from stats_keeper.logs.debug_log import debug_logger


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()

        method = request.method
        url = str(request.url)
        client_host = request.client.host if request.client else "unknown"

        debug_logger.log_request(request)

        try:
            response = await call_next(request)
        except Exception as e:
            api_logger.error(f"Error processing request {method} {url}: {e}")
            raise

        process_time = time.perf_counter() - start_time
        log_message = (
            f"Request: {method} {url} | "
            f"Status: {response.status_code} | "
            f"Client: {client_host} | "
            f"Process Time: {process_time:.3f}s"
        )
        # 5xx как ошибка, остальное как info
        if response.status_code >= 500:
            api_logger.error(log_message)
        else:
            api_logger.info(log_message)

        debug_logger.log_response(response, process_time)
        return response
