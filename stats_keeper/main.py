from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from stats_keeper.db import init_db
from stats_keeper.core import get_settings
from stats_keeper.core.errors import ErrorKind, StorageError, to_http_error
from stats_keeper.api.v1 import api_router
from stats_keeper.core.middleware import RequestLoggingMiddleware
from stats_keeper.logs.server_log import api_logger
from stats_keeper.schemas.statistic import ApiError

# Get application settings
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    try:
        await init_db()
        api_logger.info("Database initialized")
    except Exception as e:
        api_logger.error(f"Error initializing database: {e}")
        raise

    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API for per-user counter and date statistics",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


def _error_response(status_code: int, message: str, error=None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ApiError(message=message, error=error).model_dump(),
        headers=headers,
    )


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Статус ответа выводится только из вида ошибки"""
    status_code, message, error = to_http_error(exc)
    if exc.kind == ErrorKind.INTERNAL:
        api_logger.error(f"{request.method} {request.url.path}: {exc} (cause: {exc.cause!r})")
    return _error_response(status_code, message, error)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Любая неожиданная ошибка отдается как INTERNAL в том же формате"""
    status_code, message, error = to_http_error(exc)
    api_logger.error(f"Unhandled exception on {request.method} {request.url.path}: {exc!r}", exc_info=exc)
    return _error_response(status_code, message, error)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(status.HTTP_400_BAD_REQUEST, "invalid json request body", str(exc.errors()))


@app.get("/")
async def root(request: Request):
    """Health check endpoint"""
    api_logger.info(f"Received health check request: {request.method} {request.url}")
    return {"message": f"{settings.PROJECT_NAME} is running"}


if __name__ == "__main__":
    import uvicorn

    api_logger.info(f"Сервер запускается на http://0.0.0.0:{settings.HTTP_PORT}")

    uvicorn.run(
        "stats_keeper.main:app",
        host="0.0.0.0",
        port=settings.HTTP_PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
