"""Entry point for the pointer index service."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.exceptions import InvalidFormatError, PrivShareError
from common.logging_config import setup_logging
from indexer.config import INDEX_HOST, INDEX_PORT
from indexer.database import init_database
from indexer.exceptions import InvalidPointerRecordError, PointerExistsError, PointerNotFoundError
from indexer.repositories.pointer_repository import PointerRepository
from indexer.routes.pointer_routes import router as pointer_router

logger = setup_logging('indexer')

app = FastAPI(
    title="PrivShare Pointer Index",
    description="Write-once share code to pointer record index",
    version="1.0.0"
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
    )

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Initialize database on application startup.
    """
    logger.info("Pointer index starting up...")
    init_database()
    logger.info(f"Database initialized ({PointerRepository.count()} pointer(s))")


def _error_response(request: Request, exc: Exception, status_code: int, code: str) -> JSONResponse:
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}"
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": code}
    )


@app.exception_handler(InvalidFormatError)
async def invalid_format_handler(request: Request, exc: InvalidFormatError):
    return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "INVALID_SHARE_CODE")


@app.exception_handler(InvalidPointerRecordError)
async def invalid_record_handler(request: Request, exc: InvalidPointerRecordError):
    return _error_response(request, exc, status.HTTP_422_UNPROCESSABLE_ENTITY, "INVALID_POINTER_RECORD")


@app.exception_handler(PointerExistsError)
async def pointer_exists_handler(request: Request, exc: PointerExistsError):
    return _error_response(request, exc, status.HTTP_409_CONFLICT, "POINTER_EXISTS")


@app.exception_handler(PointerNotFoundError)
async def pointer_not_found_handler(request: Request, exc: PointerNotFoundError):
    return _error_response(request, exc, status.HTTP_404_NOT_FOUND, "POINTER_NOT_FOUND")


@app.exception_handler(PrivShareError)
async def privshare_exception_handler(request: Request, exc: PrivShareError):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Unhandled PrivShare error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "code": "INTERNAL_ERROR"}
    )


app.include_router(pointer_router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "running", "service": "privshare-index"}


if __name__ == "__main__":
    uvicorn.run(app, host=INDEX_HOST, port=INDEX_PORT)
