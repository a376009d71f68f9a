"""FastAPI application for range pool quotes.

Note: Rate limiting is intentionally not implemented at the application level.
It should be handled at the infrastructure layer (reverse proxy / load balancer).
"""

import structlog
import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from rangepool.api.endpoints import get_registry, router
from rangepool.config import ApiSettings
from rangepool.math.fixed_point import LogExpMathError
from rangepool.models.quotes import ErrorResponse
from rangepool.pool.errors import InvalidPool, RangePoolError, TokenNotFound
from rangepool.registry import PoolRegistry

logger = structlog.get_logger()

# Maximum request body size (1 MB)
MAX_REQUEST_SIZE = 1024 * 1024

app = FastAPI(
    title="Range Pool (Python)",
    description="Quotes against virtual-balance weighted pools",
    version="0.1.0",
)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Reject requests with body larger than MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length and int(content_length) > MAX_REQUEST_SIZE:
        return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


@app.exception_handler(RangePoolError)
async def range_pool_error_handler(request: Request, exc: RangePoolError) -> JSONResponse:
    """Translate domain errors into {"error": code, "detail": message}."""
    status_code = 404 if isinstance(exc, (InvalidPool, TokenNotFound)) else 400
    logger.warning(
        "request_rejected",
        path=request.url.path,
        error=exc.code,
        detail=str(exc),
    )
    body = ErrorResponse(error=exc.code, detail=str(exc))
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.exception_handler(LogExpMathError)
async def log_exp_math_error_handler(request: Request, exc: LogExpMathError) -> JSONResponse:
    logger.warning(
        "request_rejected",
        path=request.url.path,
        error=type(exc).__name__,
        detail=str(exc),
    )
    body = ErrorResponse(error=type(exc).__name__, detail=str(exc))
    return JSONResponse(status_code=400, content=body.model_dump())


app.include_router(router)


@app.get("/health")
async def health(registry: PoolRegistry = Depends(get_registry)) -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "pools": len(registry)}


def run() -> None:
    """Run the quoting API server.

    Configuration via environment variables, see ApiSettings.
    """
    settings = ApiSettings.from_env()
    uvicorn.run(
        "rangepool.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
