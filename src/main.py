from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.adapters.api.controllers.routes import router as routes_router
from src.domain.exceptions import (
    BackendError,
    BackendUnreachable,
    CalculationInProgress,
    ConcurrentModification,
    InsufficientWaypoints,
    RouteNotFound,
    RoutingError,
    WaypointNotFound,
)

app = FastAPI(title="Route Segments")
app.include_router(routes_router)


def _status_for(exc: RoutingError) -> int:
    if isinstance(exc, InsufficientWaypoints):
        return 422
    if isinstance(exc, (RouteNotFound, WaypointNotFound)):
        return 404
    if isinstance(exc, (CalculationInProgress, ConcurrentModification)):
        return 409
    if isinstance(exc, BackendUnreachable):
        return 503
    if isinstance(exc, BackendError):
        return 502
    return 400


@app.exception_handler(RoutingError)
async def routing_error_handler(request: Request, exc: RoutingError) -> JSONResponse:
    status_code = _status_for(exc)
    if status_code >= 500:
        logging.getLogger("uvicorn.error").warning(
            "Routing backend failure",
            extra={"path": str(request.url.path), "error": str(exc)},
        )

    detail = exc.describe() if isinstance(exc, BackendError) else str(exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "error": type(exc).__name__},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Ensure API errors are JSON so clients can display them.

    Starlette's default 500 handler may return plain text/HTML.
    """

    logging.getLogger("uvicorn.error").exception(
        "Unhandled exception", extra={"path": str(request.url.path)}
    )

    reveal = (os.getenv("ROUTING_REVEAL_ERRORS") or "").strip().lower() in {
        "1",
        "true",
        "yes",
        "on",
    }

    if reveal or isinstance(exc, (RuntimeError, ValueError)):
        detail = str(exc) or exc.__class__.__name__
    else:
        detail = "Internal Server Error"

    return JSONResponse(status_code=500, content={"detail": detail})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
