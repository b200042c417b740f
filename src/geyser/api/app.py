from __future__ import annotations

import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from geyser.api.errors import ApiError
from geyser.api.routes_public import public_router
from geyser.api.structured_logging import RequestLogMiddleware
from geyser.runtime.executor_boot import build_executor as _build_executor


def build_executor():
    """Build a GeyserExecutor for API runtime.

    This wrapper exists so tests can monkeypatch `geyser.api.app.build_executor`
    without reaching into runtime modules.
    """
    return _build_executor()


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_json())


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load config from env + attach executor
      - False: keep lightweight for unit tests; attach app.state.executor yourself
    """
    mode = os.environ.get("GEYSER_MODE", "prod").strip().lower()

    # Disable docs in production.
    if mode == "prod":
        app = FastAPI(title="Token Geyser API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="Token Geyser API")

    if boot_runtime:
        app.state.executor = build_executor()
    else:
        app.state.executor = None

    app.add_exception_handler(ApiError, _api_error_handler)  # type: ignore[arg-type]
    app.add_middleware(RequestLogMiddleware)

    app.include_router(public_router)

    return app
