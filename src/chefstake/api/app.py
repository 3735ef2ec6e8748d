from __future__ import annotations

import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from chefstake.api.errors import ApiError
from chefstake.api.request_log import RequestLogMiddleware
from chefstake.api.routes_public import router as public_router
from chefstake.runtime.boot import build_registry as _build_registry
from chefstake.runtime.errors import ChefError
from chefstake.util.structured_logging import configure_structured_logging


def build_registry():
    """Build the PoolRegistry for API runtime.

    Tests monkeypatch `chefstake.api.app.build_registry` to inject their own.
    """
    return _build_registry()


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load config and attach a registry to app.state
      - False: no registry; routes answer 500 not_ready
    """
    configure_structured_logging()
    mode = os.environ.get("CHEFSTAKE_MODE", "prod").strip().lower()

    if mode == "prod":
        app = FastAPI(title="chefstake API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="chefstake API")

    app.state.registry = build_registry() if boot_runtime else None

    @app.exception_handler(ApiError)
    async def _api_error(_request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_json())

    @app.exception_handler(ChefError)
    async def _chef_error(_request: Request, exc: ChefError) -> JSONResponse:
        err = ApiError.from_chef_error(exc)
        return JSONResponse(status_code=err.status_code, content=err.to_json())

    app.add_middleware(RequestLogMiddleware)
    app.include_router(public_router, prefix="/v1")

    return app
