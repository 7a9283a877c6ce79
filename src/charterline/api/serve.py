"""API server for ``charterline serve``.

Mounts the versioned ``/api/v1/`` routers with CORS for the booking site and
the operator dashboard.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

_BUILTIN_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def create_api_app():
    """Build the FastAPI application with all v1 routers."""
    from fastapi import FastAPI
    from fastapi.middleware.cors import CORSMiddleware

    from charterline import __version__
    from charterline.api.v1 import mount_v1_routers
    from charterline.config import get_settings

    app = FastAPI(
        title="Charterline API",
        description="Boat-charter booking integration and operator dashboard API.",
        version=__version__,
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    origins = sorted(set(_BUILTIN_ORIGINS + get_settings().cors_allowed_origins))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    mount_v1_routers(app)
    return app


def run_api_server(host: str = "127.0.0.1", port: int = 8000, dev: bool = False) -> None:
    """Start the API server under uvicorn; *dev* enables auto-reload."""
    import uvicorn

    from charterline.config import get_settings

    logger.info("Charterline API docs: http://%s:%d/api/v1/docs", host, port)
    uvicorn.run(
        "charterline.api.serve:create_api_app",
        factory=True,
        host=host,
        port=port,
        reload=dev,
        log_level="debug" if dev else get_settings().log_level.lower(),
    )
