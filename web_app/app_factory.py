"""FastAPI application factory."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse

from .api import api_router
from .web import web_router
from .web.routes import decoy_page
from .middleware.headers import ForwardedHeadersMiddleware
from .middleware.logging import LoggingMiddleware


def create_app(service, config) -> FastAPI:
    """Create and configure FastAPI application.

    Args:
        service: LinkGateService instance
        config: Configuration instance

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Link Gate",
        description="Short link resolution with bot diversion, geo/IP blocking and password protection",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.state.service = service
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Last added runs first: client IP must be resolved before request logging
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        ForwardedHeadersMiddleware,
        trust_forwarded=config.trust_forwarded_headers,
        trusted_proxies=config.trusted_proxies,
    )

    app.include_router(api_router, prefix="/api", tags=["API"])
    # Registered ahead of the web router so /{code} never shadows it
    app.add_api_route(
        config.decoy_path,
        decoy_page,
        methods=["GET"],
        response_class=HTMLResponse,
        include_in_schema=False,
    )
    app.include_router(web_router, tags=["Web"])

    return app
