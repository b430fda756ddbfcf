"""FastAPI application entrypoint serving the posts gateway."""

from __future__ import annotations

import asyncio
import logging

import structlog
from fastapi import FastAPI, HTTPException, Request, Response

from blog import metrics
from blog.gateway import GatewayRequest, PostGateway
from blog.settings import Settings, get_settings
from blog.store import PostStore

GATEWAY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD"]


def configure_logging(log_level: str) -> None:
    numeric_level = logging.getLevelName(log_level.upper())
    if isinstance(numeric_level, str):
        numeric_level = logging.INFO
    logging.basicConfig(level=numeric_level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )


def create_app(settings: Settings | None = None, store: PostStore | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Blog Posts API", version=settings.service_version)
    gateway = PostGateway.from_settings(settings, store=store)
    app.state.gateway = gateway

    @app.get("/healthz", response_class=Response)
    async def healthz() -> Response:
        return Response(content="ok\n", media_type="text/plain")

    @app.get("/metrics")
    async def metrics_endpoint() -> Response:
        if not settings.metrics_enabled:
            raise HTTPException(status_code=404, detail="metrics disabled")
        payload, content_type = metrics.render_metrics()
        return Response(content=payload, media_type=content_type)

    @app.api_route("/{path:path}", methods=GATEWAY_METHODS, include_in_schema=False)
    async def gateway_endpoint(request: Request) -> Response:
        body = await request.body()
        result = await asyncio.to_thread(
            gateway.handle,
            GatewayRequest(method=request.method, path=request.url.path, body=body or None),
        )
        return Response(
            content=result.body,
            status_code=result.status_code,
            headers=result.headers,
        )

    return app
