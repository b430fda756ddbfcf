"""AWS Lambda adapter for API Gateway REST (v1) and HTTP API (v2) events."""

from __future__ import annotations

import base64
import binascii
from collections.abc import Callable
from typing import Any, Dict

import structlog

from blog.gateway import GatewayRequest, GatewayResponse, PostGateway
from blog.main import configure_logging
from blog.settings import get_settings

LOGGER = structlog.get_logger(__name__)


def event_to_request(event: Dict[str, Any]) -> GatewayRequest:
    """Translate an API Gateway proxy event into a gateway request."""
    request_context = event.get("requestContext") or {}
    http = request_context.get("http")
    if http:
        method = http.get("method", "GET")
        path = http.get("path") or event.get("rawPath", "/")
        event_format = "v2"
    elif request_context.get("httpMethod"):
        method = event.get("httpMethod") or request_context["httpMethod"]
        path = event.get("path") or request_context.get("path", "/")
        event_format = "v1"
    else:
        method = event.get("httpMethod", "GET")
        path = event.get("path", "/")
        event_format = "direct"

    body = event.get("body")
    if body and event.get("isBase64Encoded"):
        try:
            body = base64.b64decode(body, validate=True)
        except binascii.Error:
            LOGGER.warning("lambda.invalid_base64_body", path=path)
            body = None

    path_params = {
        key: str(value)
        for key, value in (event.get("pathParameters") or {}).items()
        if value
    }
    LOGGER.debug("lambda.event", format=event_format, method=method, path=path)
    return GatewayRequest(method=method, path=path, body=body, path_params=path_params)


def response_to_result(response: GatewayResponse) -> Dict[str, Any]:
    return {
        "statusCode": response.status_code,
        "headers": response.headers,
        "body": response.body,
    }


def make_handler(gateway: PostGateway) -> Callable[[Dict[str, Any], Any], Dict[str, Any]]:
    def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
        del context
        return response_to_result(gateway.handle(event_to_request(event)))

    return handler


settings = get_settings()
configure_logging(settings.log_level)
gateway = PostGateway.from_settings(settings)
handler = make_handler(gateway)
