"""Post Store Gateway: maps HTTP method + path onto record store calls."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any

import structlog

from blog import metrics
from blog.posts import Clock, IdFactory, Post, PostFields, new_post_id, utc_now
from blog.settings import Settings
from blog.store import ConfigurationError, PostNotFound, PostStore, StoreError, build_store

LOGGER = structlog.get_logger(__name__)

# Deployments have exposed the collection under both names.
COLLECTIONS = frozenset({"posts", "blog"})

ALLOW_METHODS = "OPTIONS,POST,GET,PUT,DELETE"


@dataclass(slots=True)
class GatewayRequest:
    method: str
    path: str
    body: str | bytes | None = None
    path_params: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class GatewayResponse:
    status_code: int
    body: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        return json.loads(self.body) if self.body else None


@dataclass(frozen=True, slots=True)
class Route:
    """One routing table entry; ``{collection}`` and ``{id}`` are placeholders."""

    method: str
    pattern: tuple[str, ...]
    operation: str


ROUTES: tuple[Route, ...] = (
    Route("GET", ("{collection}",), "list_posts"),
    Route("GET", ("{collection}", "{id}"), "get_post"),
    Route("POST", ("{collection}",), "create_post"),
    Route("PUT", ("{collection}", "{id}"), "update_post"),
    Route("DELETE", ("{collection}", "{id}"), "delete_post"),
)


class RoutingError(Exception):
    pass


class MethodNotAllowed(RoutingError):
    pass


class RouteNotFound(RoutingError):
    pass


def split_path(path: str, *, stage: str | None = None) -> tuple[str, ...]:
    """Split a request path into segments, dropping empty parts and the stage prefix."""
    segments = [segment for segment in path.split("/") if segment]
    if stage and len(segments) > 1 and segments[0] == stage:
        segments = segments[1:]
    return tuple(segments)


class Router:
    """Resolves (method, path segments) against a table of routes."""

    def __init__(self, routes: Iterable[Route]) -> None:
        self._routes = tuple(routes)
        self.methods = frozenset(route.method for route in self._routes)

    def resolve(self, method: str, segments: Sequence[str]) -> tuple[Route, dict[str, str]]:
        if method not in self.methods:
            raise MethodNotAllowed(method)
        for route in self._routes:
            if route.method != method:
                continue
            params = _match(route.pattern, segments)
            if params is not None:
                return route, params
        raise RouteNotFound("/" + "/".join(segments))


def _match(pattern: tuple[str, ...], segments: Sequence[str]) -> dict[str, str] | None:
    if len(pattern) != len(segments):
        return None
    params: dict[str, str] = {}
    for part, segment in zip(pattern, segments):
        if part == "{collection}":
            if segment not in COLLECTIONS:
                return None
        elif part == "{id}":
            params["id"] = segment
        elif part != segment:
            return None
    return params


Operation = Callable[[str | None, str | bytes | None], GatewayResponse]


class PostGateway:
    """Stateless request handler over a single long-lived store handle."""

    def __init__(
        self,
        store: PostStore | None,
        *,
        config_error: str | None = None,
        stage: str | None = "prod",
        allow_origin: str = "*",
        clock: Clock = utc_now,
        id_factory: IdFactory = new_post_id,
    ) -> None:
        self._store = store
        self._config_error = config_error
        self._stage = stage
        self._clock = clock
        self._id_factory = id_factory
        self._router = Router(ROUTES)
        self._headers = {
            "Content-Type": "application/json",
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Headers": "Content-Type",
            "Access-Control-Allow-Methods": ALLOW_METHODS,
        }
        self._operations: dict[str, Operation] = {
            "list_posts": self.list_posts,
            "get_post": self.get_post,
            "create_post": self.create_post,
            "update_post": self.update_post,
            "delete_post": self.delete_post,
        }

    @classmethod
    def from_settings(cls, settings: Settings, store: PostStore | None = None) -> PostGateway:
        """Build the gateway once per process; a store that cannot be built is remembered as an error."""
        config_error = None
        if store is None:
            try:
                store = build_store(settings)
            except ConfigurationError as exc:
                LOGGER.error("gateway.config_error", error=str(exc))
                config_error = str(exc)
        return cls(
            store,
            config_error=config_error,
            stage=settings.api_stage,
            allow_origin=settings.cors_allow_origin,
        )

    def handle(self, request: GatewayRequest) -> GatewayResponse:
        start = perf_counter()
        method = request.method.upper()
        operation = "unmatched"

        if method == "OPTIONS":
            operation = "preflight"
            response = self._respond(200)
        else:
            try:
                route, params = self._router.resolve(method, split_path(request.path, stage=self._stage))
            except MethodNotAllowed:
                response = self._respond(405, {"error": "Method not allowed"})
            except RouteNotFound:
                response = self._respond(404, {"error": "Not found"})
            else:
                operation = route.operation
                post_id = request.path_params.get("id") or params.get("id")
                response = self._run(operation, post_id, request.body)

        latency_ms = (perf_counter() - start) * 1000
        metrics.observe_request(operation=operation, status=response.status_code, latency_ms=latency_ms)
        LOGGER.info(
            "gateway.request",
            method=method,
            path=request.path,
            operation=operation,
            status=response.status_code,
            latency_ms=latency_ms,
        )
        return response

    def _run(self, operation: str, post_id: str | None, body: str | bytes | None) -> GatewayResponse:
        try:
            return self._operations[operation](post_id, body)
        except PostNotFound:
            return self._respond(404, {"error": "Post not found"})
        except StoreError as exc:
            metrics.observe_store_error(operation=operation)
            LOGGER.error("gateway.store_error", operation=operation, error=str(exc))
            return self._internal_error(exc)
        except Exception as exc:
            LOGGER.exception("gateway.unhandled_error", operation=operation)
            return self._internal_error(exc)

    def list_posts(self, post_id: str | None = None, body: str | bytes | None = None) -> GatewayResponse:
        posts = self._require_store().scan()
        return self._respond(200, [post.to_item() for post in posts])

    def get_post(self, post_id: str | None, body: str | bytes | None = None) -> GatewayResponse:
        post = self._require_store().get(_require_id(post_id))
        if post is None:
            raise PostNotFound(str(post_id))
        return self._respond(200, post.to_item())

    def create_post(self, post_id: str | None = None, body: str | bytes | None = None) -> GatewayResponse:
        store = self._require_store()
        post = Post.create(PostFields.from_body(body), clock=self._clock, id_factory=self._id_factory)
        store.put(post)
        return self._respond(201, post.to_item())

    def update_post(self, post_id: str | None, body: str | bytes | None = None) -> GatewayResponse:
        store = self._require_store()
        post = store.update(_require_id(post_id), PostFields.from_body(body), self._clock())
        return self._respond(200, post.to_item())

    def delete_post(self, post_id: str | None, body: str | bytes | None = None) -> GatewayResponse:
        self._require_store().delete(_require_id(post_id))
        return self._respond(204)

    def _require_store(self) -> PostStore:
        if self._store is None:
            raise ConfigurationError(self._config_error or "record store is not configured")
        return self._store

    def _respond(self, status_code: int, payload: Any = None) -> GatewayResponse:
        body = "" if payload is None else json.dumps(payload)
        return GatewayResponse(status_code=status_code, body=body, headers=dict(self._headers))

    def _internal_error(self, exc: Exception) -> GatewayResponse:
        return self._respond(500, {"error": "Internal server error", "details": str(exc)})


def _require_id(post_id: str | None) -> str:
    if not post_id:
        raise PostNotFound("")
    return post_id
