from __future__ import annotations

from itertools import count

import pytest

from blog.gateway import (
    ROUTES,
    GatewayRequest,
    MethodNotAllowed,
    PostGateway,
    RouteNotFound,
    Router,
    split_path,
)
from blog.posts import Post, PostFields
from blog.settings import Settings
from blog.store import MemoryPostStore, StoreError


class FailingStore(MemoryPostStore):
    def scan(self) -> list[Post]:
        raise StoreError("ProvisionedThroughputExceededException: slow down")


class BrokenStore(MemoryPostStore):
    def put(self, post: Post) -> None:
        raise RuntimeError("unexpected")


def make_gateway(store=None, **kwargs) -> PostGateway:
    ids = count(1)
    kwargs.setdefault("clock", lambda: "2024-05-01T12:00:00.000Z")
    kwargs.setdefault("id_factory", lambda: f"post-{next(ids)}")
    return PostGateway(store if store is not None else MemoryPostStore(), **kwargs)


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/posts", ("posts",)),
        ("/posts/", ("posts",)),
        ("/prod/posts/abc", ("posts", "abc")),
        ("//blog//abc/", ("blog", "abc")),
        ("/prod", ("prod",)),
        ("/", ()),
    ],
)
def test_split_path(path: str, expected: tuple[str, ...]) -> None:
    assert split_path(path, stage="prod") == expected


def test_router_resolves_operations() -> None:
    router = Router(ROUTES)

    route, params = router.resolve("GET", ("posts",))
    assert route.operation == "list_posts"
    assert params == {}

    route, params = router.resolve("DELETE", ("blog", "42"))
    assert route.operation == "delete_post"
    assert params == {"id": "42"}


def test_router_distinguishes_unknown_method_from_unknown_path() -> None:
    router = Router(ROUTES)

    with pytest.raises(MethodNotAllowed):
        router.resolve("PATCH", ("posts", "1"))
    with pytest.raises(RouteNotFound):
        router.resolve("GET", ("comments",))
    with pytest.raises(RouteNotFound):
        router.resolve("PUT", ("posts",))
    with pytest.raises(RouteNotFound):
        router.resolve("GET", ("posts", "1", "extra"))


def test_create_uses_injected_clock_and_id_factory() -> None:
    gateway = make_gateway()

    resp = gateway.handle(GatewayRequest("POST", "/posts", body='{"title": "Hi", "content": "There"}'))

    assert resp.status_code == 201
    assert resp.json() == {
        "id": "post-1",
        "title": "Hi",
        "content": "There",
        "author": "Anonymous",
        "tags": [],
        "createdAt": "2024-05-01T12:00:00.000Z",
        "updatedAt": "2024-05-01T12:00:00.000Z",
    }


def test_update_refreshes_updated_at_only() -> None:
    stamps = iter(["2024-05-01T12:00:00.000Z", "2024-05-02T08:30:00.000Z"])
    gateway = make_gateway(clock=lambda: next(stamps))
    created = gateway.handle(GatewayRequest("POST", "/posts", body='{"title": "a", "content": "b"}')).json()

    resp = gateway.handle(GatewayRequest("PUT", f"/posts/{created['id']}", body='{"content": "c"}'))
    updated = resp.json()

    assert updated["createdAt"] == "2024-05-01T12:00:00.000Z"
    assert updated["updatedAt"] == "2024-05-02T08:30:00.000Z"
    assert updated["title"] == "Untitled"
    assert updated["author"] == "Anonymous"


def test_path_parameters_take_precedence() -> None:
    store = MemoryPostStore()
    store.put(Post.create(PostFields(title="kept"), id_factory=lambda: "real-id"))
    gateway = make_gateway(store)

    resp = gateway.handle(
        GatewayRequest("GET", "/posts/%7Bid%7D", path_params={"id": "real-id"})
    )

    assert resp.status_code == 200
    assert resp.json()["title"] == "kept"


def test_store_failure_becomes_internal_error_with_details() -> None:
    gateway = make_gateway(FailingStore())

    resp = gateway.handle(GatewayRequest("GET", "/posts"))

    assert resp.status_code == 500
    assert resp.json() == {
        "error": "Internal server error",
        "details": "ProvisionedThroughputExceededException: slow down",
    }
    assert resp.headers["Access-Control-Allow-Origin"] == "*"


def test_unexpected_error_becomes_internal_error() -> None:
    gateway = make_gateway(BrokenStore())

    resp = gateway.handle(GatewayRequest("POST", "/posts", body="{}"))

    assert resp.status_code == 500
    assert resp.json()["details"] == "unexpected"


def test_configuration_error_reported_on_every_operation() -> None:
    gateway = PostGateway(None, config_error="POSTS_TABLE_NAME environment variable is not set")

    for method, path in (("GET", "/posts"), ("GET", "/posts/1"), ("POST", "/posts"), ("DELETE", "/posts/1")):
        resp = gateway.handle(GatewayRequest(method, path))
        assert resp.status_code == 500
        assert resp.json()["details"] == "POSTS_TABLE_NAME environment variable is not set"

    assert gateway.handle(GatewayRequest("OPTIONS", "/posts")).status_code == 200
    assert gateway.handle(GatewayRequest("GET", "/elsewhere")).status_code == 404


def test_custom_allow_origin() -> None:
    gateway = make_gateway(allow_origin="https://blog.example.com")
    resp = gateway.handle(GatewayRequest("options", "/posts"))
    assert resp.headers["Access-Control-Allow-Origin"] == "https://blog.example.com"
    assert resp.body == ""


def test_bad_seed_file_serves_internal_errors(tmp_path) -> None:
    settings = Settings(store_backend="memory", seed_file=tmp_path / "nope.yaml")

    gateway = PostGateway.from_settings(settings)
    resp = gateway.handle(GatewayRequest("GET", "/posts"))

    assert resp.status_code == 500
    assert "nope.yaml" in resp.json()["details"]
