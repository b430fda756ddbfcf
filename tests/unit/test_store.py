from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from botocore.exceptions import ClientError

from blog.posts import Post, PostFields
from blog.settings import Settings
from blog.store import (
    ConfigurationError,
    DynamoPostStore,
    MemoryPostStore,
    PostNotFound,
    StoreError,
    build_store,
    load_seed_posts,
)


def client_error(code: str, operation: str = "UpdateItem") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} raised"}}, operation)


class FakeTable:
    """Records calls and answers like a boto3 Table resource."""

    def __init__(self, pages: list[dict[str, Any]] | None = None) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.pages = pages or [{"Items": []}]
        self.items: dict[str, dict[str, Any]] = {}
        self.error: ClientError | None = None

    def scan(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("scan", kwargs))
        if self.error:
            raise self.error
        return self.pages[len([c for c in self.calls if c[0] == "scan"]) - 1]

    def get_item(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("get_item", kwargs))
        item = self.items.get(kwargs["Key"]["id"])
        return {"Item": item} if item else {}

    def put_item(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("put_item", kwargs))
        self.items[kwargs["Item"]["id"]] = kwargs["Item"]
        return {}

    def update_item(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("update_item", kwargs))
        if self.error:
            raise self.error
        key = kwargs["Key"]["id"]
        values = kwargs["ExpressionAttributeValues"]
        item = dict(self.items[key])
        item.update(
            title=values[":title"],
            content=values[":content"],
            author=values[":author"],
            tags=values[":tags"],
            updatedAt=values[":updatedAt"],
        )
        self.items[key] = item
        return {"Attributes": item}

    def delete_item(self, **kwargs: Any) -> dict[str, Any]:
        self.calls.append(("delete_item", kwargs))
        self.items.pop(kwargs["Key"]["id"], None)
        return {}


def sample_post(post_id: str = "p1") -> Post:
    return Post.create(
        PostFields(title="Title", content="Body", author="Ada", tags=["t"]),
        clock=lambda: "2024-01-01T00:00:00.000Z",
        id_factory=lambda: post_id,
    )


def test_dynamo_scan_follows_pagination() -> None:
    first = sample_post("a").to_item()
    second = sample_post("b").to_item()
    table = FakeTable(pages=[{"Items": [first], "LastEvaluatedKey": {"id": "a"}}, {"Items": [second]}])

    posts = DynamoPostStore(table).scan()

    assert [post.id for post in posts] == ["a", "b"]
    assert table.calls[1] == ("scan", {"ExclusiveStartKey": {"id": "a"}})


def test_dynamo_put_get_delete() -> None:
    table = FakeTable()
    store = DynamoPostStore(table)
    post = sample_post()

    store.put(post)
    assert store.get("p1") == post
    store.delete("p1")
    assert store.get("p1") is None
    store.delete("p1")

    assert [name for name, _ in table.calls].count("delete_item") == 2


def test_dynamo_update_is_conditional() -> None:
    table = FakeTable()
    store = DynamoPostStore(table)
    store.put(sample_post())

    updated = store.update("p1", PostFields(title="New"), "2024-02-01T00:00:00.000Z")

    name, kwargs = table.calls[-1]
    assert name == "update_item"
    assert kwargs["ConditionExpression"] == "attribute_exists(id)"
    assert kwargs["ReturnValues"] == "ALL_NEW"
    assert updated.title == "New"
    assert updated.author == "Anonymous"
    assert updated.created_at == "2024-01-01T00:00:00.000Z"
    assert updated.updated_at == "2024-02-01T00:00:00.000Z"


def test_dynamo_update_missing_id_raises_not_found() -> None:
    table = FakeTable()
    table.error = client_error("ConditionalCheckFailedException")

    with pytest.raises(PostNotFound):
        DynamoPostStore(table).update("nope", PostFields(), "2024-02-01T00:00:00.000Z")


def test_dynamo_client_errors_are_wrapped() -> None:
    table = FakeTable()
    table.error = client_error("ResourceNotFoundException", "Scan")

    with pytest.raises(StoreError) as excinfo:
        DynamoPostStore(table).scan()

    assert not isinstance(excinfo.value, PostNotFound)
    assert "ResourceNotFoundException" in str(excinfo.value)


def test_memory_store_returns_copies() -> None:
    store = MemoryPostStore([sample_post()])

    fetched = store.get("p1")
    fetched.tags.append("mutated")

    assert store.get("p1").tags == ["t"]


def test_memory_update_missing_id_writes_nothing() -> None:
    store = MemoryPostStore()

    with pytest.raises(PostNotFound):
        store.update("ghost", PostFields(), "2024-01-01T00:00:00.000Z")
    assert store.scan() == []


def test_build_store_requires_table_for_dynamodb() -> None:
    settings = Settings(store_backend="dynamodb")
    settings.posts_table_name = None

    with pytest.raises(ConfigurationError, match="POSTS_TABLE_NAME"):
        build_store(settings)


def test_build_store_memory_with_seed(tmp_path: Path) -> None:
    seed = tmp_path / "seed.yaml"
    seed.write_text(
        "- id: fixed\n"
        "  title: Seeded\n"
        "  content: Hello\n"
        "  createdAt: 2024-03-01T10:00:00Z\n"
        "- title: ''\n"
        "  tags: [a, 1]\n",
        encoding="utf-8",
    )

    store = build_store(Settings(store_backend="memory", seed_file=seed))
    posts = {post.title: post for post in store.scan()}

    fixed = store.get("fixed")
    assert fixed.created_at == "2024-03-01T10:00:00.000Z"
    assert fixed.updated_at == fixed.created_at
    assert posts["Untitled"].tags == ["a", "1"]
    assert posts["Untitled"].author == "Anonymous"


def test_seed_file_must_be_a_list(tmp_path: Path) -> None:
    seed = tmp_path / "seed.yaml"
    seed.write_text("title: not a list\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_seed_posts(seed)


def test_missing_seed_file_is_a_configuration_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="cannot load seed file"):
        load_seed_posts(tmp_path / "nope.yaml")


def test_malformed_seed_yaml_is_a_configuration_error(tmp_path: Path) -> None:
    seed = tmp_path / "seed.yaml"
    seed.write_text("- title: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="cannot load seed file"):
        build_store(Settings(store_backend="memory", seed_file=seed))
