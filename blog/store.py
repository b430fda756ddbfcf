"""Record store access for the posts table."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Any

import boto3
import structlog
import yaml
from botocore.exceptions import BotoCoreError, ClientError

from blog.posts import Post, PostFields, new_post_id, utc_now
from blog.settings import Settings

LOGGER = structlog.get_logger(__name__)

MISSING_TABLE_MESSAGE = "POSTS_TABLE_NAME environment variable is not set"


class StoreError(Exception):
    """A record store call failed."""


class PostNotFound(StoreError):
    def __init__(self, post_id: str) -> None:
        super().__init__(f"post {post_id!r} does not exist")
        self.post_id = post_id


class ConfigurationError(StoreError):
    """The store cannot be constructed from the current settings."""


class PostStore(ABC):
    """Single-table key-value store holding posts keyed by ``id``."""

    @abstractmethod
    def scan(self) -> list[Post]:
        """Return every post in the table, in store order."""

    @abstractmethod
    def get(self, post_id: str) -> Post | None:
        """Return the post with ``post_id`` or ``None``."""

    @abstractmethod
    def put(self, post: Post) -> None:
        """Write ``post`` unconditionally."""

    @abstractmethod
    def update(self, post_id: str, fields: PostFields, updated_at: str) -> Post:
        """Rewrite the editable fields of an existing post.

        Raises ``PostNotFound`` when ``post_id`` is absent; nothing is written then.
        """

    @abstractmethod
    def delete(self, post_id: str) -> None:
        """Remove ``post_id``; deleting an absent id is not an error."""


class DynamoPostStore(PostStore):
    """Posts table backed by a boto3 DynamoDB ``Table`` resource."""

    def __init__(self, table: Any) -> None:
        self._table = table

    @classmethod
    def from_settings(cls, settings: Settings) -> DynamoPostStore:
        if not settings.posts_table_name:
            raise ConfigurationError(MISSING_TABLE_MESSAGE)
        resource_kwargs: dict[str, Any] = {}
        if settings.aws_region:
            resource_kwargs["region_name"] = settings.aws_region
        if settings.dynamodb_endpoint_url:
            resource_kwargs["endpoint_url"] = settings.dynamodb_endpoint_url
        try:
            resource = boto3.resource("dynamodb", **resource_kwargs)
        except BotoCoreError as exc:
            raise ConfigurationError(str(exc)) from exc
        LOGGER.info("store.dynamodb", table=settings.posts_table_name)
        return cls(resource.Table(settings.posts_table_name))

    def scan(self) -> list[Post]:
        items: list[dict[str, Any]] = []
        kwargs: dict[str, Any] = {}
        while True:
            result = self._call("scan", self._table.scan, **kwargs)
            items.extend(result.get("Items", []))
            last_key = result.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
        return [Post.from_item(item) for item in items]

    def get(self, post_id: str) -> Post | None:
        result = self._call("get", self._table.get_item, Key={"id": post_id})
        item = result.get("Item")
        return Post.from_item(item) if item else None

    def put(self, post: Post) -> None:
        self._call("put", self._table.put_item, Item=post.to_item())

    def update(self, post_id: str, fields: PostFields, updated_at: str) -> Post:
        try:
            result = self._table.update_item(
                Key={"id": post_id},
                UpdateExpression=(
                    "SET #title = :title, #content = :content, #author = :author, "
                    "tags = :tags, updatedAt = :updatedAt"
                ),
                ConditionExpression="attribute_exists(id)",
                ExpressionAttributeNames={
                    "#title": "title",
                    "#content": "content",
                    "#author": "author",
                },
                ExpressionAttributeValues={
                    ":title": fields.title,
                    ":content": fields.content,
                    ":author": fields.author,
                    ":tags": list(fields.tags),
                    ":updatedAt": updated_at,
                },
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise PostNotFound(post_id) from exc
            raise self._wrap("update", exc) from exc
        except BotoCoreError as exc:
            raise self._wrap("update", exc) from exc
        return Post.from_item(result["Attributes"])

    def delete(self, post_id: str) -> None:
        self._call("delete", self._table.delete_item, Key={"id": post_id})

    def _call(self, operation: str, method: Any, **kwargs: Any) -> dict[str, Any]:
        try:
            return method(**kwargs)
        except (BotoCoreError, ClientError) as exc:
            raise self._wrap(operation, exc) from exc

    @staticmethod
    def _wrap(operation: str, exc: Exception) -> StoreError:
        LOGGER.error("store.error", operation=operation, error=str(exc))
        return StoreError(str(exc))


class MemoryPostStore(PostStore):
    """In-process store for local serving and tests."""

    def __init__(self, posts: list[Post] | None = None) -> None:
        self._items: dict[str, Post] = {}
        self._lock = RLock()
        for post in posts or []:
            self._items[post.id] = post

    def scan(self) -> list[Post]:
        with self._lock:
            return [_copy(post) for post in self._items.values()]

    def get(self, post_id: str) -> Post | None:
        with self._lock:
            post = self._items.get(post_id)
            return _copy(post) if post else None

    def put(self, post: Post) -> None:
        with self._lock:
            self._items[post.id] = _copy(post)

    def update(self, post_id: str, fields: PostFields, updated_at: str) -> Post:
        with self._lock:
            current = self._items.get(post_id)
            if current is None:
                raise PostNotFound(post_id)
            current.title = fields.title
            current.content = fields.content
            current.author = fields.author
            current.tags = list(fields.tags)
            current.updated_at = updated_at
            return _copy(current)

    def delete(self, post_id: str) -> None:
        with self._lock:
            self._items.pop(post_id, None)


def _copy(post: Post) -> Post:
    return Post.from_item(post.to_item())


def load_seed_posts(path: Path) -> list[Post]:
    """Load posts from a YAML list of mappings, filling in ids and timestamps."""
    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or []
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"cannot load seed file {path}: {exc}") from exc
    if not isinstance(raw, list):
        raise ConfigurationError(f"seed file {path} must contain a list of posts")

    posts: list[Post] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        created_at = _timestamp(entry.get("createdAt")) or utc_now()
        item = {
            **entry,
            "id": str(entry.get("id") or new_post_id()),
            "createdAt": created_at,
            "updatedAt": _timestamp(entry.get("updatedAt")) or created_at,
        }
        posts.append(Post.from_item(item))
    return posts


def _timestamp(value: Any) -> str | None:
    # PyYAML turns unquoted timestamps into datetime objects
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return str(value) if value else None


def build_store(settings: Settings) -> PostStore:
    """Construct the process-wide store handle for the configured backend."""
    if settings.store_backend == "memory":
        posts = load_seed_posts(settings.seed_file) if settings.seed_file else []
        LOGGER.info("store.memory", seeded=len(posts))
        return MemoryPostStore(posts)
    return DynamoPostStore.from_settings(settings)
