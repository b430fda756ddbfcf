"""Post entity and request body coercion."""

from __future__ import annotations

import json
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

DEFAULT_TITLE = "Untitled"
DEFAULT_CONTENT = ""
DEFAULT_AUTHOR = "Anonymous"

Clock = Callable[[], str]
IdFactory = Callable[[], str]


def utc_now() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a ``Z`` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_post_id() -> str:
    return str(uuid.uuid4())


@dataclass(slots=True)
class PostFields:
    """The client-editable part of a post."""

    title: str = DEFAULT_TITLE
    content: str = DEFAULT_CONTENT
    author: str = DEFAULT_AUTHOR
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> PostFields:
        """Coerce arbitrary input into fields, substituting defaults for falsy values."""
        data = data or {}
        return cls(
            title=_coerce_text(data.get("title"), DEFAULT_TITLE),
            content=_coerce_text(data.get("content"), DEFAULT_CONTENT),
            author=_coerce_text(data.get("author"), DEFAULT_AUTHOR),
            tags=_coerce_tags(data.get("tags")),
        )

    @classmethod
    def from_body(cls, body: str | bytes | None) -> PostFields:
        return cls.from_mapping(parse_body(body))


@dataclass(slots=True)
class Post:
    id: str
    title: str
    content: str
    author: str
    tags: list[str]
    created_at: str
    updated_at: str

    @classmethod
    def create(
        cls,
        fields: PostFields,
        *,
        clock: Clock = utc_now,
        id_factory: IdFactory = new_post_id,
    ) -> Post:
        timestamp = clock()
        return cls(
            id=id_factory(),
            title=fields.title,
            content=fields.content,
            author=fields.author,
            tags=list(fields.tags),
            created_at=timestamp,
            updated_at=timestamp,
        )

    @classmethod
    def from_item(cls, item: Mapping[str, Any]) -> Post:
        """Build a post from a stored item (camelCase attribute names)."""
        fields = PostFields.from_mapping(item)
        return cls(
            id=str(item["id"]),
            title=fields.title,
            content=fields.content,
            author=fields.author,
            tags=fields.tags,
            created_at=str(item.get("createdAt", "")),
            updated_at=str(item.get("updatedAt", item.get("createdAt", ""))),
        )

    def to_item(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "author": self.author,
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


def parse_body(body: str | bytes | None) -> dict[str, Any]:
    """Decode a JSON request body; anything that is not a JSON object becomes ``{}``."""
    if not body:
        return {}
    try:
        data = json.loads(body)
    except (TypeError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def _coerce_text(value: Any, default: str) -> str:
    if not value:
        return default
    return value if isinstance(value, str) else str(value)


def _coerce_tags(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [tag if isinstance(tag, str) else str(tag) for tag in value]
