"""Post Browser: client-side view state for listing and creating posts."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from time import monotonic
from typing import Any

import structlog

from blog.client import PostsApiError, PostsClient

LOGGER = structlog.get_logger(__name__)

LOAD_ERROR = "Error loading posts"
CREATE_ERROR = "Failed to create post"
REQUIRED_ERROR = "Title and content are required"
CREATED_NOTICE = "Post created successfully!"


class Phase(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    READY = "ready"


@dataclass(slots=True)
class PostDraft:
    title: str = ""
    content: str = ""
    author: str = ""
    tags: list[str] = field(default_factory=list)

    @classmethod
    def from_form(cls, title: str, content: str, author: str = "", tags_text: str = "") -> PostDraft:
        tags = [tag.strip() for tag in tags_text.split(",") if tag.strip()]
        return cls(title=title, content=content, author=author, tags=tags)

    def is_complete(self) -> bool:
        return bool(self.title.strip()) and bool(self.content.strip())

    def to_payload(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "content": self.content,
            "author": self.author,
            "tags": list(self.tags),
        }


@dataclass(slots=True)
class Notice:
    message: str
    expires_at: float | None = None

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class PostBrowser:
    """
    Holds the render-only copy of the post collection.

    Each ``load`` takes a new generation token; a response that arrives after
    a newer load was issued is dropped, so the last issued request wins.
    """

    def __init__(
        self,
        client: PostsClient,
        *,
        notice_seconds: float = 3.0,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self._client = client
        self._notice_seconds = notice_seconds
        self._clock = clock
        self._generation = 0
        self.phase = Phase.LOADING
        self.posts: list[dict[str, Any]] = []
        self.error: str | None = None
        self.draft = PostDraft()
        self._notice: Notice | None = None

    @property
    def generation(self) -> int:
        return self._generation

    async def load(self) -> bool:
        """Fetch the collection; returns False when the result was discarded or failed."""
        self._generation += 1
        token = self._generation
        self.phase = Phase.LOADING
        try:
            payload = await self._client.list_posts()
        except PostsApiError as exc:
            if token != self._generation:
                LOGGER.info("browser.load_superseded", generation=token, current=self._generation)
                return False
            LOGGER.warning("browser.load_failed", error=str(exc))
            self.phase = Phase.ERROR
            self.error = LOAD_ERROR
            return False

        if token != self._generation:
            LOGGER.info("browser.load_superseded", generation=token, current=self._generation)
            return False

        posts = payload if isinstance(payload, list) else []
        self.posts = sort_by_recency(post for post in posts if isinstance(post, dict))
        self.phase = Phase.READY
        self.error = None
        return True

    async def submit(self, draft: PostDraft | None = None) -> bool:
        """Create a post from ``draft`` (or the current draft) and refresh the list."""
        draft = draft or self.draft
        if not draft.is_complete():
            self.error = REQUIRED_ERROR
            return False

        try:
            await self._client.create_post(draft.to_payload())
        except PostsApiError as exc:
            LOGGER.warning("browser.create_failed", error=str(exc))
            self.error = CREATE_ERROR
            return False

        self.draft = PostDraft()
        self.error = None
        self._notice = Notice(CREATED_NOTICE, expires_at=self._clock() + self._notice_seconds)
        await self.load()
        return True

    def dismiss_error(self) -> None:
        self.error = None

    def current_notice(self) -> str | None:
        """The success notice, or None once it has expired."""
        if self._notice is None:
            return None
        if self._notice.expired(self._clock()):
            self._notice = None
            return None
        return self._notice.message


def sort_by_recency(posts) -> list[dict[str, Any]]:
    return sorted(posts, key=lambda post: str(post.get("createdAt") or ""), reverse=True)


def render_text(browser: PostBrowser, *, preview: int = 150) -> str:
    """Plain-text rendering of the browser state for terminals."""
    lines: list[str] = []
    if browser.error:
        lines.append(f"! {browser.error}")
    notice = browser.current_notice()
    if notice:
        lines.append(f"* {notice}")

    if browser.phase is Phase.LOADING:
        # nothing to show until a load has been issued
        if browser.generation:
            lines.append("Loading posts...")
    elif browser.phase is Phase.READY:
        if not browser.posts:
            lines.append("No posts available.")
        for post in browser.posts:
            content = str(post.get("content", ""))
            if len(content) > preview:
                content = content[:preview] + "..."
            lines.append(f"{post.get('title', '')}  [{post.get('id', '')}]")
            lines.append(f"  By: {post.get('author', '')}  Created: {post.get('createdAt', '')}")
            if content:
                lines.append(f"  {content}")
            tags = post.get("tags") or []
            if tags:
                lines.append("  Tags: " + ", ".join(str(tag) for tag in tags))
    return "\n".join(lines)
