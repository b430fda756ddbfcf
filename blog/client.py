"""Async HTTP client for the posts API."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

logger = structlog.get_logger(__name__)


class PostsApiError(Exception):
    """The posts API answered with an error status or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PostsClient:
    """
    Thin wrapper over ``httpx.AsyncClient`` for the five post operations.

    Usage:
        async with PostsClient("https://api.example.com/prod") as client:
            posts = await client.list_posts()
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def connect(self) -> None:
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            headers={"Content-Type": "application/json"},
            transport=self._transport,
        )

    async def disconnect(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def list_posts(self) -> Any:
        """Return the decoded list response; callers decide what to do with non-list payloads."""
        return await self._request("GET", "/posts")

    async def get_post(self, post_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/posts/{post_id}")

    async def create_post(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/posts", json=payload)

    async def update_post(self, post_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PUT", f"/posts/{post_id}", json=payload)

    async def delete_post(self, post_id: str) -> None:
        await self._request("DELETE", f"/posts/{post_id}")

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        if not self._client:
            await self.connect()
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("posts_api_unreachable", method=method, url=url, error=str(e))
            raise PostsApiError(str(e)) from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(
                "posts_api_error",
                method=method,
                url=url,
                status_code=response.status_code,
                error=message,
            )
            raise PostsApiError(message, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise PostsApiError(f"invalid JSON from {url}", status_code=response.status_code) from e


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"
