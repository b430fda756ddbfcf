"""Terminal front end for the posts API.

Usage:
    blog list
    blog show <id>
    blog create --title "Hello" --content "World" --tags "intro, news"
    blog update <id> --title "Hello again" --content "..."
    blog delete <id>

The API base URL comes from ``--api-url`` or ``BLOG_API_URL``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from blog.browser import PostBrowser, PostDraft, render_text
from blog.client import PostsApiError, PostsClient
from blog.main import configure_logging
from blog.settings import get_settings


def build_parser(default_url: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="blog", description="Browse and publish blog posts.")
    parser.add_argument("--api-url", default=default_url, help=f"API base URL (default: {default_url})")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List posts, newest first")

    show = sub.add_parser("show", help="Show one post as JSON")
    show.add_argument("post_id")

    for name, help_text in (("create", "Create a post"), ("update", "Replace a post's fields")):
        command = sub.add_parser(name, help=help_text)
        if name == "update":
            command.add_argument("post_id")
        command.add_argument("--title", default="")
        command.add_argument("--content", default="")
        command.add_argument("--author", default="")
        command.add_argument("--tags", default="", help="Comma separated tags")

    delete = sub.add_parser("delete", help="Delete a post")
    delete.add_argument("post_id")
    return parser


async def run(args: argparse.Namespace, *, notice_seconds: float = 3.0) -> int:
    async with PostsClient(args.api_url) as client:
        if args.command in {"list", "create"}:
            browser = PostBrowser(client, notice_seconds=notice_seconds)
            if args.command == "create":
                draft = PostDraft.from_form(args.title, args.content, args.author, args.tags)
                ok = await browser.submit(draft)
            else:
                ok = await browser.load()
            print(render_text(browser))
            return 0 if ok else 1

        try:
            if args.command == "show":
                print(json.dumps(await client.get_post(args.post_id), indent=2))
            elif args.command == "update":
                draft = PostDraft.from_form(args.title, args.content, args.author, args.tags)
                print(json.dumps(await client.update_post(args.post_id, draft.to_payload()), indent=2))
            elif args.command == "delete":
                await client.delete_post(args.post_id)
                print(f"Deleted {args.post_id}")
        except PostsApiError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    configure_logging("warning")
    args = build_parser(settings.api_url).parse_args(argv)
    return asyncio.run(run(args, notice_seconds=settings.notice_seconds))


if __name__ == "__main__":
    sys.exit(main())
