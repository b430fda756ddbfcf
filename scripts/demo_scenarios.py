#!/usr/bin/env python3
"""
Demo Scenarios for the Blog Posts API

Walks a live deployment through the post lifecycle:
1. Create a post with only title and content (defaults filled in)
2. Fetch it back by id
3. Update it and check identity is preserved
4. Delete it, delete it again, and confirm it is gone

Usage:
    # Start the API locally first:
    STORE_BACKEND=memory python -m transports.http_fastapi_sync

    python scripts/demo_scenarios.py
    python scripts/demo_scenarios.py --api-url https://abc123.execute-api.us-east-1.amazonaws.com/prod
    python scripts/demo_scenarios.py --json
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass, field
from typing import Any

import requests

DEFAULT_API_URL = "http://127.0.0.1:3001"


class Colors:
    GREEN = "\033[92m"
    RED = "\033[91m"
    BOLD = "\033[1m"
    ENDC = "\033[0m"


@dataclass
class StepResult:
    name: str
    status_code: int
    passed: bool
    body: Any = None
    notes: list[str] = field(default_factory=list)


def call_api(method: str, url: str, payload: dict[str, Any] | None = None) -> requests.Response:
    try:
        return requests.request(method, url, json=payload, timeout=10)
    except requests.exceptions.ConnectionError:
        print(f"{Colors.RED}Error: Cannot connect to API at {url}{Colors.ENDC}")
        print("Make sure the server is running:")
        print("  STORE_BACKEND=memory python -m transports.http_fastapi_sync")
        sys.exit(1)
    except requests.exceptions.RequestException as e:
        print(f"{Colors.RED}Error calling API: {e}{Colors.ENDC}")
        sys.exit(1)


def _body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def run_lifecycle(api_url: str) -> list[StepResult]:
    base = api_url.rstrip("/") + "/posts"
    results: list[StepResult] = []

    resp = call_api("POST", base, {"title": "Hello", "content": "World"})
    created = _body(resp) or {}
    notes = []
    if created.get("author") != "Anonymous":
        notes.append("author default missing")
    if created.get("tags") != []:
        notes.append("tags default missing")
    if created.get("createdAt") != created.get("updatedAt"):
        notes.append("createdAt != updatedAt")
    results.append(StepResult("create", resp.status_code, resp.status_code == 201 and not notes, created, notes))

    post_id = created.get("id")
    if not post_id:
        return results

    resp = call_api("GET", f"{base}/{post_id}")
    fetched = _body(resp)
    results.append(StepResult("get", resp.status_code, resp.status_code == 200 and fetched == created, fetched))

    resp = call_api(
        "PUT",
        f"{base}/{post_id}",
        {"title": "Hello again", "content": "Updated", "author": "Demo", "tags": ["demo"]},
    )
    updated = _body(resp) or {}
    preserved = updated.get("id") == post_id and updated.get("createdAt") == created.get("createdAt")
    results.append(StepResult("update", resp.status_code, resp.status_code == 200 and preserved, updated))

    for name in ("delete", "delete again"):
        resp = call_api("DELETE", f"{base}/{post_id}")
        results.append(StepResult(name, resp.status_code, resp.status_code == 204))

    resp = call_api("GET", f"{base}/{post_id}")
    results.append(StepResult("get after delete", resp.status_code, resp.status_code == 404, _body(resp)))
    return results


def main():
    parser = argparse.ArgumentParser(
        description="Run the post lifecycle demo against a Blog Posts API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--api-url",
        default=DEFAULT_API_URL,
        help=f"API base URL (default: {DEFAULT_API_URL})",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON",
    )
    args = parser.parse_args()

    results = run_lifecycle(args.api_url)

    for result in results:
        color = Colors.GREEN if result.passed else Colors.RED
        mark = "PASS" if result.passed else "FAIL"
        print(f"{color}{mark}{Colors.ENDC} {result.name:<18} HTTP {result.status_code}")
        for note in result.notes:
            print(f"     - {note}")

    if args.json:
        print("\n" + json.dumps([result.__dict__ for result in results], indent=2))

    failed = sum(1 for result in results if not result.passed)
    print(f"\n{Colors.BOLD}{len(results) - failed}/{len(results)} steps passed{Colors.ENDC}")
    sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
