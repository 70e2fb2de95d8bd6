from __future__ import annotations

import json
import re

import httpx
import pytest
from fastapi.testclient import TestClient

from core.http_client import HttpClient
from core.kernel import create_default_kernel
from web.server import create_app

BACKEND_URL = "http://backend.test/api/nav"


def _ok(data) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "data": data})


class FakeNavBackend:
    """In-memory NAV backend served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: list[tuple[str, str]] = []
        self.bookmarks = {
            1: {"id": 1, "scheme_id": 11, "scheme_code": 119551, "scheme_name": "Alpha Fund", "daily_download_enabled": False},
        }
        # Jobs listed here report "running" forever.
        self.running_jobs = {99}

    def handle(self, request: httpx.Request) -> httpx.Response:
        method = request.method
        path = request.url.path.removeprefix("/api/nav")
        self.requests.append((method, path))

        if method == "POST" and path == "/download/daily":
            return _ok({"jobId": 42, "alreadyExists": False})
        if method == "POST" and path == "/download/historical":
            return _ok({"jobId": 7, "estimatedTimeMs": 120000})
        if method == "GET" and re.fullmatch(r"/downloads/\d+/sequential-progress", path):
            return httpx.Response(404, json={"success": False, "error": "Not found"})
        match = re.fullmatch(r"/download/progress/(\d+)", path)
        if method == "GET" and match:
            job_id = int(match.group(1))
            if job_id in self.running_jobs:
                return _ok({"jobId": job_id, "status": "running", "progressPercentage": 15})
            return _ok(
                {
                    "jobId": job_id,
                    "status": "completed",
                    "progressPercentage": 100,
                    "totalSchemes": 2,
                    "processedSchemes": 2,
                }
            )
        if method == "DELETE" and re.fullmatch(r"/download/jobs/\d+", path):
            return _ok(None)
        if method == "GET" and path == "/download/active":
            return _ok({"active_downloads": []})
        if method == "GET" and path == "/download/jobs":
            return _ok({"jobs": [{"id": 42, "job_type": "daily", "status": "completed"}]})
        if method == "GET" and path == "/statistics":
            return _ok({"total_schemes_tracked": 1, "total_nav_records": 250, "latest_nav_date": "2024-06-28"})
        if method == "GET" and path == "/check-today":
            return httpx.Response(200, json={"success": False, "error": "Today check unavailable"})
        if method == "GET" and path == "/bookmarks":
            return _ok({"bookmarks": list(self.bookmarks.values())})
        match = re.fullmatch(r"/bookmarks/(\d+)", path)
        if method == "PUT" and match:
            bookmark = self.bookmarks[int(match.group(1))]
            bookmark.update(json.loads(request.content))
            return _ok(bookmark)

        return httpx.Response(404, json={"success": False, "error": f"No route for {method} {path}"})


@pytest.fixture(scope="module")
def backend():
    return FakeNavBackend()


@pytest.fixture(scope="module")
def app_client(backend):
    def kernel_factory():
        http = HttpClient(BACKEND_URL, transport=httpx.MockTransport(backend.handle))
        return create_default_kernel(http)

    with TestClient(create_app(kernel_factory)) as client:
        yield client
