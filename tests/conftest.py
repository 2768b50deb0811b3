"""Shared test fixtures for the loadcheck test suite."""

from __future__ import annotations

import asyncio
import socket
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


# =============================================================================
# Network utilities
# =============================================================================

# Nothing listens on port 1; connections are refused immediately.
UNREACHABLE_URL = "http://127.0.0.1:1/pakaiwa"


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# =============================================================================
# Mock target server
# =============================================================================


@dataclass
class MockServer:
    """Handle on a running mock server.

    Attributes:
        root: Server root, e.g. ``http://127.0.0.1:54321``.
        hits: Requests received per env suffix.
        auth_headers: Authorization header values seen.
        content_types: Content-Type header values seen.
    """

    root: str
    hits: Counter[str] = field(default_factory=Counter)
    auth_headers: Counter[str] = field(default_factory=Counter)
    content_types: Counter[str] = field(default_factory=Counter)

    def url(self, prefix: str = "pakaiwa") -> str:
        """Return a base URL under *prefix*."""
        return f"{self.root}/{prefix}"


def _create_mock_app(server: MockServer) -> web.Application:
    """Build the mock target app.

    Routes:
        /pakaiwa/{env}: 200 with a JSON body.
        /broken/{env}: 500 with a JSON body.
        /empty/{env}: 200 with an empty body.
        /slow/{env}: 200 after a short delay.
    """

    def _track(request: web.Request) -> str:
        env = request.match_info["env"]
        server.hits[env] += 1
        server.auth_headers[request.headers.get("Authorization", "")] += 1
        server.content_types[request.headers.get("Content-Type", "")] += 1
        return env

    async def _ok_handler(request: web.Request) -> web.Response:
        return web.json_response({"env": _track(request), "status": "ok"})

    async def _broken_handler(request: web.Request) -> web.Response:
        return web.json_response({"env": _track(request), "error": True}, status=500)

    async def _empty_handler(request: web.Request) -> web.Response:
        _track(request)
        return web.Response(status=200, body=b"")

    async def _slow_handler(request: web.Request) -> web.Response:
        env = _track(request)
        await asyncio.sleep(0.3)
        return web.json_response({"env": env, "status": "ok"})

    app = web.Application()
    app.router.add_get("/pakaiwa/{env}", _ok_handler)
    app.router.add_get("/broken/{env}", _broken_handler)
    app.router.add_get("/empty/{env}", _empty_handler)
    app.router.add_get("/slow/{env}", _slow_handler)
    return app


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def mock_server() -> AsyncIterator[MockServer]:
    """Mock target server on the test's event loop."""
    port = _get_free_port()
    server = MockServer(root=f"http://127.0.0.1:{port}")
    runner = web.AppRunner(_create_mock_app(server))
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    yield server
    await runner.cleanup()


@pytest.fixture
def sync_mock_server() -> Iterator[MockServer]:
    """Mock target server running in a background thread.

    Used by CLI tests, where the run blocks the main thread with its own
    event loop.
    """
    port = _get_free_port()
    server = MockServer(root=f"http://127.0.0.1:{port}")
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(_create_mock_app(server))
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield server

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)


@pytest.fixture
def unreachable_url() -> str:
    """Base URL whose connections are refused."""
    return UNREACHABLE_URL
