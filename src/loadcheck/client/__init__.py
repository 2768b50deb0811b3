"""HTTP client used by virtual users."""

from __future__ import annotations

from loadcheck.client.http_client import HttpClient, Response

__all__ = ["HttpClient", "Response"]
