"""
Shared fixtures: a small OpenAPI document and a recording fake upstream.
"""

from typing import Callable, List

import httpx
import pytest

from common.config import Config, HttpConfig


@pytest.fixture
def openapi_document() -> dict:
    """A document exercising query, path and body parameters."""
    return {
        "openapi": "3.0.3",
        "info": {"title": "Sandbox API", "version": "1.0.0", "description": "Code sandbox"},
        "servers": [{"url": "https://api.example.com"}],
        "paths": {
            "/search": {
                "get": {
                    "summary": "search_items",
                    "description": "Search items by keyword",
                    "parameters": [
                        {
                            "name": "q",
                            "in": "query",
                            "required": True,
                            "schema": {"type": "string", "description": "Keyword"},
                        },
                        {"name": "limit", "in": "query", "schema": {"type": "integer"}},
                    ],
                }
            },
            "/items/{item_id}": {
                "parameters": [
                    {
                        "name": "item_id",
                        "in": "path",
                        "required": True,
                        "schema": {"type": "string"},
                    }
                ],
                "get": {"x_mcp_tool": "get_item", "summary": "Fetch one item"},
                "delete": {"summary": "delete_item", "description": "Delete one item"},
            },
            "/run": {
                "post": {
                    "x_mcp_tool": "run_code",
                    "description": "Run code in the sandbox",
                    "requestBody": {
                        "content": {
                            "application/json": {
                                "schema": {
                                    "type": "object",
                                    "required": ["code"],
                                    "properties": {
                                        "code": {"type": "string", "description": "Source"},
                                        "timeout": {"type": "number"},
                                        "args": {"type": "array"},
                                    },
                                }
                            }
                        }
                    },
                }
            },
        },
    }


class RecordingUpstream:
    """Fake upstream that records requests and answers with a fixed response."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []
        self._respond = respond
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._respond(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def upstream_factory():
    """Build a RecordingUpstream around a response callable."""
    return RecordingUpstream


@pytest.fixture
def json_upstream() -> RecordingUpstream:
    """Upstream answering {"ok": true} to everything."""
    return RecordingUpstream(lambda request: httpx.Response(200, json={"ok": True}))


@pytest.fixture
def config() -> Config:
    """Default configuration with a short call deadline."""
    return Config(http=HttpConfig(request_timeout=2.0, document_timeout=2.0))
