"""
Tests for the JSON-RPC 2.0 envelope layer.
"""

import pytest

from toolserver.jsonrpc import (
    INVALID_REQUEST,
    JSONRPCHandler,
    JSONRPCErrorResponse,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    text_item,
)


class TestJSONRPCProtocol:
    """Test JSON-RPC 2.0 protocol compliance."""

    def test_create_request(self):
        """Test JSON-RPC request creation."""
        request = JSONRPCHandler.create_request(
            id="test-123", method="test/method", params={"param1": "value1"}
        )

        assert request.jsonrpc == "2.0"
        assert request.id == "test-123"
        assert request.method == "test/method"
        assert request.params == {"param1": "value1"}

    def test_create_response(self):
        """Test JSON-RPC response creation."""
        response = JSONRPCHandler.create_response(id=7, result={"success": True})

        assert response.jsonrpc == "2.0"
        assert response.id == 7
        assert response.result == {"success": True}

    def test_create_error_response(self):
        """Test JSON-RPC error response creation."""
        error_response = JSONRPCHandler.create_error_response(
            id=None, code=-32700, message="Parse error"
        )

        assert error_response.id is None
        assert error_response.error.code == -32700
        assert error_response.error.message == "Parse error"
        assert error_response.model_dump()["error"]["data"] is None

    def test_create_notification(self):
        """Test JSON-RPC notification creation."""
        notification = JSONRPCHandler.create_notification(
            method="notifications/initialized", params=None
        )

        assert notification.method == "notifications/initialized"
        # Notifications don't have IDs
        assert not hasattr(notification, "id")

    def test_parse_message_request(self):
        """Test parsing JSON-RPC request message."""
        data = {"jsonrpc": "2.0", "id": 1, "method": "tools/list", "params": {"cursor": "50"}}

        message = JSONRPCHandler.parse_message(data)

        assert isinstance(message, JSONRPCRequest)
        assert message.id == 1
        assert message.params == {"cursor": "50"}

    def test_parse_message_notification(self):
        """Test parsing JSON-RPC notification message."""
        data = {"jsonrpc": "2.0", "method": "notifications/cancelled", "params": {"requestId": 3}}

        message = JSONRPCHandler.parse_message(data)

        assert isinstance(message, JSONRPCNotification)
        assert message.params == {"requestId": 3}

    def test_parse_message_responses(self):
        """Responses and error responses are recognized by their payload key."""
        ok = JSONRPCHandler.parse_message({"jsonrpc": "2.0", "id": 1, "result": {}})
        err = JSONRPCHandler.parse_message(
            {"jsonrpc": "2.0", "id": 1, "error": {"code": -1, "message": "x"}}
        )

        assert isinstance(ok, JSONRPCResponse)
        assert isinstance(err, JSONRPCErrorResponse)

    @pytest.mark.parametrize(
        "data",
        [
            "not an object",
            42,
            {"jsonrpc": "2.0"},
            {"jsonrpc": "2.0", "id": 1},
            {"jsonrpc": "1.0", "id": 1, "method": "ping"},
            {"jsonrpc": "2.0", "id": 1, "method": "ping", "params": [1, 2]},
            {"jsonrpc": "2.0", "id": None, "method": "ping"},
        ],
    )
    def test_parse_message_rejects_invalid(self, data):
        """Malformed envelopes raise ValueError."""
        with pytest.raises(ValueError):
            JSONRPCHandler.parse_message(data)

    def test_batch_detection(self):
        """Test batch request detection."""
        single_request = {"jsonrpc": "2.0", "id": "1", "method": "test"}
        batch_request = [
            {"jsonrpc": "2.0", "id": "1", "method": "test1"},
            {"jsonrpc": "2.0", "id": "2", "method": "test2"},
        ]

        assert not JSONRPCHandler.is_batch(single_request)
        assert JSONRPCHandler.is_batch(batch_request)

    def test_decode_routes_requests_and_notifications(self):
        """Requests and notifications come back as messages to route."""
        request = JSONRPCHandler.decode({"jsonrpc": "2.0", "id": 1, "method": "ping"})
        notification = JSONRPCHandler.decode(
            {"jsonrpc": "2.0", "method": "notifications/initialized"}
        )

        assert isinstance(request, JSONRPCRequest)
        assert isinstance(notification, JSONRPCNotification)

    def test_decode_invalid_keeps_readable_id(self):
        """An invalid message becomes INVALID_REQUEST, echoing its id when usable."""
        with_id = JSONRPCHandler.decode({"jsonrpc": "2.0", "id": "abc", "method": 5})
        without_id = JSONRPCHandler.decode(["not", "an", "object"])

        assert isinstance(with_id, JSONRPCErrorResponse)
        assert with_id.id == "abc"
        assert with_id.error.code == INVALID_REQUEST
        assert without_id.id is None

    def test_decode_ignores_responses(self):
        """The bridge sends no requests, so incoming responses are dropped."""
        assert JSONRPCHandler.decode({"jsonrpc": "2.0", "id": 1, "result": {}}) is None

    def test_dump_omits_empty_error_data(self):
        """Error payloads carry `data` only when there is some."""
        bare = JSONRPCHandler.dump(
            JSONRPCHandler.create_error_response(None, INVALID_REQUEST, "bad")
        )
        detailed = JSONRPCHandler.dump(
            JSONRPCHandler.create_error_response(3, INVALID_REQUEST, "bad", data={"field": "x"})
        )

        assert bare == {
            "jsonrpc": "2.0",
            "id": None,
            "error": {"code": INVALID_REQUEST, "message": "bad"},
        }
        assert detailed["error"]["data"] == {"field": "x"}

    def test_text_item(self):
        assert text_item("hi") == {"type": "text", "text": "hi"}
