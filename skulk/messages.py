"""
MCP Message Types and Serialization

Handles the JSON-RPC 2.0 envelope used by the Model Context Protocol.
Every frame on the wire is a single line of JSON.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import ProtocolError


class ErrorCodes:
    """Standard JSON-RPC 2.0 error codes."""
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


@dataclass
class MCPMessage:
    """MCP JSON-RPC message representation."""

    id: Optional[int] = None
    method: Optional[str] = None
    params: Optional[Dict[str, Any]] = None
    result: Optional[Any] = None
    error: Optional[Dict[str, Any]] = None

    @classmethod
    def request(cls, request_id: int, method: str, params: Optional[Dict[str, Any]] = None) -> "MCPMessage":
        """Create a request carrying an id."""
        return cls(id=request_id, method=method, params=params if params is not None else {})

    @classmethod
    def notification(cls, method: str, params: Optional[Dict[str, Any]] = None) -> "MCPMessage":
        """Create a notification (request without an id)."""
        return cls(method=method, params=params if params is not None else {})

    @property
    def is_request(self) -> bool:
        """Check if this is a request message."""
        return self.method is not None and self.id is not None

    @property
    def is_response(self) -> bool:
        """Check if this is a response message."""
        return self.method is None

    @property
    def is_notification(self) -> bool:
        """Check if this is a notification (request without ID)."""
        return self.method is not None and self.id is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data: Dict[str, Any] = {
            "jsonrpc": "2.0",
        }

        if self.id is not None:
            data["id"] = self.id

        if self.method is not None:
            data["method"] = self.method
            data["params"] = self.params if self.params is not None else {}
        elif self.error is not None:
            data["error"] = self.error
        else:
            data["result"] = self.result

        return data

    def to_json(self) -> str:
        """Serialize to a single-line JSON string."""
        try:
            return json.dumps(self.to_dict(), separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise ProtocolError(f"JSON error: {e}") from e

    def to_bytes(self) -> bytes:
        """Serialize to a newline-terminated frame."""
        return self.to_json().encode("utf-8") + b"\n"

    @classmethod
    def from_json(cls, json_str: str) -> "MCPMessage":
        """
        Create message from JSON string.

        Raises:
            ProtocolError: If the text is not valid JSON or not a JSON object.
        """
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Invalid JSON response: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MCPMessage":
        """Create message from dictionary."""
        if not isinstance(data, dict):
            raise ProtocolError(f"Invalid JSON response: expected an object, got {type(data).__name__}")

        error = data.get("error")
        if error is not None and not isinstance(error, dict):
            error = {"code": -1, "message": str(error)}

        return cls(
            id=data.get("id"),
            method=data.get("method"),
            params=data.get("params"),
            result=data.get("result"),
            error=error,
        )
