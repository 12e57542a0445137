"""
MCP Error Types

Every failure raised by skulk derives from MCPError, so callers can catch the
whole family in one place or pick out the specific kind they care about.
"""

import json
from typing import Any, Dict, Optional


class MCPError(Exception):
    """Base class for all MCP client errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def __str__(self):
        return self.message


class ServerNotFoundError(MCPError):
    """Raised when routing to a server id the manager does not track."""

    def __init__(self, server_id: str):
        self.server_id = server_id
        super().__init__(f"Server not found: {server_id}")


class NotConnectedError(MCPError):
    """Raised when an operation is attempted on a connection that is not ready."""

    def __init__(self):
        super().__init__("Not connected to MCP server")


class TransportError(MCPError):
    """Spawn, stream, write, flush or read failure on a transport."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Transport error: {detail}")


class TransportNotImplementedError(TransportError, NotImplementedError):
    """Raised by transport kinds that exist in configuration but have no implementation."""


class ProtocolError(MCPError):
    """Malformed frame or a reply that does not match the expected shape."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Protocol error: {detail}")


class RpcError(MCPError):
    """JSON-RPC error object reported by the server."""

    def __init__(self, error_data: Dict[str, Any]):
        code = error_data.get("code", -1)
        self.code = code if isinstance(code, int) and not isinstance(code, bool) else -1
        message = error_data.get("message", "Unknown error")
        self.rpc_message = message if isinstance(message, str) else "Unknown error"
        self.data = error_data.get("data")
        super().__init__(f"RPC error {self.code}: {self.rpc_message}")


class ToolError(MCPError):
    """Tool-level failure embedded in an otherwise successful tools/call result."""

    def __init__(self, error: Any):
        self.error = error
        super().__init__(f"Tool error: {json.dumps(error, separators=(',', ':'))}")


class MCPTimeoutError(MCPError, TimeoutError):
    """Deadline expired in a caller-side timeout wrapper."""

    def __init__(self, operation: Optional[str] = None):
        self.operation = operation
        if operation:
            super().__init__(f"Connection timeout: {operation}")
        else:
            super().__init__("Connection timeout")


class MCPIOError(MCPError, OSError):
    """Low-level I/O failure passed through from the operating system."""

    def __init__(self, error: OSError):
        self.original = error
        super().__init__(f"IO error: {error}")
