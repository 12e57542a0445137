"""
skulk - MCP (Model Context Protocol) connection manager

Connects to MCP tool servers, performs the protocol handshake, caches each
server's tool catalog and routes tool calls by server id or tool name.

Key components:
- MCPManager: Tracks many server connections, tool caches and health
- MCPConnection: Handshake and JSON-RPC exchange with a single server
- MCPTransport: Transport abstraction (stdio implemented; socket, HTTP stubs)
- ServerConfig: Launch parameters for a server
"""

__version__ = "0.1.0"

from .config import ServerConfig, TransportType, load_server_configs
from .connection import MCPConnection
from .errors import (
    MCPError,
    MCPIOError,
    MCPTimeoutError,
    NotConnectedError,
    ProtocolError,
    RpcError,
    ServerNotFoundError,
    ToolError,
    TransportError,
    TransportNotImplementedError,
)
from .manager import MCPManager
from .messages import ErrorCodes, MCPMessage
from .transports import HTTPTransport, MCPTransport, SocketTransport, StdioTransport, create_transport
from .types import (
    ConnectionState,
    PromptsCapability,
    ResourcesCapability,
    SamplingCapability,
    ServerCapabilities,
    ServerHealth,
    ServerInfo,
    ToolSchema,
    ToolsCapability,
)

__all__ = [
    "__version__",
    # Core components
    "MCPManager",
    "MCPConnection",
    "MCPTransport",
    "StdioTransport",
    "SocketTransport",
    "HTTPTransport",
    "create_transport",
    "MCPMessage",
    "ErrorCodes",

    # Configuration
    "ServerConfig",
    "TransportType",
    "load_server_configs",

    # Types
    "ToolSchema",
    "ServerInfo",
    "ServerCapabilities",
    "ToolsCapability",
    "ResourcesCapability",
    "PromptsCapability",
    "SamplingCapability",
    "ServerHealth",
    "ConnectionState",

    # Errors
    "MCPError",
    "ServerNotFoundError",
    "NotConnectedError",
    "TransportError",
    "TransportNotImplementedError",
    "ProtocolError",
    "RpcError",
    "ToolError",
    "MCPTimeoutError",
    "MCPIOError",
]
