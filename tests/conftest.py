"""Global pytest configuration and shared fixtures."""

import logging
import pathlib
import sys
from unittest.mock import AsyncMock

import pytest

from skulk.config import ServerConfig
from skulk.messages import MCPMessage
from skulk.transports import MCPTransport

# Configure logging for tests
logging.basicConfig(level=logging.DEBUG, format='%(name)s - %(levelname)s - %(message)s')

FAKE_SERVER = pathlib.Path(__file__).parent / "fixtures" / "fake_mcp_server.py"


@pytest.fixture
def fake_server_config():
    """Factory for configs that launch the scripted fake MCP server with FAKE_MCP_* settings."""

    def make(server_id: str = "echo", **env) -> ServerConfig:
        return ServerConfig.stdio(
            server_id,
            sys.executable,
            [str(FAKE_SERVER)],
            env={f"FAKE_MCP_{key.upper()}": str(value) for key, value in env.items()},
        )

    return make


@pytest.fixture
def make_reply():
    """Factory for reply messages as a transport would return them."""

    def make(request_id=0, result=None, error=None) -> MCPMessage:
        data = {"jsonrpc": "2.0", "id": request_id}
        if error is not None:
            data["error"] = error
        else:
            data["result"] = result
        return MCPMessage.from_dict(data)

    return make


@pytest.fixture
def server_config():
    """Plain stdio config; never started by tests that mock the transport."""
    return ServerConfig.stdio("test-server", "test-mcp-server", ["--flag"], name="Test Server")


@pytest.fixture
def mock_transport():
    """Transport mock whose replies are queued on send_request.side_effect."""
    transport = AsyncMock(spec=MCPTransport)
    transport.send_notification.return_value = None
    transport.close.return_value = None
    return transport


@pytest.fixture
def server_info_result():
    """Result of a successful initialize request."""
    return {
        "name": "echo",
        "version": "1.0",
        "protocolVersion": "2024-11-05",
        "capabilities": {},
    }
