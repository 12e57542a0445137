"""
MCP Server Connection

A single connection to one MCP server: the initialize handshake, the
JSON-RPC request/notification discipline and the tool operations.

Requests are single-outstanding. A request and its reply are exchanged
while holding the connection's transport lock, and the next line read
from the server is taken as the reply. Reply ids are not compared with
request ids unless the connection is created with strict_ids=True.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from . import __version__
from .config import ServerConfig
from .errors import MCPError, NotConnectedError, ProtocolError, RpcError, ToolError
from .messages import MCPMessage
from .transports import MCPTransport, create_transport
from .types import ConnectionState, ServerInfo, ToolSchema

log = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
CLIENT_NAME = "skulk"


class MCPConnection:
    """Connection to a single MCP server."""

    def __init__(self, config: ServerConfig, strict_ids: bool = False):
        """
        Create a connection. Nothing is started until initialize() is called.

        Args:
            config: Server configuration
            strict_ids: Reject replies whose id differs from the request id
        """
        self._config = config
        self._strict_ids = strict_ids
        self._transport: Optional[MCPTransport] = None
        self._transport_lock = asyncio.Lock()
        self._state = ConnectionState.CREATED
        self._server_info: Optional[ServerInfo] = None
        self._request_id = 0

    @property
    def config(self) -> ServerConfig:
        return self._config

    @property
    def server_id(self) -> str:
        return self._config.id

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        """True once the handshake has completed and until shutdown."""
        return self._state == ConnectionState.READY

    @property
    def server_info(self) -> Optional[ServerInfo]:
        return self._server_info

    async def initialize(self) -> ServerInfo:
        """
        Start the transport and perform the MCP handshake.

        Returns:
            ServerInfo reported by the server

        Raises:
            ProtocolError: If the connection was already initialized or the
                server info reply is malformed
            TransportError: If the transport cannot be created or used
            RpcError: If the server rejects the initialize request
        """
        if self._state != ConnectionState.CREATED:
            raise ProtocolError(f"Connection already initialized (state: {self._state.value})")

        log.info(f"[MCPConnection] Initializing MCP connection to {self.server_id}")
        self._state = ConnectionState.INITIALIZING

        try:
            transport = await create_transport(self._config)
            async with self._transport_lock:
                self._transport = transport
            self._ensure_initializing()

            result = await self._send_request("initialize", {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {
                    "tools": {},
                    "sampling": {}
                },
                "clientInfo": {
                    "name": CLIENT_NAME,
                    "version": __version__
                }
            })

            server_info = ServerInfo.from_dict(result)
            self._ensure_initializing()

        except BaseException:
            await self._abandon()
            raise

        self._server_info = server_info
        self._state = ConnectionState.READY

        try:
            await self._send_notification("notifications/initialized", {})
        except MCPError as e:
            log.warning(f"[MCPConnection] Failed to send initialized notification to {self.server_id}: {e}")

        log.info(
            f"[MCPConnection] MCP connection initialized: {self.server_id} "
            f"(server: {server_info.name} {server_info.version})"
        )
        return server_info

    async def list_tools(self) -> List[ToolSchema]:
        """List the tools the server advertises. Malformed entries are skipped."""
        self._ensure_ready()
        result = await self._send_request("tools/list", {})

        entries = result.get("tools") if isinstance(result, dict) else None
        tools = []
        if isinstance(entries, list):
            for entry in entries:
                try:
                    tools.append(ToolSchema.from_dict(entry))
                except ProtocolError as e:
                    log.debug(f"[MCPConnection] Skipping malformed tool from {self.server_id}: {e}")

        log.debug(f"[MCPConnection] Listed {len(tools)} tools from {self.server_id}")
        return tools

    async def call_tool(self, name: str, arguments: Any) -> Any:
        """
        Call a tool and return the content of its result.

        Raises:
            RpcError: If the server reports a JSON-RPC error
            ToolError: If the result carries an embedded tool error
        """
        self._ensure_ready()
        log.debug(f"[MCPConnection] Calling tool {name} on {self.server_id}")

        result = await self._send_request("tools/call", {
            "name": name,
            "arguments": arguments
        })

        if isinstance(result, dict):
            if "error" in result:
                raise ToolError(result["error"])
            return result.get("content")
        return None

    async def notify_sandbox_state(self, enabled: bool, policy: str) -> None:
        """Tell the server whether sandboxing is active and under which policy."""
        self._ensure_ready()
        await self._send_notification("notifications/sandbox_state", {
            "enabled": enabled,
            "policy": policy
        })

    async def ping(self) -> None:
        """Check the server responds. Raises on failure."""
        self._ensure_ready()
        await self._send_request("ping", {})

    async def shutdown(self) -> None:
        """Close the transport. The connection cannot be used afterwards."""
        if self._state == ConnectionState.SHUT_DOWN:
            return

        self._state = ConnectionState.SHUT_DOWN

        async with self._transport_lock:
            transport, self._transport = self._transport, None

        if transport is not None:
            await transport.close()

        log.info(f"[MCPConnection] MCP connection shutdown: {self.server_id}")

    async def _abandon(self) -> None:
        """Tear down after a failed handshake so no child process is left running."""
        self._state = ConnectionState.SHUT_DOWN
        transport, self._transport = self._transport, None
        if transport is not None:
            try:
                await transport.close()
            except MCPError as e:
                log.warning(f"[MCPConnection] Failed to close transport for {self.server_id}: {e}")

    def _ensure_initializing(self) -> None:
        # shutdown() ran while the transport was starting or the handshake was in flight
        if self._state != ConnectionState.INITIALIZING:
            raise NotConnectedError()

    def _ensure_ready(self) -> None:
        if self._state != ConnectionState.READY:
            raise NotConnectedError()

    async def _send_request(self, method: str, params: Dict[str, Any]) -> Any:
        """Send a JSON-RPC request and return the result of its reply."""
        async with self._transport_lock:
            if self._transport is None:
                raise NotConnectedError()

            request_id = self._request_id
            self._request_id += 1

            message = MCPMessage.request(request_id, method, params)
            log.debug(f"[MCPConnection] Sending {method} (id: {request_id}) to {self.server_id}")
            reply = await self._transport.send_request(message)

        if self._strict_ids and reply.id != request_id:
            raise ProtocolError(f"Reply id {reply.id!r} does not match request id {request_id}")

        if reply.error is not None:
            raise RpcError(reply.error)

        return reply.result

    async def _send_notification(self, method: str, params: Dict[str, Any]) -> None:
        """Send a JSON-RPC notification (no response expected)."""
        async with self._transport_lock:
            if self._transport is None:
                raise NotConnectedError()

            await self._transport.send_notification(MCPMessage.notification(method, params))
