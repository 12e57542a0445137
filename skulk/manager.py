"""
MCP Connection Manager

Tracks connections to many MCP servers at once: connect/disconnect,
a per-server tool cache for routing, and health monitoring.

The connection table, the tool cache and the health table are guarded by
separate locks. No method holds more than one of them at a time, and no
lock is held across an await.
"""

import asyncio
import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from .config import ServerConfig
from .connection import MCPConnection
from .errors import MCPError, ServerNotFoundError
from .types import ServerHealth, ServerInfo, ToolSchema

log = logging.getLogger(__name__)


class MCPManager:
    """Manages connections to multiple MCP servers."""

    def __init__(self, strict_ids: bool = False):
        self._strict_ids = strict_ids

        self._connections: Dict[str, MCPConnection] = {}
        self._connections_lock = threading.Lock()

        self._tool_cache: Dict[str, List[ToolSchema]] = {}
        self._tool_cache_lock = threading.Lock()

        self._health: Dict[str, ServerHealth] = {}
        self._health_lock = threading.Lock()

    async def __aenter__(self) -> "MCPManager":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect_all()

    async def connect(self, config: ServerConfig) -> ServerInfo:
        """
        Connect to an MCP server, discover its tools and start tracking it.

        Nothing is tracked unless the handshake and tool discovery both
        succeed. Connecting an id that is already tracked replaces the old
        connection, which is then shut down.

        Args:
            config: Server configuration

        Returns:
            ServerInfo reported by the server

        Raises:
            MCPError: If the transport, handshake or tool discovery fails
        """
        server_id = config.id
        log.info(f"[MCPManager] Connecting to MCP server {server_id}")

        connection = MCPConnection(config, strict_ids=self._strict_ids)
        try:
            server_info = await connection.initialize()
            tools = await connection.list_tools()
        except BaseException:
            await connection.shutdown()
            raise

        with self._connections_lock:
            previous = self._connections.get(server_id)
            self._connections[server_id] = connection
        with self._tool_cache_lock:
            self._tool_cache[server_id] = tools
        with self._health_lock:
            self._health[server_id] = ServerHealth.HEALTHY

        if previous is not None and previous is not connection:
            log.info(f"[MCPManager] Replacing existing connection to {server_id}")
            await self._shutdown_quietly(server_id, previous)

        log.info(f"[MCPManager] Connected to MCP server {server_id}: {len(tools)} tools")
        return server_info

    async def disconnect(self, server_id: str) -> None:
        """Stop tracking a server and shut its connection down. Unknown ids are ignored."""
        with self._connections_lock:
            connection = self._connections.pop(server_id, None)

        if connection is not None:
            await self._shutdown_quietly(server_id, connection)

        with self._connections_lock:
            reconnected = server_id in self._connections
        if reconnected:
            # connect() for the same id finished during shutdown; its entries stay
            log.info(f"[MCPManager] Disconnected stale connection to {server_id}; a new one is tracked")
            return

        with self._tool_cache_lock:
            self._tool_cache.pop(server_id, None)
        with self._health_lock:
            self._health.pop(server_id, None)

        log.info(f"[MCPManager] Disconnected from MCP server {server_id}")

    async def disconnect_all(self) -> None:
        """Disconnect from all servers."""
        for server_id in self.server_ids():
            await self.disconnect(server_id)

    async def _shutdown_quietly(self, server_id: str, connection: MCPConnection) -> None:
        try:
            await connection.shutdown()
        except MCPError as e:
            log.warning(f"[MCPManager] Error shutting down {server_id}: {e}")

    def get_connection(self, server_id: str) -> Optional[MCPConnection]:
        """Get a connection by server id."""
        with self._connections_lock:
            return self._connections.get(server_id)

    def server_ids(self) -> List[str]:
        """List all connected server ids."""
        with self._connections_lock:
            return list(self._connections.keys())

    def list_tools(self) -> List[ToolSchema]:
        """List all cached tools across all servers."""
        with self._tool_cache_lock:
            return [tool for tools in self._tool_cache.values() for tool in tools]

    def list_server_tools(self, server_id: str) -> List[ToolSchema]:
        """List cached tools of one server, empty if the server is unknown."""
        with self._tool_cache_lock:
            return list(self._tool_cache.get(server_id, []))

    def find_tool(self, name: str) -> Optional[Tuple[str, ToolSchema]]:
        """
        Find a tool by name across all servers.

        Returns the first (server_id, tool) match. When several servers
        offer a tool with the same name, which one wins is unspecified.
        """
        with self._tool_cache_lock:
            cache = list(self._tool_cache.items())
        # A server being disconnected leaves the connection table before its cache entry
        connected = set(self.server_ids())

        for server_id, tools in cache:
            if server_id not in connected:
                continue
            for tool in tools:
                if tool.name == name:
                    return server_id, tool
        return None

    async def call_tool(self, server_id: str, tool_name: str, arguments: Any) -> Any:
        """
        Call a tool on a specific server.

        Raises:
            ServerNotFoundError: If the server id is not connected
        """
        connection = self.get_connection(server_id)
        if connection is None:
            raise ServerNotFoundError(server_id)

        return await connection.call_tool(tool_name, arguments)

    def server_health(self, server_id: str) -> Optional[ServerHealth]:
        """Get the health status of a server, None if it is not tracked."""
        with self._health_lock:
            return self._health.get(server_id)

    async def refresh_tools(self, server_id: str) -> List[ToolSchema]:
        """
        Re-discover the tools of a server and replace its cache entry.

        Raises:
            ServerNotFoundError: If the server id is not connected
        """
        connection = self.get_connection(server_id)
        if connection is None:
            raise ServerNotFoundError(server_id)

        tools = await connection.list_tools()
        with self._tool_cache_lock:
            self._tool_cache[server_id] = tools

        log.debug(f"[MCPManager] Refreshed {len(tools)} tools for {server_id}")
        return list(tools)

    async def notify_sandbox_state(self, enabled: bool, policy: str) -> None:
        """
        Notify all connected servers of a sandbox state change.

        Delivery is best-effort: failures are logged per server and never
        reported to the caller.
        """
        with self._connections_lock:
            targets = list(self._connections.items())

        async def deliver(server_id: str, connection: MCPConnection) -> Optional[MCPError]:
            try:
                await connection.notify_sandbox_state(enabled, policy)
            except MCPError as e:
                return e
            return None

        results = await asyncio.gather(*(deliver(sid, conn) for sid, conn in targets))

        for (server_id, _), error in zip(targets, results):
            if error is not None:
                log.warning(f"[MCPManager] Failed to notify sandbox state to {server_id}: {error}")

    async def health_check(self) -> Dict[str, ServerHealth]:
        """
        Probe every tracked server and record its health.

        Connected servers are pinged (Healthy on success, Unhealthy on
        failure); servers whose connection is no longer up are marked
        Disconnected. Results are written once every probe has finished.
        """
        with self._connections_lock:
            targets = list(self._connections.items())

        async def probe(server_id: str, connection: MCPConnection) -> ServerHealth:
            if not connection.is_connected:
                return ServerHealth.DISCONNECTED
            try:
                await connection.ping()
            except MCPError as e:
                log.debug(f"[MCPManager] Ping failed for {server_id}: {e}")
                return ServerHealth.UNHEALTHY
            return ServerHealth.HEALTHY

        results = await asyncio.gather(*(probe(sid, conn) for sid, conn in targets))
        sweep = {server_id: health for (server_id, _), health in zip(targets, results)}

        with self._connections_lock:
            current = {server_id: self._connections.get(server_id) for server_id in sweep}
        with self._health_lock:
            for (server_id, connection), health in zip(targets, results):
                # Skip servers disconnected or replaced while the sweep ran
                if current[server_id] is connection:
                    self._health[server_id] = health

        unhealthy = [sid for sid, health in sweep.items() if health != ServerHealth.HEALTHY]
        if unhealthy:
            log.warning(f"[MCPManager] Health check found unhealthy servers: {unhealthy}")
        else:
            log.debug(f"[MCPManager] Health check passed for {len(sweep)} servers")
        return sweep

    def get_status(self) -> Dict[str, Any]:
        """Summarize tracked servers, their health and tool counts."""
        servers = {}
        for server_id in self.server_ids():
            health = self.server_health(server_id) or ServerHealth.UNKNOWN
            servers[server_id] = {
                "health": health.value,
                "tools": len(self.list_server_tools(server_id)),
            }
        return {
            "servers": servers,
            "tools": len(self.list_tools()),
        }
