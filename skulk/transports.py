"""
MCP Transports

Unified interface for exchanging JSON-RPC frames with an MCP server.
Only the process (stdio) transport is implemented; socket and HTTP
transports are declared so configuration can name them, and fail fast.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from typing import Mapping, Optional, Sequence

from .config import ServerConfig, TransportType
from .errors import TransportError, TransportNotImplementedError
from .messages import MCPMessage

log = logging.getLogger(__name__)

# Upper bound on a single reply line; tool catalogs can be large.
STREAM_LIMIT = 16 * 1024 * 1024


class MCPTransport(ABC):
    """Abstract base for all MCP transports."""

    @abstractmethod
    async def send_request(self, message: MCPMessage) -> MCPMessage:
        """
        Send a request frame and wait for its reply frame.

        Returns:
            The next reply read from the server

        Raises:
            TransportError: If writing or reading fails
            ProtocolError: If the reply is not a JSON object
        """
        pass

    @abstractmethod
    async def send_notification(self, message: MCPMessage) -> None:
        """
        Send a notification frame. No reply is awaited.

        Raises:
            TransportError: If writing fails
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the transport and release its resources."""
        pass


class StdioTransport(MCPTransport):
    """Transport to an MCP server child process over its stdin/stdout."""

    def __init__(self, process: asyncio.subprocess.Process, command: str = ""):
        if process.stdin is None:
            raise TransportError("No stdin")
        if process.stdout is None:
            raise TransportError("No stdout")

        self.command = command
        self.process = process
        self._stdin = process.stdin
        self._stdout = process.stdout
        self._io_lock = asyncio.Lock()
        self._closed = False

    @classmethod
    async def spawn(
        cls,
        command: str,
        args: Sequence[str] = (),
        env: Optional[Mapping[str, str]] = None,
    ) -> "StdioTransport":
        """
        Start the server process and wire its standard streams.

        Args:
            command: Executable to run
            args: Arguments for the executable
            env: Environment variables layered over the parent environment

        Returns:
            Connected StdioTransport

        Raises:
            TransportError: If the process cannot be started or lacks a pipe
        """
        if not command:
            raise TransportError("Failed to spawn: no command configured")

        log.debug(f"[StdioTransport] Starting MCP server process: {command} {' '.join(args)}")

        process_env = os.environ.copy()
        process_env.update(env or {})

        try:
            process = await asyncio.create_subprocess_exec(
                command,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=None,
                env=process_env,
                limit=STREAM_LIMIT,
            )
        except (OSError, ValueError) as e:
            raise TransportError(f"Failed to spawn: {e}") from e

        try:
            return cls(process, command=command)
        except TransportError:
            _kill_quietly(process)
            raise

    @property
    def closed(self) -> bool:
        return self._closed

    async def _write(self, message: MCPMessage) -> None:
        frame = message.to_bytes()

        try:
            self._stdin.write(frame)
        except (OSError, RuntimeError) as e:
            raise TransportError(f"Write error: {e}") from e

        try:
            await self._stdin.drain()
        except (OSError, RuntimeError) as e:
            raise TransportError(f"Flush error: {e}") from e

    async def send_request(self, message: MCPMessage) -> MCPMessage:
        if self._closed:
            raise TransportError("Transport is closed")

        async with self._io_lock:
            await self._write(message)

            try:
                line = await self._stdout.readline()
            except (OSError, ValueError) as e:
                raise TransportError(f"Read error: {e}") from e

            if not line:
                raise TransportError("Read error: server closed its output stream")

        log.debug(f"[StdioTransport] Received reply for {message.method} (id: {message.id})")
        return MCPMessage.from_json(line.decode("utf-8", errors="replace"))

    async def send_notification(self, message: MCPMessage) -> None:
        if self._closed:
            raise TransportError("Transport is closed")

        async with self._io_lock:
            await self._write(message)

        log.debug(f"[StdioTransport] Sent notification: {message.method}")

    async def close(self) -> None:
        """Kill the server process. Failures are ignored."""
        if self._closed:
            return
        self._closed = True

        if self.process.returncode is None:
            try:
                self.process.kill()
            except ProcessLookupError:
                pass
            except (OSError, RuntimeError) as e:
                log.warning(f"[StdioTransport] Failed to kill {self.command}: {e}")

        try:
            await self.process.wait()
        except (OSError, RuntimeError) as e:
            log.warning(f"[StdioTransport] Failed to reap {self.command}: {e}")

        log.debug(f"[StdioTransport] Closed {self.command} (exit code: {self.process.returncode})")

    def __del__(self):
        if not getattr(self, "_closed", True):
            self._closed = True
            _kill_quietly(self.process)


def _kill_quietly(process: asyncio.subprocess.Process) -> None:
    """Kill a child process that is being abandoned."""
    if process.returncode is not None:
        return
    try:
        process.kill()
    except (ProcessLookupError, OSError, RuntimeError):
        # Event loop may already be closed when called from a destructor
        pass


class SocketTransport(MCPTransport):
    """Transport for MCP servers on a local socket (future implementation)."""

    def __init__(self, path: str):
        self.path = path

    @classmethod
    async def open(cls, path: str) -> "SocketTransport":
        raise TransportNotImplementedError("Socket transport not implemented")

    async def send_request(self, message: MCPMessage) -> MCPMessage:
        raise TransportNotImplementedError("Socket transport not implemented")

    async def send_notification(self, message: MCPMessage) -> None:
        raise TransportNotImplementedError("Socket transport not implemented")

    async def close(self) -> None:
        raise TransportNotImplementedError("Socket transport not implemented")


class HTTPTransport(MCPTransport):
    """Transport for MCP servers over HTTP (future implementation)."""

    def __init__(self, url: str):
        self.url = url

    @classmethod
    async def open(cls, url: str) -> "HTTPTransport":
        raise TransportNotImplementedError("HTTP transport not implemented")

    async def send_request(self, message: MCPMessage) -> MCPMessage:
        raise TransportNotImplementedError("HTTP transport not implemented")

    async def send_notification(self, message: MCPMessage) -> None:
        raise TransportNotImplementedError("HTTP transport not implemented")

    async def close(self) -> None:
        raise TransportNotImplementedError("HTTP transport not implemented")


async def create_transport(config: ServerConfig) -> MCPTransport:
    """
    Create and connect the transport a server configuration asks for.

    Raises:
        TransportError: If the transport cannot be created
        TransportNotImplementedError: For socket and HTTP transports
    """
    log.info(f"[Transports] Creating {config.transport.value} transport for {config.id}")

    if config.transport == TransportType.STDIO:
        return await StdioTransport.spawn(config.command, config.args, config.env)
    elif config.transport == TransportType.SOCKET:
        return await SocketTransport.open(config.path)
    elif config.transport == TransportType.HTTP:
        return await HTTPTransport.open(config.url)
    else:
        raise TransportNotImplementedError(f"Transport {config.transport} not implemented")
