"""
MCP Server Configuration

Launch parameters for MCP servers and loading of mcp.json style files.
The connection core only reads the fields its transport selection needs.
"""

import json
import logging
import os
import pathlib
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from dotenv import load_dotenv

from .errors import MCPIOError, ProtocolError

log = logging.getLogger(__name__)


class TransportType(Enum):
    """Supported transport types for MCP servers."""
    STDIO = "stdio"
    SOCKET = "socket"
    HTTP = "http"


@dataclass(frozen=True)
class ServerConfig:
    """Configuration for a single MCP server."""

    id: str
    name: str
    transport: TransportType = TransportType.STDIO
    command: Optional[str] = None
    args: Tuple[str, ...] = ()
    path: Optional[str] = None
    url: Optional[str] = None
    env: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def stdio(
        cls,
        id: str,
        command: str,
        args: Sequence[str] = (),
        name: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "ServerConfig":
        """Build a process-pipe server configuration."""
        return cls(
            id=id,
            name=name or id,
            transport=TransportType.STDIO,
            command=command,
            args=tuple(args),
            env=dict(env or {}),
        )

    @classmethod
    def from_dict(cls, server_id: str, data: Dict[str, Any]) -> "ServerConfig":
        """
        Create a ServerConfig from an mcp.json server entry.

        Args:
            server_id: Key of the entry in the servers object
            data: Entry with command/args/env, path or url

        Returns:
            ServerConfig for the entry

        Raises:
            ValueError: If the transport is unknown or its launch parameters are missing
        """
        if not isinstance(data, dict):
            raise ValueError(f"Server '{server_id}' configuration must be an object")

        transport_name = data.get("transport") or data.get("type")
        if transport_name is None:
            if "command" in data:
                transport_name = TransportType.STDIO.value
            elif "url" in data:
                transport_name = TransportType.HTTP.value
            elif "path" in data:
                transport_name = TransportType.SOCKET.value
            else:
                raise ValueError(f"Server '{server_id}' has no command, path or url")

        try:
            transport = TransportType(transport_name)
        except ValueError:
            supported = [t.value for t in TransportType]
            raise ValueError(
                f"Server '{server_id}' uses unknown transport '{transport_name}'. Supported: {supported}"
            ) from None

        if transport == TransportType.STDIO and not data.get("command"):
            raise ValueError(f"Server '{server_id}' needs a command for stdio transport")
        if transport == TransportType.SOCKET and not data.get("path"):
            raise ValueError(f"Server '{server_id}' needs a path for socket transport")
        if transport == TransportType.HTTP and not data.get("url"):
            raise ValueError(f"Server '{server_id}' needs a url for http transport")

        args = data.get("args", [])
        if not isinstance(args, list) or not all(isinstance(arg, str) for arg in args):
            raise ValueError(f"Server '{server_id}' args must be a list of strings")

        env = data.get("env", {})
        if not isinstance(env, dict):
            raise ValueError(f"Server '{server_id}' env must be an object")

        return cls(
            id=server_id,
            name=data.get("name", server_id),
            transport=transport,
            command=data.get("command"),
            args=tuple(args),
            path=data.get("path"),
            url=data.get("url"),
            env={str(key): str(value) for key, value in env.items()},
        )


def substitute_env(env: Mapping[str, str], source: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Replace {VAR_NAME} placeholders in env values with values from source."""
    if source is None:
        source = os.environ

    processed = {}
    for key, value in env.items():
        for env_name, env_value in source.items():
            placeholder = f"{{{env_name}}}"
            if placeholder in value:
                value = value.replace(placeholder, env_value)
        processed[key] = value
    return processed


def load_server_configs(config_path: str) -> List[ServerConfig]:
    """
    Load MCP server configurations from a JSON file.

    The file holds an "mcpServers" (or "servers") object keyed by server id.
    A .env file next to the config is loaded first so env values can refer
    to secrets with {VAR_NAME} placeholders.

    Raises:
        MCPIOError: If the file cannot be read
        ProtocolError: If the file is not valid JSON
        ValueError: If an entry is not a valid server configuration
    """
    path = pathlib.Path(config_path)

    load_dotenv(dotenv_path=path.parent / ".env", override=False)

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise MCPIOError(e) from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Invalid config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ProtocolError(f"Invalid config file {path}: expected an object")

    servers = data.get("mcpServers", data.get("servers", {}))
    if not isinstance(servers, dict):
        raise ProtocolError(f"Invalid config file {path}: servers must be an object")

    configs = []
    for server_id, entry in servers.items():
        config = ServerConfig.from_dict(server_id, entry)
        if config.env:
            config = replace(config, env=substitute_env(config.env))
        configs.append(config)

    log.info(f"[Config] Loaded {len(configs)} server configurations from {path}")
    return configs
