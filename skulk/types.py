"""
MCP Type Definitions

Records exchanged with MCP servers: the tool catalog entries, the server
information returned by the handshake, and the health/lifecycle enums.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .errors import ProtocolError


def _flag(data: Dict[str, Any], name: str) -> bool:
    # Servers in the wild send both snake_case and camelCase capability flags
    camel = name.split("_")[0] + "".join(part.title() for part in name.split("_")[1:])
    value = data.get(name, data.get(camel, False))
    if not isinstance(value, bool):
        raise ProtocolError(f"capability flag '{name}' must be a boolean")
    return value


def _capability_dict(data: Dict[str, Any], name: str) -> Optional[Dict[str, Any]]:
    value = data.get(name)
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ProtocolError(f"capability '{name}' must be an object")
    return value


class ServerHealth(Enum):
    """Health status of a tracked server."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DISCONNECTED = "disconnected"
    UNKNOWN = "unknown"


class ConnectionState(Enum):
    """Lifecycle of a single MCPConnection."""
    CREATED = "created"
    INITIALIZING = "initializing"
    READY = "ready"
    SHUT_DOWN = "shut_down"


@dataclass
class ToolSchema:
    """A tool advertised by an MCP server."""

    name: str
    input_schema: Any
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolSchema":
        """
        Parse a single tools/list entry.

        Raises:
            ProtocolError: If the entry is not an object, has no string name,
                has a non-string description, or carries no inputSchema.
        """
        if not isinstance(data, dict):
            raise ProtocolError("tool entry must be an object")

        name = data.get("name")
        if not isinstance(name, str):
            raise ProtocolError("tool entry is missing a string 'name'")

        description = data.get("description", "")
        if description is None:
            description = ""
        if not isinstance(description, str):
            raise ProtocolError(f"tool '{name}' has a non-string description")

        if "inputSchema" not in data:
            raise ProtocolError(f"tool '{name}' is missing 'inputSchema'")

        return cls(name=name, description=description, input_schema=data["inputSchema"])

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire representation."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass(frozen=True)
class ToolsCapability:
    list_changed: bool = False


@dataclass(frozen=True)
class ResourcesCapability:
    subscribe: bool = False
    list_changed: bool = False


@dataclass(frozen=True)
class PromptsCapability:
    list_changed: bool = False


@dataclass(frozen=True)
class SamplingCapability:
    pass


@dataclass(frozen=True)
class ServerCapabilities:
    """Capability set a server declares during the handshake."""

    tools: Optional[ToolsCapability] = None
    resources: Optional[ResourcesCapability] = None
    prompts: Optional[PromptsCapability] = None
    sampling: Optional[SamplingCapability] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ServerCapabilities":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ProtocolError("capabilities must be an object")

        tools = _capability_dict(data, "tools")
        resources = _capability_dict(data, "resources")
        prompts = _capability_dict(data, "prompts")
        sampling = _capability_dict(data, "sampling")

        return cls(
            tools=ToolsCapability(list_changed=_flag(tools, "list_changed")) if tools is not None else None,
            resources=ResourcesCapability(
                subscribe=_flag(resources, "subscribe"),
                list_changed=_flag(resources, "list_changed"),
            ) if resources is not None else None,
            prompts=PromptsCapability(list_changed=_flag(prompts, "list_changed")) if prompts is not None else None,
            sampling=SamplingCapability() if sampling is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.tools is not None:
            data["tools"] = {"list_changed": self.tools.list_changed}
        if self.resources is not None:
            data["resources"] = {
                "subscribe": self.resources.subscribe,
                "list_changed": self.resources.list_changed,
            }
        if self.prompts is not None:
            data["prompts"] = {"list_changed": self.prompts.list_changed}
        if self.sampling is not None:
            data["sampling"] = {}
        return data


@dataclass(frozen=True)
class ServerInfo:
    """Server identity and capabilities returned by a successful handshake."""

    name: str
    version: str = ""
    protocol_version: str = ""
    capabilities: ServerCapabilities = field(default_factory=ServerCapabilities)

    @classmethod
    def from_dict(cls, data: Any) -> "ServerInfo":
        """
        Parse the result of an initialize request.

        Raises:
            ProtocolError: If the result does not have the ServerInfo shape.
        """
        if not isinstance(data, dict):
            raise ProtocolError("Invalid server info: expected an object")

        name = data.get("name")
        if not isinstance(name, str):
            raise ProtocolError("Invalid server info: missing string field 'name'")

        version = data.get("version", "")
        protocol_version = data.get("protocolVersion", "")
        if not isinstance(version, str) or not isinstance(protocol_version, str):
            raise ProtocolError("Invalid server info: 'version' and 'protocolVersion' must be strings")

        try:
            capabilities = ServerCapabilities.from_dict(data.get("capabilities"))
        except ProtocolError as e:
            raise ProtocolError(f"Invalid server info: {e.detail}") from e

        return cls(
            name=name,
            version=version,
            protocol_version=protocol_version,
            capabilities=capabilities,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "protocolVersion": self.protocol_version,
            "capabilities": self.capabilities.to_dict(),
        }
