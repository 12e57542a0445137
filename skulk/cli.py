"""
Command line entry point for inspecting MCP servers.

Reads an mcp.json style config file, connects to the servers it lists and
prints their tools, calls a tool, or runs a health sweep.
"""

import argparse
import asyncio
import json
import logging
import logging.config
import pathlib
import sys
from collections.abc import Sequence
from typing import Any, Awaitable, List, Optional

from colorama import Fore, Style
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import ServerConfig, load_server_configs
from .errors import MCPError, MCPTimeoutError
from .manager import MCPManager
from .types import ServerHealth

log = logging.getLogger(__name__)

HEALTH_STYLES = {
    ServerHealth.HEALTHY: "green",
    ServerHealth.UNHEALTHY: "red",
    ServerHealth.DISCONNECTED: "yellow",
    ServerHealth.UNKNOWN: "grey50",
}


def parse_args(args: Sequence[str] | None = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Args:
        args (Optional[Sequence[str]], optional): Arguments to parse. Defaults to sys.argv.

    Returns:
        argparse.Namespace: The parsed command line arguments.
    """
    parser = argparse.ArgumentParser(
        prog="skulk",
        description="Connect to MCP servers and inspect or call their tools.",
    )
    parser.add_argument(
        "--config",
        default="mcp.json",
        help="Path to an mcp.json file with an 'mcpServers' object. (default: mcp.json)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for each connect or call before giving up. (default: wait indefinitely)",
    )
    parser.add_argument(
        "--logConfig",
        default=None,
        help="A custom path to a JSON logging configuration file.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the level of the console log handler.",
    )
    parser.add_argument("--version", action="version", version=f"skulk {__version__}")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("tools", help="List the tools of every configured server.")

    call = commands.add_parser("call", help="Call a tool on one server.")
    call.add_argument("server", help="Server id from the config file.")
    call.add_argument("tool", help="Name of the tool to call.")
    call.add_argument("--args", default="{}", help="Tool arguments as a JSON object. (default: {})")

    commands.add_parser("health", help="Run a health check against every configured server.")

    return parser.parse_args(args)


def configure_logging(log_config: Optional[str], log_level: Optional[str]) -> None:
    """Configure logging from a JSON dictConfig file, falling back to the packaged one."""
    if log_config is not None:
        config_file = pathlib.Path(log_config)
    else:
        config_file = pathlib.Path(__file__).parent / "data" / "log_config.json"

    with config_file.open(encoding="utf-8") as f_in:
        config = json.load(f_in)

    # File handlers need their directory to exist before dictConfig opens them
    for handler in config.get("handlers", {}).values():
        filename = handler.get("filename")
        if filename:
            pathlib.Path(filename).parent.mkdir(parents=True, exist_ok=True)

    if log_level is not None and "console" in config.get("handlers", {}):
        config["handlers"]["console"]["level"] = log_level

    logging.config.dictConfig(config)


async def with_timeout(awaitable: Awaitable[Any], timeout: Optional[float], operation: str) -> Any:
    """Await with an optional deadline, reporting expiry as MCPTimeoutError."""
    if timeout is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        raise MCPTimeoutError(operation) from None


def print_error(message: str) -> None:
    print(f"{Fore.RED}{message}{Style.RESET_ALL}", file=sys.stderr)


async def connect_all(manager: MCPManager, configs: List[ServerConfig], timeout: Optional[float]) -> None:
    """Connect every configured server, reporting and skipping the ones that fail."""
    for config in configs:
        try:
            await with_timeout(manager.connect(config), timeout, f"connect {config.id}")
        except MCPError as e:
            log.error("Failed to connect to %s: %s", config.id, e)
            print_error(f"Failed to connect to {config.id}: {e}")


def render_tools(console: Console, manager: MCPManager) -> None:
    table = Table(title="MCP tools")
    table.add_column("Server", style="cyan", no_wrap=True)
    table.add_column("Tool", style="bold")
    table.add_column("Description")

    for server_id in sorted(manager.server_ids()):
        for tool in manager.list_server_tools(server_id):
            table.add_row(server_id, tool.name, tool.description)

    console.print(table)


def render_health(console: Console, manager: MCPManager, configs: List[ServerConfig]) -> None:
    table = Table(title="MCP server health")
    table.add_column("Server", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Status")

    for config in configs:
        health = manager.server_health(config.id) or ServerHealth.UNKNOWN
        style = HEALTH_STYLES[health]
        table.add_row(config.id, config.name, f"[{style}]{health.value}[/{style}]")

    console.print(table)


async def run(args: argparse.Namespace, console: Optional[Console] = None) -> int:
    """Run the selected command. Returns the process exit code."""
    console = console or Console()
    configs = load_server_configs(args.config)
    log.debug("Arguments: %s", args)

    if args.command == "call":
        configs = [config for config in configs if config.id == args.server]
        if not configs:
            print_error(f"Server '{args.server}' is not in {args.config}")
            return 1

    async with MCPManager() as manager:
        await connect_all(manager, configs, args.timeout)

        if args.command == "tools":
            render_tools(console, manager)
            return 0

        if args.command == "health":
            await manager.health_check()
            render_health(console, manager, configs)
            healthy = [
                config.id for config in configs
                if manager.server_health(config.id) == ServerHealth.HEALTHY
            ]
            return 0 if len(healthy) == len(configs) else 1

        if args.command == "call":
            try:
                arguments = json.loads(args.args)
            except json.JSONDecodeError as e:
                print_error(f"--args is not valid JSON: {e}")
                return 1

            content = await with_timeout(
                manager.call_tool(args.server, args.tool, arguments),
                args.timeout,
                f"call {args.server}/{args.tool}",
            )
            console.print_json(json.dumps(content))
            return 0

    return 1


def main(argv: Sequence[str] | None = None) -> None:
    """Console script entry point."""
    args = parse_args(argv)

    try:
        configure_logging(args.logConfig, args.log_level)
    except (OSError, ValueError) as e:
        print_error(f"Could not configure logging: {e}")
        sys.exit(1)

    try:
        exit_code = asyncio.run(run(args))
    except KeyboardInterrupt:
        log.info("Interrupted by user")
        exit_code = 130
    except (MCPError, ValueError) as e:
        print_error(f"{type(e).__name__}: {e}")
        exit_code = 1

    sys.exit(exit_code)
