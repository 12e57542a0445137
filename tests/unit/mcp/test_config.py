"""Unit tests for server configuration and config file loading."""

import json
import os

import pytest

from skulk.config import ServerConfig, TransportType, load_server_configs, substitute_env
from skulk.errors import MCPIOError, ProtocolError


@pytest.fixture
def dotenv_var():
    """Name of a variable that a test .env file defines; removed afterwards."""
    name = "SKULK_TEST_API_TOKEN"
    os.environ.pop(name, None)
    yield name
    os.environ.pop(name, None)


class TestServerConfig:
    """Test ServerConfig construction."""

    def test_stdio_factory(self):
        config = ServerConfig.stdio("echo", "echo-server", ["--verbose"], env={"A": "1"})

        assert config.id == "echo"
        assert config.name == "echo"
        assert config.transport == TransportType.STDIO
        assert config.command == "echo-server"
        assert config.args == ("--verbose",)
        assert config.env == {"A": "1"}

    def test_from_dict_stdio(self):
        config = ServerConfig.from_dict("github", {
            "command": "npx",
            "args": ["-y", "@modelcontextprotocol/server-github"],
            "env": {"GITHUB_TOKEN": "abc", "RETRIES": 3},
        })

        assert config.transport == TransportType.STDIO
        assert config.name == "github"
        assert config.command == "npx"
        assert config.args == ("-y", "@modelcontextprotocol/server-github")
        assert config.env == {"GITHUB_TOKEN": "abc", "RETRIES": "3"}

    def test_from_dict_infers_transport(self):
        assert ServerConfig.from_dict("s", {"path": "/tmp/mcp.sock"}).transport == TransportType.SOCKET
        assert ServerConfig.from_dict("h", {"url": "http://localhost:8000"}).transport == TransportType.HTTP

    def test_from_dict_explicit_transport(self):
        config = ServerConfig.from_dict("remote", {"type": "http", "url": "https://example.com/mcp", "name": "Remote"})

        assert config.transport == TransportType.HTTP
        assert config.url == "https://example.com/mcp"
        assert config.name == "Remote"

    @pytest.mark.parametrize("entry, message", [
        ({}, "no command, path or url"),
        ({"transport": "carrier-pigeon", "command": "x"}, "unknown transport"),
        ({"transport": "stdio"}, "needs a command"),
        ({"transport": "socket", "command": "x"}, "needs a path"),
        ({"transport": "http"}, "needs a url"),
        ({"command": "x", "args": "--flag"}, "args must be a list"),
        ({"command": "x", "env": ["A=1"]}, "env must be an object"),
        ("npx", "must be an object"),
    ])
    def test_from_dict_invalid(self, entry, message):
        with pytest.raises(ValueError, match=message):
            ServerConfig.from_dict("bad", entry)


class TestSubstituteEnv:
    """Test {VAR} placeholder substitution."""

    def test_replaces_placeholders(self):
        env = {"TOKEN": "{API_TOKEN}", "URL": "https://{HOST}:{PORT}/", "PLAIN": "value"}
        source = {"API_TOKEN": "secret", "HOST": "localhost", "PORT": "8080"}

        assert substitute_env(env, source) == {
            "TOKEN": "secret",
            "URL": "https://localhost:8080/",
            "PLAIN": "value",
        }

    def test_unknown_placeholder_is_left_alone(self):
        assert substitute_env({"TOKEN": "{MISSING}"}, {}) == {"TOKEN": "{MISSING}"}


class TestLoadServerConfigs:
    """Test loading mcp.json style files."""

    def test_loads_mcp_servers(self, tmp_path):
        config_file = tmp_path / "mcp.json"
        config_file.write_text(json.dumps({
            "mcpServers": {
                "echo": {"command": "echo-server", "args": ["--stdio"]},
                "remote": {"url": "http://localhost:9000"},
            }
        }))

        configs = load_server_configs(str(config_file))

        assert [config.id for config in configs] == ["echo", "remote"]
        assert configs[0].args == ("--stdio",)
        assert configs[1].transport == TransportType.HTTP

    def test_servers_key_is_accepted(self, tmp_path):
        config_file = tmp_path / "mcp.json"
        config_file.write_text(json.dumps({"servers": {"echo": {"command": "echo-server"}}}))

        assert [config.id for config in load_server_configs(str(config_file))] == ["echo"]

    def test_empty_file_object(self, tmp_path):
        config_file = tmp_path / "mcp.json"
        config_file.write_text("{}")

        assert load_server_configs(str(config_file)) == []

    def test_dotenv_placeholders(self, tmp_path, dotenv_var):
        """Test that a .env next to the config file feeds env placeholders."""
        (tmp_path / ".env").write_text(f"{dotenv_var}=from-dotenv\n")
        config_file = tmp_path / "mcp.json"
        config_file.write_text(json.dumps({
            "mcpServers": {"github": {"command": "gh-mcp", "env": {"TOKEN": "{%s}" % dotenv_var}}}
        }))

        configs = load_server_configs(str(config_file))

        assert configs[0].env == {"TOKEN": "from-dotenv"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(MCPIOError):
            load_server_configs(str(tmp_path / "missing.json"))

    def test_invalid_json(self, tmp_path):
        config_file = tmp_path / "mcp.json"
        config_file.write_text("{not json")

        with pytest.raises(ProtocolError, match="Invalid config file"):
            load_server_configs(str(config_file))

    def test_non_object_servers(self, tmp_path):
        config_file = tmp_path / "mcp.json"
        config_file.write_text(json.dumps({"mcpServers": ["echo"]}))

        with pytest.raises(ProtocolError, match="servers must be an object"):
            load_server_configs(str(config_file))
