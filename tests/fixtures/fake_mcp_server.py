#!/usr/bin/env python3
"""
Scripted MCP server used by the integration tests.

Speaks newline-delimited JSON-RPC on stdin/stdout. Behaviour is selected
with environment variables:

    FAKE_MCP_NAME          server name reported by initialize (default: echo)
    FAKE_MCP_TOOLS         JSON array returned by tools/list
    FAKE_MCP_INIT_ERROR    reply to initialize with a JSON-RPC error
    FAKE_MCP_BAD_INFO      reply to initialize with a result that is not server info
    FAKE_MCP_GARBAGE       method name whose reply is a line of invalid JSON
    FAKE_MCP_WRONG_ID      reply to everything after initialize with a shifted id
    FAKE_MCP_EXIT_AFTER    exit after answering this many requests
"""

import json
import os
import sys

DEFAULT_TOOLS = [
    {"name": "add", "description": "Add two numbers", "inputSchema": {"type": "object"}},
    {"name": "echo", "inputSchema": {}},
    {"name": "fail", "inputSchema": {}},
    {"name": "env", "inputSchema": {}},
]

notifications = []


def reply(request_id, result=None, error=None):
    message = {"jsonrpc": "2.0", "id": request_id}
    if error is not None:
        message["error"] = error
    else:
        message["result"] = result
    sys.stdout.write(json.dumps(message) + "\n")
    sys.stdout.flush()


def call_tool(params):
    name = params.get("name")
    arguments = params.get("arguments") or {}

    if name == "add":
        total = arguments.get("a", 0) + arguments.get("b", 0)
        return {"content": [{"type": "text", "text": str(total)}]}
    if name == "echo":
        return {"content": arguments}
    if name == "fail":
        return {"error": {"message": "tool exploded"}}
    if name == "env":
        return {"content": os.environ.get(arguments.get("name", ""), "")}
    return None


def handle(message):
    method = message.get("method")
    request_id = message.get("id")
    params = message.get("params") or {}

    if request_id is None:
        notifications.append({"method": method, "params": params})
        return False

    if os.environ.get("FAKE_MCP_GARBAGE") == method:
        sys.stdout.write("this is not json\n")
        sys.stdout.flush()
        return True

    if os.environ.get("FAKE_MCP_WRONG_ID") and method != "initialize":
        request_id = request_id + 100

    if method == "initialize":
        if os.environ.get("FAKE_MCP_INIT_ERROR"):
            reply(request_id, error={"code": -32603, "message": "initialize refused"})
        elif os.environ.get("FAKE_MCP_BAD_INFO"):
            reply(request_id, result={"version": 1})
        else:
            reply(request_id, result={
                "name": os.environ.get("FAKE_MCP_NAME", "echo"),
                "version": "1.0",
                "protocolVersion": "2024-11-05",
                "capabilities": {"tools": {"listChanged": True}},
            })
    elif method == "ping":
        reply(request_id, result={})
    elif method == "tools/list":
        tools = json.loads(os.environ.get("FAKE_MCP_TOOLS", "null")) or DEFAULT_TOOLS
        reply(request_id, result={"tools": tools})
    elif method == "tools/call":
        result = call_tool(params)
        if result is None:
            reply(request_id, error={"code": -32601, "message": "method not found"})
        else:
            reply(request_id, result=result)
    elif method == "test/notifications":
        reply(request_id, result={"notifications": notifications})
    else:
        reply(request_id, error={"code": -32601, "message": "method not found"})
    return True


def main():
    exit_after = int(os.environ.get("FAKE_MCP_EXIT_AFTER", "0"))
    answered = 0

    for line in sys.stdin:
        line = line.strip()
        if not line:
            continue
        if handle(json.loads(line)):
            answered += 1
        if exit_after and answered >= exit_after:
            return


if __name__ == "__main__":
    main()
