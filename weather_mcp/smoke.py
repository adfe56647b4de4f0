#!/usr/bin/env python3
"""
End-to-end smoke check for the weather MCP server.

Starts the server over stdio, lists its tools and calls each one with sample
arguments. The live NWS API may be unreachable, so "unable to fetch" answers
count as a pass; protocol errors and empty answers do not.
"""

import logging
import os
import re
import sys
from typing import Any, Dict

from .client import MCPClientError, MCPStdIOClient
from .logs import attach_file_handler

logger = logging.getLogger("weather.smoke")

EXPECTED_TOOLS = ("get_alerts", "get_forecast")

# tool name -> (sample arguments, pattern the answer must match)
CHECKS: Dict[str, tuple] = {
    "get_alerts": ({"state": "CA"}, re.compile(r"event:|no active alerts|unable to fetch", re.IGNORECASE)),
    "get_forecast": (
        {"latitude": 37.7749, "longitude": -122.4194},
        re.compile(r"temperature:|unable to fetch", re.IGNORECASE),
    ),
}


class SmokeCheckError(Exception):
    pass


def run_checks(client: Any) -> Dict[str, str]:
    """Run the tool checks against a started client and return each tool's answer."""
    names = client.list_tools()
    print(f"[ok] tools/list -> {', '.join(names)}")
    missing = [name for name in EXPECTED_TOOLS if name not in names]
    if missing:
        raise SmokeCheckError(f"Tools not listed: {', '.join(missing)}")

    answers = {}
    for name, (arguments, pattern) in CHECKS.items():
        logger.info(f"Smoke tool call: {name} - Parameters: {arguments}")
        text = client.call_tool(name, arguments)
        logger.info(f"Smoke tool result: {name} - Result: {text}")

        if not isinstance(text, str) or not text:
            raise SmokeCheckError(f"Tool {name} returned empty text")
        if not pattern.search(text):
            raise SmokeCheckError(f"Tool {name} returned unexpected text: {text[:80]!r}")

        preview = text.strip().replace("\n", " ")
        print(f"[ok] tools/call {name} -> {preview[:80]}{'…' if len(preview) > 80 else ''}")
        answers[name] = text
    return answers


def main() -> int:
    attach_file_handler(logger, os.path.join(os.environ.get("LOG_DIR", "logs"), "smoke.log"))

    client = MCPStdIOClient()
    try:
        client.start()
        run_checks(client)
    except (MCPClientError, SmokeCheckError) as e:
        logger.exception("Smoke check failed")
        print(f"✗ Smoke check failed: {e}", file=sys.stderr)
        return 1
    finally:
        client.stop()

    print("✓ All smoke checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
