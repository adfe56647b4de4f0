"""NWS weather lookups exposed as MCP tools.

This module avoids importing `weather_mcp.server` at package import time to
prevent a `RuntimeWarning` when the server is started with
`python -m weather_mcp.server` from another process.
"""

from importlib import import_module

from .client import MCPClientError, MCPStdIOClient
from .config import WeatherSettings
from .fetch import (
    RequestClient,
    ResponseParseError,
    TooManyRedirectsError,
    UpstreamStatusError,
    UpstreamUnavailableError,
    WeatherRequestError,
)
from .formatters import format_alert, format_period
from .service import WeatherLookupService

__all__ = [
    "MCPStdIOClient",
    "MCPClientError",
    "WeatherSettings",
    "RequestClient",
    "WeatherRequestError",
    "UpstreamUnavailableError",
    "UpstreamStatusError",
    "TooManyRedirectsError",
    "ResponseParseError",
    "WeatherLookupService",
    "format_alert",
    "format_period",
    "get_alerts",
    "get_forecast",
    "get_tool_specs",
    "run_server",
]

# Attributes provided by the server module. We lazily import `weather_mcp.server`
# only when one of these attributes is accessed.
_server_attrs = {
    "get_alerts",
    "get_forecast",
    "get_tool_specs",
    "run_server",
}


def _load_server():
    return import_module(".server", __package__)


def __getattr__(name: str):
    if name in _server_attrs:
        return getattr(_load_server(), name)
    raise AttributeError(f"module {__name__} has no attribute {name}")


def __dir__():
    return sorted(list(globals().keys()) + list(_server_attrs))
