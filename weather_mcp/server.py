import argparse
import logging

from .config import WeatherSettings
from .logs import configure_server_logging
from .service import WeatherLookupService

logger = logging.getLogger("weather.server")

# A small registry to export tool metadata (server-first source of truth)
_TOOL_SPECS: list[dict] = []
# Temporarily store functions (and args/kwargs for mcp.tool) until the MCP server
# is initialized. This avoids importing the MCP SDK at module import time.
_REGISTERED_FUNCS: list[tuple] = []

# Created lazily via `get_mcp()` / `get_service()`.
mcp = None
_service: WeatherLookupService | None = None

ALERTS_ERROR = "Error fetching weather alerts. Please try again later."
FORECAST_ERROR = "Error fetching weather forecast. Please try again later."


def get_mcp(settings: WeatherSettings | None = None):
    """Lazily initialize and return the FastMCP server instance."""
    global mcp
    if mcp is not None:
        return mcp
    from mcp.server.fastmcp import FastMCP
    settings = settings or WeatherSettings.from_env()
    mcp = FastMCP("weather", host=settings.host, port=settings.port)
    return mcp


def get_service() -> WeatherLookupService:
    """Return the shared lookup service, building it from the environment on first use."""
    global _service
    if _service is None:
        _service = WeatherLookupService(WeatherSettings.from_env())
    return _service


def register_tools_with_mcp(settings: WeatherSettings | None = None):
    """Register all previously-decorated functions with the MCP instance."""
    m = get_mcp(settings)
    for fn, args, kwargs in _REGISTERED_FUNCS:
        m.tool(*args, **kwargs)(fn)
    return m


def tool(*args, schema: dict | None = None, **kwargs):
    """Lightweight decorator that records tool metadata without initializing MCP.

    Use as `@tool(schema={...})`. The functions will be registered with the MCP
    instance when `register_tools_with_mcp()` is called (e.g., inside `run_server`).
    """
    def decorator(fn):
        spec = {
            "name": fn.__name__,
            "description": (fn.__doc__ or "").strip(),
            "input_schema": schema or {},
        }
        _TOOL_SPECS.append(spec)
        _REGISTERED_FUNCS.append((fn, args, kwargs))
        setattr(fn, "__tool_spec__", spec)
        return fn
    return decorator


def get_tool_specs() -> list[dict]:
    """Return a copy of registered tool specs."""
    return [dict(s) for s in _TOOL_SPECS]


def export_tools_json(path: str = "tools.json") -> None:
    """Write the exported tool metadata to a JSON file."""
    import json
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(get_tool_specs(), fh, indent=2)


def _tool_error(message: str) -> Exception:
    # ToolError turns into an MCP result with isError set
    from mcp.server.fastmcp.exceptions import ToolError
    return ToolError(message)


@tool(schema={
    "type": "object",
    "properties": {"state": {"type": "string", "description": "Two-letter US state code (e.g., CA, NY)"}},
    "required": ["state"],
    "additionalProperties": False,
})
async def get_alerts(state: str) -> str:
    """Get active weather alerts for a US state.

    Args:
        state: Two-letter US state code (e.g. CA, NY)
    """
    logger.info(f"Fetching weather alerts for state: {state}")
    try:
        return await get_service().get_alerts(str(state))
    except Exception as e:
        logger.exception(f"Error fetching alerts: {e}")
        raise _tool_error(ALERTS_ERROR) from e


@tool(schema={
    "type": "object",
    "properties": {
        "latitude": {
            "type": "number",
            "description": "Latitude of the location (-90 to 90)",
            "minimum": -90,
            "maximum": 90,
        },
        "longitude": {
            "type": "number",
            "description": "Longitude of the location (-180 to 180)",
            "minimum": -180,
            "maximum": 180,
        },
    },
    "required": ["latitude", "longitude"],
    "additionalProperties": False,
})
async def get_forecast(latitude: float, longitude: float) -> str:
    """Get weather forecast for a location.

    Args:
        latitude: Latitude of the location
        longitude: Longitude of the location
    """
    logger.info(f"Fetching weather forecast for coordinates: {latitude}, {longitude}")
    try:
        return await get_service().get_forecast(float(latitude), float(longitude))
    except Exception as e:
        logger.exception(f"Error fetching forecast: {e}")
        raise _tool_error(FORECAST_ERROR) from e


def run_server(transport: str = "stdio", settings: WeatherSettings | None = None) -> None:
    """Run the MCP server (convenience wrapper)."""
    # Ensure MCP instance is initialized and tools are registered prior to run.
    m = register_tools_with_mcp(settings)
    if transport != "stdio":
        logger.info(f"Serving MCP over {transport} at http://{m.settings.host}:{m.settings.port}/mcp")
    m.run(transport=transport)


def build_parser(settings: WeatherSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="NWS weather MCP server")
    parser.add_argument("--transport", choices=["stdio", "sse", "streamable-http"], default=settings.transport)
    parser.add_argument("--host", help=f"HTTP bind address (default {settings.host})")
    parser.add_argument("--port", type=int, help=f"HTTP port (default {settings.port})")
    parser.add_argument("--export-tools", metavar="PATH", help="write tool specs as JSON and exit")
    return parser


def main(argv: list[str] | None = None) -> None:
    settings = WeatherSettings.from_env()
    args = build_parser(settings).parse_args(argv)

    if args.export_tools:
        export_tools_json(args.export_tools)
        return

    settings = settings.with_overrides(transport=args.transport, host=args.host, port=args.port)
    configure_server_logging(settings.log_dir)
    run_server(settings.transport, settings)


if __name__ == "__main__":
    main()
