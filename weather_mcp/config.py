import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

NWS_API_BASE = "https://api.weather.gov"
USER_AGENT = "weather-app/1.0"
ACCEPT = "application/geo+json, application/json"


@dataclass(frozen=True)
class WeatherSettings:
    """Runtime configuration for the weather server and its NWS client."""

    api_base: str = NWS_API_BASE
    user_agent: str = USER_AGENT
    accept: str = ACCEPT
    timeout: float = 30.0
    max_redirects: int = 5
    max_periods: int = 5
    log_dir: str = "logs"
    transport: str = "stdio"
    host: str = "127.0.0.1"
    port: int = 8080

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "WeatherSettings":
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            api_base=env.get("NWS_API_BASE", defaults.api_base).rstrip("/"),
            user_agent=env.get("NWS_USER_AGENT", defaults.user_agent),
            timeout=_number(env, "NWS_TIMEOUT", float, defaults.timeout),
            max_redirects=_number(env, "NWS_MAX_REDIRECTS", int, defaults.max_redirects),
            max_periods=_number(env, "FORECAST_MAX_PERIODS", int, defaults.max_periods),
            log_dir=env.get("LOG_DIR", defaults.log_dir),
            transport=env.get("MCP_TRANSPORT", defaults.transport),
            host=env.get("MCP_SERVER_HOST", defaults.host),
            port=_number(env, "MCP_SERVER_PORT", int, defaults.port),
        )

    def with_overrides(self, **changes) -> "WeatherSettings":
        # None means "not given on the command line"
        return replace(self, **{k: v for k, v in changes.items() if v is not None})


def _number(env: Mapping[str, str], name: str, kind, default):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return kind(raw)
    except ValueError:
        raise ValueError(f"{name} must be a {kind.__name__}, got {raw!r}") from None
