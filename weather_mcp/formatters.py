"""Render NWS alert features and forecast periods as plain text."""

from typing import Any, Iterable, Sequence

SEPARATOR = "\n---\n"
INVALID_ALERT = "Invalid alert format"


def _field(data: dict, key: str, default: str) -> str:
    # Defaults only cover absent/null fields; "" is kept as-is.
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return ""
    return str(value)


def format_alert(feature: Any) -> str:
    """Format an alert feature into a readable string."""
    props = feature.get("properties") if isinstance(feature, dict) else None
    if not isinstance(props, dict):
        return INVALID_ALERT
    return f"""
Event: {_field(props, "event", "Unknown")}
Area: {_field(props, "areaDesc", "Unknown")}
Severity: {_field(props, "severity", "Unknown")}
Description: {_field(props, "description", "No description available")}
Instructions: {_field(props, "instruction", "No specific instructions provided")}
"""


def format_period(period: Any) -> str:
    """Format a single forecast period into a readable string."""
    p = period if isinstance(period, dict) else {}
    return f"""
{_field(p, "name", "Unknown")}:
Temperature: {_field(p, "temperature", "Unknown")}°{_field(p, "temperatureUnit", "F")}
Wind: {_field(p, "windSpeed", "Unknown")} {_field(p, "windDirection", "Unknown")}
Forecast: {_field(p, "detailedForecast", "No detailed forecast available")}
"""


def format_alerts(features: Iterable[Any]) -> str:
    return SEPARATOR.join(format_alert(feature) for feature in features)


def format_periods(periods: Sequence[Any], limit: int = 5) -> str:
    # Only show the next `limit` periods
    return SEPARATOR.join(format_period(period) for period in periods[:limit])
