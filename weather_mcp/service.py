import logging
from typing import Any

from .config import WeatherSettings
from .fetch import RequestClient, WeatherRequestError
from .formatters import format_alerts, format_periods

logger = logging.getLogger("weather.service")

INVALID_STATE = "Invalid state code. Please provide a two-letter US state code (e.g., CA, NY)."
ALERTS_UNAVAILABLE = "Unable to fetch alerts or no alerts found."
NO_ACTIVE_ALERTS = "No active alerts for this state."

INVALID_LATITUDE = "Invalid latitude. Must be between -90 and 90."
INVALID_LONGITUDE = "Invalid longitude. Must be between -180 and 180."
POINTS_UNAVAILABLE = "Unable to fetch forecast data for this location."
NO_FORECAST_URL = "No forecast URL available for this location."
FORECAST_UNAVAILABLE = "Unable to fetch detailed forecast."
NO_PERIODS = "No forecast periods available."
INVALID_FORECAST = "Invalid forecast format."


def _properties(data: Any) -> dict:
    props = data.get("properties") if isinstance(data, dict) else None
    return props if isinstance(props, dict) else {}


class WeatherLookupService:
    """Alerts-by-state and forecast-by-point lookups against the NWS API.

    Both lookups always return text: either the formatted data or a short
    message explaining why none is available. Failure details are logged.
    """

    def __init__(self, settings: WeatherSettings | None = None, client: RequestClient | None = None):
        self.settings = settings or WeatherSettings()
        self.client = client or RequestClient(self.settings)

    async def get_alerts(self, state: Any) -> str:
        """Get active weather alerts for a two-letter US state code."""
        if not isinstance(state, str) or len(state) != 2:
            return INVALID_STATE

        url = f"{self.settings.api_base}/alerts/active/area/{state.upper()}"
        try:
            data = await self.client.fetch_json(url)
            if data is None:
                return ALERTS_UNAVAILABLE

            features = data.get("features") if isinstance(data, dict) else None
            if not isinstance(features, list) or not features:
                return NO_ACTIVE_ALERTS

            return format_alerts(features)
        except WeatherRequestError as e:
            logger.warning(f"Failed to fetch alerts for {state}: {e}")
            return ALERTS_UNAVAILABLE
        except Exception:
            logger.exception(f"Unexpected error fetching alerts for {state}")
            return ALERTS_UNAVAILABLE

    async def get_forecast(self, latitude: float, longitude: float) -> str:
        """Get the next forecast periods for a latitude/longitude point."""
        # written so that NaN fails both checks
        if not -90 <= latitude <= 90:
            return INVALID_LATITUDE
        if not -180 <= longitude <= 180:
            return INVALID_LONGITUDE

        try:
            return await self._forecast(latitude, longitude)
        except Exception:
            logger.exception(f"Unexpected error fetching forecast for {latitude},{longitude}")
            return FORECAST_UNAVAILABLE

    async def _forecast(self, latitude: float, longitude: float) -> str:
        # Limit precision to avoid NWS 301 redirects for over-precise points
        points_url = f"{self.settings.api_base}/points/{latitude:.4f},{longitude:.4f}"
        try:
            points_data = await self.client.fetch_json(points_url)
        except WeatherRequestError as e:
            logger.warning(f"Failed to fetch points for {latitude},{longitude}: {e}")
            return POINTS_UNAVAILABLE
        if points_data is None:
            return POINTS_UNAVAILABLE

        forecast_url = _properties(points_data).get("forecast")
        if not isinstance(forecast_url, str) or not forecast_url:
            return NO_FORECAST_URL

        try:
            forecast_data = await self.client.fetch_json(forecast_url)
        except WeatherRequestError as e:
            logger.warning(f"Failed to fetch forecast {forecast_url}: {e}")
            return FORECAST_UNAVAILABLE
        if forecast_data is None:
            return FORECAST_UNAVAILABLE

        periods = _properties(forecast_data).get("periods")
        if periods is None:
            return NO_PERIODS
        if not isinstance(periods, list):
            return INVALID_FORECAST
        if not periods:
            return NO_PERIODS

        return format_periods(periods, self.settings.max_periods)
