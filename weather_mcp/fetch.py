import json
import logging
from typing import Any

import httpx

from .config import WeatherSettings

logger = logging.getLogger("weather.requests")

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})


class WeatherRequestError(Exception):
    """Base class for failed NWS requests."""


class UpstreamUnavailableError(WeatherRequestError):
    """Connect failure, timeout or other transport-level error."""


class UpstreamStatusError(WeatherRequestError):
    def __init__(self, url: str, status_code: int, body: str):
        super().__init__(f"HTTP {status_code} for {url}")
        self.url = url
        self.status_code = status_code
        self.body = body


class TooManyRedirectsError(WeatherRequestError):
    def __init__(self, url: str, max_redirects: int):
        super().__init__(f"Too many redirects for {url} (limit {max_redirects})")
        self.url = url
        self.max_redirects = max_redirects


class ResponseParseError(WeatherRequestError):
    def __init__(self, url: str):
        super().__init__(f"Response from {url} is not valid JSON")
        self.url = url


class RequestClient:
    """GET client for the NWS API with its own bounded redirect handling.

    NWS answers over-precise /points lookups with a 301 whose target is
    sometimes only present in the JSON body, which httpx's built-in redirect
    support cannot follow, so redirects are resolved here instead.

    Usage:
        client = RequestClient(WeatherSettings())
        body = await client.fetch("https://api.weather.gov/alerts/active/area/CA")
    """

    def __init__(self, settings: WeatherSettings | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings or WeatherSettings()
        self._transport = transport

    @property
    def headers(self) -> dict[str, str]:
        return {"User-Agent": self.settings.user_agent, "Accept": self.settings.accept}

    async def fetch(self, url: str) -> str:
        """Return the body of the first 2xx response reached from `url`.

        Raises a WeatherRequestError subclass for every failure; transport
        exceptions are never raised directly.
        """
        try:
            target = httpx.URL(url)
        except httpx.InvalidURL as e:
            raise WeatherRequestError(f"Invalid URL {url!r}: {e}") from e

        async with httpx.AsyncClient(
            transport=self._transport,
            follow_redirects=False,
            timeout=self.settings.timeout,
        ) as client:
            # one initial request plus up to max_redirects hops
            for _ in range(self.settings.max_redirects + 1):
                try:
                    response = await client.get(target, headers=self.headers)
                except httpx.HTTPError as e:
                    logger.warning(f"[NWS API Error] {type(e).__name__} for {target}: {e}")
                    raise UpstreamUnavailableError(f"Request to {target} failed: {e}") from e

                status = response.status_code
                if 200 <= status < 300:
                    return response.text

                if status in REDIRECT_STATUSES:
                    next_url = self._redirect_target(response)
                    if next_url is not None:
                        logger.info(f"[NWS API] {status} redirect {target} -> {next_url}")
                        target = next_url
                        continue

                logger.error(f"[NWS API Error] HTTP {status} for {target}: {response.text[:500]}")
                raise UpstreamStatusError(str(target), status, response.text)

        logger.error(f"[NWS API Error] Too many redirects for {url}")
        raise TooManyRedirectsError(url, self.settings.max_redirects)

    async def fetch_json(self, url: str) -> Any:
        """Fetch `url` and decode it as JSON. An empty body yields None."""
        body = await self.fetch(url)
        if not body:
            return None
        try:
            return json.loads(body)
        except ValueError as e:
            logger.error(f"[NWS API Error] Invalid JSON from {url}: {e}")
            raise ResponseParseError(url) from e

    @staticmethod
    def _redirect_target(response: httpx.Response) -> httpx.URL | None:
        location = response.headers.get("Location")
        if not location:
            # Some NWS redirect bodies carry the target as a JSON 'location' field
            try:
                location = json.loads(response.text).get("location")
            except (ValueError, AttributeError):
                return None
        if not isinstance(location, str) or not location:
            return None
        try:
            return response.url.join(location)
        except httpx.InvalidURL:
            return None
