import httpx
import pytest

from weather_mcp.config import WeatherSettings
from weather_mcp.fetch import RequestClient
from weather_mcp.service import WeatherLookupService

API_BASE = "https://nws.test"


class FakeNWS:
    """In-memory stand-in for the NWS API, served through httpx.MockTransport.

    Routes map a full URL to an httpx.Response, a callable taking the request, a JSON-able object (served
    with status 200), or an exception instance to raise.
    """

    def __init__(self, routes: dict | None = None):
        self.routes = dict(routes or {})
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    @property
    def urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, json={"title": "Not Found"})
        if isinstance(route, Exception):
            raise route
        if isinstance(route, httpx.Response):
            return route
        if callable(route):
            return route(request)
        return httpx.Response(200, json=route)


@pytest.fixture
def settings() -> WeatherSettings:
    return WeatherSettings(api_base=API_BASE)


@pytest.fixture
def nws() -> FakeNWS:
    return FakeNWS()


@pytest.fixture
def request_client(settings, nws) -> RequestClient:
    return RequestClient(settings, transport=nws.transport)


@pytest.fixture
def service(settings, request_client) -> WeatherLookupService:
    return WeatherLookupService(settings, request_client)


def make_period(index: int, **overrides) -> dict:
    period = {
        "number": index,
        "name": f"Period {index}",
        "temperature": 60 + index,
        "temperatureUnit": "F",
        "windSpeed": "10 mph",
        "windDirection": "NW",
        "detailedForecast": f"Forecast {index}.",
    }
    period.update(overrides)
    return period
