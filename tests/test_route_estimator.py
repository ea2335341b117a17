import httpx
import pytest

from scrap_dispatch.services.dispatch.errors import RouteEstimateFailure
from scrap_dispatch.services.routing.estimator import (
    OSRMRouteEstimator,
    format_route_duration,
    straight_line_estimate,
)
from scrap_dispatch.services.routing.osrm_client import OSRMClient


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (30, "1 min"),
        (60, "1 min"),
        (25 * 60, "25 mins"),
        (65 * 60, "1 hour 5 mins"),
        (61 * 60, "1 hour 1 min"),
        (120 * 60, "2 hours"),
    ],
)
def test_format_route_duration(seconds: float, expected: str) -> None:
    assert format_route_duration(seconds) == expected


def _osrm_client(handler) -> OSRMClient:
    return OSRMClient(
        base_url="http://osrm.test",
        transport=httpx.MockTransport(handler),
        max_retries=0,
        backoff_seconds=0,
    )


def test_osrm_estimate_formats_route() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"code": "Ok", "routes": [{"distance": 12345.0, "duration": 1500.0}]})

    estimator = OSRMRouteEstimator(client_factory=lambda: _osrm_client(handler))
    estimate = estimator.estimate_route(21.5, 39.2, 21.4, 39.1)

    assert estimate.distance == "12.3 km"
    assert estimate.duration == "25 mins"
    assert estimate.source == "osrm"
    # OSRM takes lon,lat pairs
    assert requests[0].url.path == "/route/v1/driving/39.2,21.5;39.1,21.4"


def test_unconfigured_routing_falls_back_to_straight_line() -> None:
    def unconfigured() -> OSRMClient:
        raise ValueError("OSRM base URL is not configured.")

    estimate = OSRMRouteEstimator(client_factory=unconfigured, fallback_to_straight_line=True).estimate_route(
        21.5, 39.2, 21.6, 39.25
    )

    assert estimate.source == "straight_line"
    assert estimate.distance.startswith("~")
    assert estimate.duration is None
    assert estimate == straight_line_estimate(21.5, 39.2, 21.6, 39.25)


def test_routing_failure_without_fallback_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": "NoRoute", "message": "Impossible route"})

    estimator = OSRMRouteEstimator(
        client_factory=lambda: _osrm_client(handler),
        fallback_to_straight_line=False,
    )

    with pytest.raises(RouteEstimateFailure, match="Impossible route"):
        estimator.estimate_route(21.5, 39.2, 21.6, 39.25)


def test_osrm_network_error_becomes_connection_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ConnectionError):
        _osrm_client(handler).route([(21.5, 39.2), (21.6, 39.25)])
