import pytest

from scrap_dispatch.services.geospatial import distance_between, format_distance_km, haversine_km


@pytest.mark.parametrize(
    "lat, lon",
    [(0.0, 0.0), (21.5433, 39.1728), (-33.8688, 151.2093), (89.9, -179.9)],
)
def test_haversine_same_point_is_zero(lat: float, lon: float) -> None:
    assert haversine_km(lat, lon, lat, lon) == 0


def test_haversine_is_symmetric() -> None:
    forward = haversine_km(21.5433, 39.1728, 24.7136, 46.6753)
    backward = haversine_km(24.7136, 46.6753, 21.5433, 39.1728)

    assert forward == pytest.approx(backward)


def test_haversine_known_distance() -> None:
    # London to Paris
    assert haversine_km(51.5074, -0.1278, 48.8566, 2.3522) == pytest.approx(343.5, abs=1.0)


def test_distance_between_requires_both_points() -> None:
    assert distance_between(None, (21.5, 39.2)) is None
    assert distance_between((21.5, 39.2), None) is None
    assert distance_between((21.5, 39.2), (21.5, 39.2)) == 0


def test_format_distance_km() -> None:
    assert format_distance_km(12.3456) == "12.35 km"
    assert format_distance_km(None) is None
