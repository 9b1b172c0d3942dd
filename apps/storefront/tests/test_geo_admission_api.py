import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from geo_engine.exceptions import ResolverTimeoutError
from geo_engine.models import GeoPoint
from geo_engine.resolvers import StaticLocationResolver

from storefront.app import create_app
from storefront.settings import DEFAULT_DENIED_MESSAGE, StorefrontSettings

LONDON = GeoPoint(lat=51.5074, lng=-0.1278)
CAMDEN = GeoPoint(lat=51.5390, lng=-0.1426)
PARIS = GeoPoint(lat=48.8566, lng=2.3522)


def build_settings(**overrides) -> StorefrontSettings:
    values = {
        "GEOFENCE_CENTER_LAT": LONDON.lat,
        "GEOFENCE_CENTER_LNG": LONDON.lng,
        "GEOFENCE_RADIUS_KM": 50,
        "GEOIP_DATABASE_PATH": None,
        "GEO_LOOKUP_BASE_URL": None,
        "STATIC_ROOT": None,
    }
    values.update(overrides)
    return StorefrontSettings(**values)


def build_client(resolver=None, **overrides) -> TestClient:
    resolver = resolver or StaticLocationResolver({"81.2.69.142": CAMDEN, "2.2.2.2": PARIS})
    return TestClient(create_app(settings=build_settings(**overrides), resolver=resolver))


def test_client_inside_fence_reaches_handler() -> None:
    client = build_client(GEOFENCE_EXEMPT_PATHS="")

    response = client.get("/readyz", headers={"x-forwarded-for": "81.2.69.142"})

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "ready"


def test_client_outside_fence_gets_generic_403() -> None:
    client = build_client(GEOFENCE_EXEMPT_PATHS="")

    response = client.get("/readyz", headers={"x-forwarded-for": "2.2.2.2"})
    body = response.json()

    assert response.status_code == 403
    assert body == {
        "success": False,
        "error": {"code": "ACCESS_DENIED", "message": DEFAULT_DENIED_MESSAGE},
    }
    assert "OUT_OF_RANGE" not in response.text
    assert "distance" not in response.text


def test_unresolvable_and_out_of_range_look_identical_to_client() -> None:
    client = build_client(GEOFENCE_EXEMPT_PATHS="")

    unknown = client.get("/readyz", headers={"x-forwarded-for": "203.0.113.9"})
    far = client.get("/readyz", headers={"x-forwarded-for": "2.2.2.2"})

    assert unknown.status_code == far.status_code == 403
    assert unknown.json() == far.json()


def test_forwarding_chain_uses_first_hop() -> None:
    client = build_client(GEOFENCE_EXEMPT_PATHS="")

    allowed = client.get("/readyz", headers={"x-forwarded-for": "81.2.69.142, 2.2.2.2"})
    denied = client.get("/readyz", headers={"x-forwarded-for": "2.2.2.2, 81.2.69.142"})

    assert allowed.status_code == 200
    assert denied.status_code == 403


def test_forwarded_header_ignored_without_trusted_proxy() -> None:
    client = build_client(GEOFENCE_EXEMPT_PATHS="", TRUST_PROXY=False)

    response = client.get("/readyz", headers={"x-forwarded-for": "81.2.69.142"})

    # the transport peer ("testclient") has no known location
    assert response.status_code == 403


def test_transport_peer_used_without_forwarded_header() -> None:
    resolver = StaticLocationResolver({"testclient": LONDON})
    client = build_client(resolver, GEOFENCE_EXEMPT_PATHS="")

    response = client.get("/readyz")

    assert response.status_code == 200


def test_health_paths_are_exempt_by_default() -> None:
    client = build_client()

    assert client.get("/healthz", headers={"x-forwarded-for": "2.2.2.2"}).status_code == 200
    assert client.get("/readyz").status_code == 200


def test_metrics_endpoint_is_fenced_by_default() -> None:
    client = build_client()

    outside = client.get("/metrics", headers={"x-forwarded-for": "2.2.2.2"})
    inside = client.get("/metrics", headers={"x-forwarded-for": "81.2.69.142"})

    assert outside.status_code == 403
    assert "geo_admission_decisions_total" not in outside.text
    assert inside.status_code == 200
    assert "geo_admission_decisions_total" in inside.text


def test_resolver_timeout_denies_request() -> None:
    class SlowResolver:
        def resolve(self, address: str) -> GeoPoint | None:
            raise ResolverTimeoutError("lookup exceeded 2.0s")

    client = build_client(SlowResolver(), GEOFENCE_EXEMPT_PATHS="")

    response = client.get("/readyz", headers={"x-forwarded-for": "81.2.69.142"})

    assert response.status_code == 403


def test_custom_denied_message_is_used() -> None:
    client = build_client(GEOFENCE_EXEMPT_PATHS="", GEOFENCE_DENIED_MESSAGE="This site is only visible in London.")

    response = client.get("/readyz", headers={"x-forwarded-for": "2.2.2.2"})

    assert response.json()["error"]["message"] == "This site is only visible in London."


def test_admission_decisions_are_recorded_in_metrics() -> None:
    app = create_app(
        settings=build_settings(GEOFENCE_EXEMPT_PATHS="/metrics"),
        resolver=StaticLocationResolver({"81.2.69.142": CAMDEN, "2.2.2.2": PARIS}),
    )
    client = TestClient(app)

    client.get("/readyz", headers={"x-forwarded-for": "81.2.69.142"})
    client.get("/readyz", headers={"x-forwarded-for": "2.2.2.2"})
    client.get("/readyz")
    decisions = app.state.api_metrics.admission_snapshot()
    body = client.get("/metrics").text

    assert [item["reason_code"] for item in decisions] == [
        "WITHIN_RANGE",
        "OUT_OF_RANGE",
        "UNRESOLVABLE_LOCATION",
    ]
    assert [item["allowed"] for item in decisions] == [True, False, False]
    assert 'geo_admission_decisions_total{reason_code="OUT_OF_RANGE"} 1.0' in body


def test_cors_headers_added_when_origins_configured() -> None:
    client = build_client(CORS_ALLOW_ORIGINS="https://shop.example.com")

    response = client.get("/healthz", headers={"origin": "https://shop.example.com"})

    assert response.headers["access-control-allow-origin"] == "https://shop.example.com"


@pytest.mark.asyncio
async def test_concurrent_requests_are_decided_independently() -> None:
    app = create_app(
        settings=build_settings(GEOFENCE_EXEMPT_PATHS=""),
        resolver=StaticLocationResolver({"81.2.69.142": CAMDEN, "2.2.2.2": PARIS}),
    )
    addresses = ["81.2.69.142", "2.2.2.2", "", "81.2.69.142, 2.2.2.2"] * 5

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://storefront") as client:
        responses = await asyncio.gather(
            *(client.get("/readyz", headers={"x-forwarded-for": address}) for address in addresses)
        )

    expected = {"81.2.69.142": 200, "2.2.2.2": 403, "": 403, "81.2.69.142, 2.2.2.2": 200}
    assert [response.status_code for response in responses] == [expected[address] for address in addresses]
