"""Tests for the sensor portal gateway."""

from typing import Callable, List
from unittest.mock import MagicMock

import httpx
import pytest

from thermweb_monitor.config import MonitorSettings
from thermweb_monitor.portal import (
    ConfigurationError,
    GatewayResult,
    SensorGateway,
    TransportError,
    UpstreamError,
    devices_from_payload,
    probes_from_payload,
    reading_from_payload,
)


def gateway_with(
    handler: Callable[[httpx.Request], httpx.Response],
    user: str = "42",
    session: str = "session-token",
) -> SensorGateway:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return SensorGateway("http://portal.test/", user, session, client=client)


class TestRequests:
    """Tests for the requests the gateway sends."""

    def test_list_devices_request_shape(self) -> None:
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"devices": {}})

        result = gateway_with(handler).list_devices()

        assert result.ok
        request = seen[0]
        assert request.url.path == "/api/tw-api.cgi"
        assert request.url.params["path"] == "/v1/users/42/devices"
        assert request.headers["Cookie"] == "THERM_PORTAL_USER=42; THERM_PORTAL_SESSION=session-token"
        assert request.headers["User-Agent"] == "spider-proxy/1.0"

    def test_probe_paths(self) -> None:
        paths: List[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.params["path"])
            return httpx.Response(200, json={})

        gateway = gateway_with(handler)
        gateway.list_probes()
        gateway.get_probe("4c7525046c96-0e76b286d29e_rh")

        assert paths == [
            "/v1/users/42/probes",
            "/v1/users/42/probes/4c7525046c96-0e76b286d29e_rh",
        ]

    def test_payload_passed_through(self) -> None:
        payload = {"id": "p1", "value": 4.25, "extra": {"nested": True}}

        result = gateway_with(lambda r: httpx.Response(200, json=payload)).get_probe("p1")

        assert result.data == payload
        assert result.status_code == 200

    def test_from_settings(self, settings: MonitorSettings) -> None:
        gateway = SensorGateway.from_settings(settings, client=MagicMock(spec=httpx.Client))

        assert gateway.base_url == "http://portal.test"
        assert gateway.user == "42"
        assert gateway.has_credentials


class TestFailures:
    """Every failure comes back as a result, never an exception."""

    def test_missing_credentials_performs_no_request(self) -> None:
        client = MagicMock(spec=httpx.Client)
        gateway = SensorGateway("http://portal.test", None, "token", client=client)

        result = gateway.list_devices()

        assert not result.ok
        assert isinstance(result.error, ConfigurationError)
        assert result.error.message == "Missing authentication configuration"
        assert result.status_code == 500
        client.get.assert_not_called()

    @pytest.mark.parametrize("status", [401, 403, 404, 502])
    def test_non_success_status(self, status: int) -> None:
        result = gateway_with(lambda r: httpx.Response(status, text="nope")).list_probes()

        assert isinstance(result.error, UpstreamError)
        assert result.error.status == status
        assert result.status_code == status
        assert result.error.message == f"API request failed with status {status}"

    def test_session_hint_on_auth_failure(self) -> None:
        result = gateway_with(lambda r: httpx.Response(401)).list_devices()

        assert "session may have expired" in str(result.error)

    def test_network_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        result = gateway_with(handler).get_probe("p1")

        assert isinstance(result.error, TransportError)
        assert result.error.message.startswith("Request failed:")
        assert result.status_code == 500

    def test_invalid_json(self) -> None:
        result = gateway_with(lambda r: httpx.Response(200, text="<html>")).list_devices()

        assert isinstance(result.error, TransportError)
        assert "Invalid JSON" in result.error.message

    def test_unwrap_raises_carried_error(self) -> None:
        result = GatewayResult.failure(UpstreamError(503))

        with pytest.raises(UpstreamError):
            result.unwrap()
        assert GatewayResult.success({"a": 1}).unwrap() == {"a": 1}


class TestPayloadModels:
    """Tests for payload parsing helpers."""

    def test_devices_from_payload(self) -> None:
        devices = devices_from_payload(
            {"devices": {"abc": {"name": "Storage", "last": "1717243140"}, "def": None}}
        )

        assert devices["abc"].name == "Storage"
        assert devices["abc"].last == 1717243140
        assert devices["def"].name == "Unknown"
        assert devices["def"].last is None

    def test_devices_from_unexpected_payload(self) -> None:
        assert devices_from_payload({"devices": []}) == {}
        assert devices_from_payload("oops") == {}

    def test_probes_from_payload_skips_entries_without_id(self) -> None:
        probes = probes_from_payload(
            {"probes": [{"id": "4c7525046c96-x", "probetype": "tf"}, {"name": "orphan"}, "junk"]}
        )

        assert [p.id for p in probes] == ["4c7525046c96-x"]
        assert probes[0].device_id == "4c7525046c96"

    @pytest.mark.parametrize(
        "raw,expected",
        [(None, None), ("-3.5", -3.5), (4, 4.0), ("n/a", None), (True, None)],
    )
    def test_reading_value_coercion(self, raw: object, expected: object) -> None:
        reading = reading_from_payload({"value": raw}, "p1")

        assert reading.id == "p1"
        assert reading.value == expected

    def test_reading_metadata_coercion(self) -> None:
        reading = reading_from_payload(
            {"value": "-3.0", "probetype": None, "name": 7, "time_last": 1717243140}, "p1"
        )

        assert reading.value == -3.0
        assert reading.probetype == ""
        assert reading.name == "7"
        assert reading.time_last == "1717243140"

    def test_probe_list_metadata_coercion(self) -> None:
        probes = probes_from_payload(
            {"probes": [{"id": "4c7525046c96-x", "name": None, "probetype": 3}]}
        )

        assert probes[0].name is None
        assert probes[0].probetype == "3"

    @pytest.mark.parametrize("raw", [None, 42, ["x"]])
    def test_device_name_fallback(self, raw: object) -> None:
        devices = devices_from_payload({"devices": {"abc": {"name": raw, "last": 1717243140}}})

        assert devices["abc"].name == ("42" if raw == 42 else "Unknown")
        assert devices["abc"].last == 1717243140
