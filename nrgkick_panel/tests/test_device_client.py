import httpx
import pytest
from pytest_httpx import HTTPXMock

from nrgkick_panel.errors import ConfigurationError, DeviceError, NetworkError
from nrgkick_panel.models.device import DeviceConfig
from nrgkick_panel.services.device_client import DeviceClient, check_target, extract_error_message
from nrgkick_panel.tests.fake_device import CONTROL_PAYLOAD, null_log


def _direct(**overrides):
    cfg = DeviceConfig(address="192.168.1.100", **overrides)
    return DeviceClient(cfg, null_log())


def _proxied():
    cfg = DeviceConfig(proxy_mode=True, proxy_url="http://localhost:3000/")
    return DeviceClient(cfg, null_log())


def test_extract_error_message_variants():
    assert extract_error_message({"Response": "Unauthorized"}) == "Unauthorized"
    assert extract_error_message({"error": "Failed to connect"}) == "Failed to connect"
    assert extract_error_message({"message": "bad value"}) == "bad value"
    assert extract_error_message({"current_set": 16}) is None
    assert extract_error_message(["not", "a", "dict"]) is None


def test_urls_for_direct_and_proxy_modes():
    assert _direct().build_url("/info") == "http://192.168.1.100/info"
    assert _proxied().build_url("control") == "http://localhost:3000/api/control"


def test_unconfigured_direct_client_raises_configuration_error():
    client = DeviceClient(DeviceConfig(address=" "), null_log())
    with pytest.raises(ConfigurationError):
        client.build_url("/info")


def test_direct_client_builds_basic_auth_from_config():
    assert _direct(username="admin", password="secret").auth_header == "Basic YWRtaW46c2VjcmV0"
    assert _direct(username="admin").auth_header is None


@pytest.mark.asyncio
async def test_request_returns_json_and_sends_headers(httpx_mock: HTTPXMock):
    httpx_mock.add_response(url="http://192.168.1.100/control?current_set=16", json=CONTROL_PAYLOAD)
    async with _direct(username="admin", password="secret") as client:
        data = await client.request("/control", {"current_set": 16})

    assert data == CONTROL_PAYLOAD
    sent = httpx_mock.get_request()
    assert sent.headers["Accept"] == "application/json"
    assert sent.headers["Authorization"] == "Basic YWRtaW46c2VjcmV0"


@pytest.mark.asyncio
async def test_error_payload_on_http_200_raises_device_error(httpx_mock: HTTPXMock):
    httpx_mock.add_response(url="http://192.168.1.100/control?current_set=40", json={"Response": "Value out of range"})
    async with _direct() as client:
        with pytest.raises(DeviceError, match="Value out of range"):
            await client.request("/control", {"current_set": 40})


@pytest.mark.asyncio
async def test_proxy_error_body_is_surfaced(httpx_mock: HTTPXMock):
    httpx_mock.add_response(
        url="http://localhost:3000/api/values",
        status_code=504,
        json={"error": "Connection to NRGKick device timed out"},
    )
    async with _proxied() as client:
        with pytest.raises(NetworkError) as excinfo:
            await client.request("/values")
    assert excinfo.value.status_code == 504
    assert str(excinfo.value) == "Connection to NRGKick device timed out"


@pytest.mark.asyncio
async def test_http_error_without_body_uses_status_line(httpx_mock: HTTPXMock):
    httpx_mock.add_response(url="http://192.168.1.100/info", status_code=401, text="nope")
    async with _direct() as client:
        with pytest.raises(NetworkError, match="HTTP 401: Unauthorized"):
            await client.request("/info")


@pytest.mark.asyncio
async def test_timeout_becomes_network_error(httpx_mock: HTTPXMock):
    httpx_mock.add_exception(httpx.ReadTimeout("timed out"), url="http://192.168.1.100/values")
    async with _direct() as client:
        with pytest.raises(NetworkError, match="timed out"):
            await client.request("/values")


@pytest.mark.asyncio
async def test_non_json_payload_is_device_error(httpx_mock: HTTPXMock):
    httpx_mock.add_response(url="http://192.168.1.100/info", text="<html></html>")
    async with _direct() as client:
        with pytest.raises(DeviceError, match="non-JSON"):
            await client.request("/info")


@pytest.mark.asyncio
async def test_fetch_server_config(httpx_mock: HTTPXMock):
    httpx_mock.add_response(
        url="http://localhost:3000/api/config",
        json={"configured": True, "ip": "192.168.1.100", "hasAuth": False},
    )
    async with _proxied() as client:
        cfg = await client.fetch_server_config()
    assert cfg == {"configured": True, "ip": "192.168.1.100", "hasAuth": False}


@pytest.mark.parametrize(
    "url",
    ["http://192.168.1.100:99999/info", "http://192.168.1.100:0/info", "http://:80/info", "http:///info"],
)
def test_check_target_rejects_undialable_addresses(url):
    with pytest.raises(ConfigurationError, match="Invalid device address"):
        check_target(url)


def test_check_target_accepts_host_and_port():
    assert check_target("http://192.168.1.100:8080/info") == "http://192.168.1.100:8080/info"
    assert check_target("http://nrgkick.local/values") == "http://nrgkick.local/values"


@pytest.mark.asyncio
async def test_out_of_range_port_raises_configuration_error():
    client = DeviceClient(DeviceConfig(address="192.168.1.100:99999"), null_log())
    try:
        with pytest.raises(ConfigurationError, match="Invalid device address"):
            await client.request("/info")
    finally:
        await client.aclose()
