"""Unit tests for the Torn API client"""

import httpx
import pytest

from sidekick_ledger.domain.exceptions import MissingAPIKeyError, TornAPIError, TornAuthError
from sidekick_ledger.infrastructure.clients.api_key import ApiKeyProvider
from sidekick_ledger.infrastructure.clients.torn import TornClient
from sidekick_ledger.utils.date_utils import from_unix


async def test_get_logs_sends_key_and_selection(torn_client, fake_torn, log_entry):
    """Test the log request sends the key and selection"""
    fake_torn.logs = {"abc": log_entry()}

    logs = await torn_client.get_logs()

    assert logs == [log_entry()]
    request = fake_torn.requests[0]
    assert request.url.path == "/user/"
    assert request.url.params["selections"] == "log"
    assert request.url.params["key"] == "test-key"


async def test_get_logs_empty_log(torn_client, fake_torn):
    """Test an empty log payload parses to no entries"""
    assert await torn_client.get_logs() == []


async def test_get_profile_parses_name_and_last_action(torn_client, fake_torn):
    """Test profile parsing"""
    fake_torn.profiles[500] = {"name": "Chedburn", "last_action": {"timestamp": 1700000000}}

    profile = await torn_client.get_profile(500)

    assert profile.player_id == 500
    assert profile.name == "Chedburn"
    assert profile.last_action_at == from_unix(1700000000)


async def test_get_profile_without_last_action(torn_client, fake_torn):
    """Test a profile without last action"""
    fake_torn.profiles[7] = {"name": "Quiet"}

    profile = await torn_client.get_profile(7)

    assert profile.last_action_at is None


@pytest.mark.parametrize("code", [1, 2, 10, 13, 16, 18])
async def test_key_error_codes_raise_auth_error(torn_client, fake_torn, code):
    """Test key error codes raise an auth error"""
    fake_torn.error = {"code": code, "error": "Incorrect key"}

    with pytest.raises(TornAuthError) as exc_info:
        await torn_client.get_logs()

    assert exc_info.value.code == code


async def test_other_error_codes_raise_api_error(torn_client, fake_torn):
    """Test other error codes raise an API error"""
    fake_torn.error = {"code": 5, "error": "Too many requests"}

    with pytest.raises(TornAPIError) as exc_info:
        await torn_client.get_logs()

    assert not isinstance(exc_info.value, TornAuthError)
    assert "Too many requests" in str(exc_info.value)


async def test_http_error_maps_to_api_error(torn_client, fake_torn):
    """Test HTTP errors become API errors"""
    fake_torn.status_code = 502

    with pytest.raises(TornAPIError, match="502"):
        await torn_client.get_logs()


async def test_timeout_maps_to_api_error(api_keys):
    """Test timeouts become API errors"""
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = TornClient(api_keys, base_url="https://torn.test", timeout=3, transport=httpx.MockTransport(handler))

    with pytest.raises(TornAPIError, match="timeout"):
        await client.get_logs()


async def test_invalid_json_maps_to_api_error(api_keys):
    """Test invalid JSON becomes an API error"""
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>"))
    client = TornClient(api_keys, base_url="https://torn.test", transport=transport)

    with pytest.raises(TornAPIError, match="Invalid JSON"):
        await client.get_logs()


async def test_missing_key_makes_no_request(fake_torn):
    """Test no request is made without a key"""
    client = TornClient(ApiKeyProvider(), base_url="https://torn.test", transport=fake_torn.transport())

    with pytest.raises(MissingAPIKeyError):
        await client.get_logs()

    assert fake_torn.requests == []


async def test_wait_ready_times_out_without_key():
    """Test waiting for a key times out"""
    assert await ApiKeyProvider().wait_ready(0.01) is None


async def test_clearing_key_resets_readiness():
    """Test clearing the key resets readiness"""
    api_keys = ApiKeyProvider("abc")
    api_keys.set(None)

    assert api_keys.get() is None
    assert await api_keys.wait_ready(0.01) is None
