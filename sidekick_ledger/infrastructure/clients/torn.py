"""Torn API HTTP client for transaction logs and player profiles"""

from typing import Any, Dict, List

import httpx

from sidekick_ledger.config import settings
from sidekick_ledger.domain.exceptions import MissingAPIKeyError, TornAPIError, TornAuthError
from sidekick_ledger.domain.matching import normalize_log_payload
from sidekick_ledger.domain.models import CounterpartyProfile
from sidekick_ledger.infrastructure.clients.api_key import ApiKeyProvider
from sidekick_ledger.infrastructure.observability.metrics import torn_api_failures_counter, torn_api_latency_histogram
from sidekick_ledger.utils.date_utils import from_unix

# Torn error codes that mean the key itself is unusable
AUTH_ERROR_CODES = {1, 2, 10, 13, 16, 18}


class TornClient:
    """Client for the external Torn REST API"""

    def __init__(
        self,
        api_keys: ApiKeyProvider,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_keys = api_keys
        self.base_url = (base_url or settings.torn_api_base).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def get_logs(self) -> List[Dict[str, Any]]:
        """
        Fetch the player's recent transaction log.

        Raises:
            MissingAPIKeyError: No API key configured
            TornAPIError: On timeout, HTTP errors, or an error payload
        """
        data = await self._get("user/", "log")
        return normalize_log_payload(data.get("log"))

    async def get_profile(self, player_id: int) -> CounterpartyProfile:
        """
        Fetch a player's public name and last action.

        Raises:
            MissingAPIKeyError: No API key configured
            TornAPIError: On timeout, HTTP errors, or an error payload
        """
        data = await self._get(f"user/{player_id}", "basic,profile")
        try:
            last_action = data.get("last_action") or {}
            timestamp = last_action.get("timestamp")
            return CounterpartyProfile(
                player_id=player_id,
                name=data.get("name"),
                last_action_at=from_unix(timestamp) if timestamp else None,
            )
        except (AttributeError, TypeError, ValueError, OverflowError) as e:
            raise TornAPIError(f"Invalid profile data from Torn: {e}") from e

    async def _get(self, path: str, selections: str) -> Dict[str, Any]:
        api_key = self.api_keys.get()
        if not api_key:
            raise MissingAPIKeyError("Torn API key is not configured")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                with torn_api_latency_histogram.time():
                    response = await client.get(
                        f"{self.base_url}/{path}",
                        params={"selections": selections, "key": api_key},
                    )
                response.raise_for_status()
                data = response.json()

            except httpx.TimeoutException as e:
                torn_api_failures_counter.inc()
                raise TornAPIError(f"Torn API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                torn_api_failures_counter.inc()
                raise TornAPIError(f"Torn API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                torn_api_failures_counter.inc()
                raise TornAPIError(f"Torn API unreachable: {e}") from e
            except ValueError as e:
                torn_api_failures_counter.inc()
                raise TornAPIError(f"Invalid JSON from Torn: {e}") from e

        if not isinstance(data, dict):
            torn_api_failures_counter.inc()
            raise TornAPIError("Unexpected Torn response shape")

        error = data.get("error")
        if error:
            torn_api_failures_counter.inc()
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("error") if isinstance(error, dict) else str(error)
            exc_type = TornAuthError if code in AUTH_ERROR_CODES else TornAPIError
            raise exc_type(f"Torn API error {code}: {message}", code=code)

        return data
