"""Best-effort counterparty name and activity lookups"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import List, Optional

import httpx

from sidekick_ledger.config import Settings, settings as default_settings
from sidekick_ledger.domain.exceptions import (
    MissingAPIKeyError,
    ObligationNotFoundError,
    StorageError,
    TornAPIError,
)
from sidekick_ledger.domain.models import Obligation
from sidekick_ledger.infrastructure.clients.api_key import ApiKeyProvider
from sidekick_ledger.infrastructure.clients.torn import TornClient
from sidekick_ledger.services.store import ObligationStore
from sidekick_ledger.utils.date_utils import utcnow

LOOKUP_ERRORS = (TornAPIError, MissingAPIKeyError, StorageError, httpx.HTTPError)


class CounterpartyEnricher:
    """Resolves placeholder names and refreshes last-seen data from Torn profiles"""

    def __init__(
        self,
        store: ObligationStore,
        client: TornClient,
        api_keys: ApiKeyProvider,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.client = client
        self.api_keys = api_keys
        self.settings = settings or default_settings

    @property
    def key_wait_timeout(self) -> float:
        return self.settings.api_key_wait_attempts * self.settings.api_key_wait_delay_seconds

    async def resolve_name(self, obligation_id: str) -> bool:
        """
        Replace an obligation's placeholder name with the Torn profile name.

        Waits briefly for the API key to become available. Never raises:
        on any failure the placeholder stays.

        Returns:
            True if the name was updated
        """
        obligation = self.store.find_by_id(obligation_id)
        if obligation is None or obligation.counterparty_id is None or not obligation.has_placeholder_name:
            return False

        if await self.api_keys.wait_ready(self.key_wait_timeout) is None:
            logging.info(f"No API key available, keeping placeholder for player {obligation.counterparty_id}")
            return False

        try:
            profile = await self.client.get_profile(obligation.counterparty_id)
            if not profile.name:
                logging.info(f"No name returned for player {obligation.counterparty_id}")
                return False
            await self.store.update_counterparty(obligation_id, name=profile.name)
        except ObligationNotFoundError:
            logging.info(f"Obligation {obligation_id} was deleted before its name resolved")
            return False
        except LOOKUP_ERRORS as e:
            logging.warning(f"Failed to resolve name for player {obligation.counterparty_id}: {e}")
            return False

        logging.info(f"Updated player name: {obligation.counterparty_name} -> {profile.name}")
        return True

    async def resolve_placeholders(self) -> int:
        """Resolve every placeholder name, spacing Torn calls to respect rate limits"""
        pending = [o.id for o in self.store.list_obligations(include_completed=True) if o.has_placeholder_name and o.counterparty_id is not None]
        resolved = 0
        for index, obligation_id in enumerate(pending):
            if index > 0:
                await asyncio.sleep(self.settings.api_call_spacing_seconds)
            if await self.resolve_name(obligation_id):
                resolved += 1
        return resolved

    def needs_activity_refresh(self, obligation: Obligation, now: datetime) -> bool:
        if obligation.completed or obligation.counterparty_id is None:
            return False
        if obligation.last_action_fetched_at is None:
            return True
        return now - obligation.last_action_fetched_at > timedelta(hours=self.settings.activity_refresh_hours)

    async def refresh_activity(self, now: Optional[datetime] = None) -> int:
        """
        Refresh last-seen timestamps at most once per refresh period per obligation.

        Returns:
            Number of obligations whose profile was fetched
        """
        now = now or utcnow()
        if not self.api_keys.get():
            return 0

        due: List[Obligation] = [o for o in self.store.list_obligations() if self.needs_activity_refresh(o, now)]
        updated = 0
        for index, obligation in enumerate(due):
            if index > 0:
                await asyncio.sleep(self.settings.api_call_spacing_seconds)
            try:
                profile = await self.client.get_profile(obligation.counterparty_id)
                await self.store.update_counterparty(
                    obligation.id,
                    last_action_at=profile.last_action_at,
                    fetched_at=now,
                )
                updated += 1
            except ObligationNotFoundError:
                continue
            except LOOKUP_ERRORS as e:
                logging.info(f"Could not update activity for player {obligation.counterparty_id}: {e}")

        return updated
