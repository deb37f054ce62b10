"""Torn API key holder with a one-shot readiness signal"""

import asyncio
from typing import Optional


class ApiKeyProvider:
    """
    Supplies the Torn API key to network-dependent components.

    Callers that need the key as soon as it is configured await wait_ready()
    instead of polling get().
    """

    def __init__(self, api_key: Optional[str] = None):
        self._api_key: Optional[str] = None
        self._ready = asyncio.Event()
        if api_key:
            self.set(api_key)

    def get(self) -> Optional[str]:
        return self._api_key

    def set(self, api_key: Optional[str]) -> None:
        self._api_key = api_key or None
        if self._api_key:
            self._ready.set()
        else:
            self._ready.clear()

    async def wait_ready(self, timeout: float) -> Optional[str]:
        """Return the key once available, or None if it does not arrive within timeout"""
        if self._api_key:
            return self._api_key
        try:
            await asyncio.wait_for(self._ready.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return None
        return self._api_key
