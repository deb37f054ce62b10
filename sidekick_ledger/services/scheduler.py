"""Periodic timers and the payment reconciliation driver"""

import asyncio
import logging
from contextlib import suppress
from typing import Awaitable, Callable, Optional

import httpx

from sidekick_ledger.config import Settings, settings as default_settings
from sidekick_ledger.domain.exceptions import (
    InvalidOperationError,
    MissingAPIKeyError,
    StorageError,
    TornAPIError,
    TornAuthError,
)
from sidekick_ledger.infrastructure.clients.api_key import ApiKeyProvider
from sidekick_ledger.infrastructure.clients.torn import TornClient
from sidekick_ledger.infrastructure.notifications import Notifier, Severity
from sidekick_ledger.infrastructure.observability.metrics import reconciliation_failures_counter
from sidekick_ledger.services.matcher import PaymentMatcher


class PeriodicTask:
    """
    Runs a coroutine function on a fixed interval until stopped.

    With initial_delay set, the first run happens after that delay instead of
    after a full interval. Errors escaping the callback are logged and the
    loop keeps going.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[[], Awaitable[object]],
        initial_delay: Optional[float] = None,
    ):
        self.name = name
        self.interval = interval
        self.callback = callback
        self.initial_delay = initial_delay
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name=self.name)
        logging.info(f"Started {self.name} timer (every {self.interval}s)")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        delay = self.initial_delay if self.initial_delay is not None else self.interval
        while True:
            await asyncio.sleep(delay)
            delay = self.interval
            try:
                await self.callback()
            except Exception as e:
                logging.exception(f"{self.name} run failed: {e}")


class ReconciliationScheduler:
    """Fetches Torn logs every interval and hands them to the payment matcher"""

    def __init__(
        self,
        matcher: PaymentMatcher,
        client: TornClient,
        api_keys: ApiKeyProvider,
        notifier: Notifier,
        settings: Optional[Settings] = None,
    ):
        self.matcher = matcher
        self.client = client
        self.api_keys = api_keys
        self.notifier = notifier
        self.settings = settings or default_settings
        self._missing_key_warned = False
        self._timer = PeriodicTask(
            "payment-reconciliation",
            self.settings.reconcile_interval_seconds,
            self.check_for_payments,
            initial_delay=self.settings.reconcile_initial_delay_seconds,
        )

    @property
    def running(self) -> bool:
        return self._timer.running

    def start(self) -> None:
        self._timer.start()

    async def stop(self) -> None:
        await self._timer.stop()

    async def check_for_payments(self) -> int:
        """
        Run one reconciliation pass.

        Never raises: failures are logged, counted and surfaced as a warning,
        and the next tick tries again.

        Returns:
            Number of repayments applied
        """
        if not self.api_keys.get():
            self._warn_missing_key()
            return 0

        try:
            logs = await self.client.get_logs()
            return await self.matcher.process_logs(logs)

        except (TornAuthError, MissingAPIKeyError) as e:
            reconciliation_failures_counter.inc()
            logging.warning(f"Torn API rejected the key: {e}")
            self.notifier.show(
                "Debt Tracker - API Key Problem",
                "Automatic payment detection stopped: the Torn API rejected your API key.",
                Severity.WARNING,
            )
        except (TornAPIError, httpx.HTTPError) as e:
            reconciliation_failures_counter.inc()
            logging.warning(f"Payment log fetch failed: {e}")
            self.notifier.show(
                "Debt Tracker",
                "Payment monitoring temporarily unavailable - API connection issue",
                Severity.WARNING,
            )
        except StorageError as e:
            reconciliation_failures_counter.inc()
            logging.error(f"Failed to persist reconciled payments: {e}")
            self.notifier.show(
                "Debt Tracker",
                "Detected payments could not be saved; they will be retried",
                Severity.ERROR,
            )
        except InvalidOperationError as e:
            reconciliation_failures_counter.inc()
            logging.error(f"Reconciliation rejected a repayment: {e}")
        return 0

    def _warn_missing_key(self) -> None:
        if self._missing_key_warned:
            return
        self._missing_key_warned = True
        logging.info("No API key available for payment monitoring")
        self.notifier.show(
            "Debt Tracker - API Key Required",
            "Automatic payment detection requires an API key. Please add your API key in Settings.",
            Severity.WARNING,
        )
