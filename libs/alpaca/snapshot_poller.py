"""
Account Snapshot Poller

Periodically fetches account, positions and open orders concurrently and
fuses them into one timestamped AccountSnapshot.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime
from typing import Any, Optional, Protocol

from alpaca.trading.models import Order, Position, TradeAccount

from libs.alpaca.types import AccountSnapshot
from libs.common.logging import log_with_context

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 10.0  # seconds


class AccountSource(Protocol):
    """Synchronous REST operations the poller needs (see AlpacaRestClient)."""

    def get_account(self) -> Optional[TradeAccount]: ...

    def get_positions(self) -> Optional[list[Position]]: ...

    def get_open_orders(self) -> Optional[list[Order]]: ...


def _utc_now() -> datetime:
    return datetime.now(UTC)


class AccountSnapshotPoller:
    """
    Emit a fused account view on a fixed cadence.

    Each cycle runs the three REST calls side by side in worker threads, so a
    cycle takes about as long as the slowest call. A call returning None
    leaves that field None. A cycle that raises still emits a snapshot, with
    every field None, so the sequence never ends on a bad tick.

    Example:
        poller = AccountSnapshotPoller(rest_client, interval=10.0)

        async for snapshot in poller.poll():
            if snapshot.account is not None:
                print(snapshot.captured_at, snapshot.account.equity)
    """

    def __init__(
        self,
        source: AccountSource,
        interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize poller.

        Args:
            source: REST collaborator providing the three fetches
            interval: Seconds to sleep between cycles (default: 10)
            clock: Timestamp source for captured_at (default: UTC now)
        """
        if interval < 0:
            raise ValueError(f"interval must be >= 0, got {interval}")
        self.source = source
        self.interval = interval
        self._clock = clock
        self._cycles = 0
        self._failed_cycles = 0

    async def capture(self) -> AccountSnapshot:
        """
        Run one fan-out/fan-in cycle.

        Returns:
            Snapshot stamped after all three fetches resolved

        Raises:
            Exception: Whatever a fetch raised; poll() turns this into an
                all-None snapshot
        """
        account, positions, orders = await asyncio.gather(
            asyncio.to_thread(self.source.get_account),
            asyncio.to_thread(self.source.get_positions),
            asyncio.to_thread(self.source.get_open_orders),
        )
        snapshot = AccountSnapshot(
            captured_at=self._clock(),
            account=account,
            positions=positions,
            orders=orders,
        )
        if not snapshot.is_complete:
            missing = [
                name
                for name, value in (("account", account), ("positions", positions), ("orders", orders))
                if value is None
            ]
            log_with_context(
                logger, "WARNING", f"Partial account snapshot, missing: {missing}", missing=missing
            )
        return snapshot

    async def poll(self, interval: Optional[float] = None) -> AsyncIterator[AccountSnapshot]:
        """
        Yield one snapshot per cycle, forever.

        Stop by breaking out of the loop or cancelling the consuming task;
        in-flight REST calls are abandoned, not awaited.

        Args:
            interval: Override the configured sleep between cycles (seconds)
        """
        delay = self.interval if interval is None else interval
        logger.info(f"Starting account snapshot polling (interval={delay}s)")

        while True:
            self._cycles += 1
            try:
                snapshot = await self.capture()
            except Exception as e:
                self._failed_cycles += 1
                logger.error(f"Error fetching account snapshot: {e}", exc_info=True)
                snapshot = AccountSnapshot(captured_at=self._clock())

            yield snapshot
            await asyncio.sleep(delay)

    def get_poll_stats(self) -> dict[str, Any]:
        return {
            "interval": self.interval,
            "cycles": self._cycles,
            "failed_cycles": self._failed_cycles,
        }
