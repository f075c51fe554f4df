# File: src/walletsim/market/synchronizer.py

import asyncio
import logging
import time
from decimal import Decimal
from typing import Awaitable, Callable, Dict, Optional, Tuple, TYPE_CHECKING

from .price_source import MarketDataClient
from ..wallet.store import WalletStore
from ..wallet.templates import price_source_id
from ..utils.config import Config
from ..exceptions import TransientFetchError

if TYPE_CHECKING:
    from ..monitoring.metrics import MetricsCollector

logger = logging.getLogger(__name__)

class PriceSynchronizer:
    """Keeps the active wallet's prices and the fiat rate fresh.

    ``refresh(force=False)`` is throttled by the price cool-down measured
    from the last successful fetch and skipped while another fetch is still
    running; ``refresh(force=True)`` always fetches
    and takes at least ``forced_min_delay`` seconds. The fiat rate follows
    its own cadence and is only refreshed by the background tick. Fetch
    failures leave prices and rate untouched.
    """

    def __init__(
        self,
        store: WalletStore,
        client: MarketDataClient,
        metrics: Optional['MetricsCollector'] = None,
        price_cooldown: float = Config.PRICE_COOLDOWN,
        fiat_rate_interval: float = Config.FIAT_RATE_INTERVAL,
        tick_interval: float = Config.REFRESH_TICK,
        forced_min_delay: float = Config.FORCED_REFRESH_MIN_DELAY,
        fiat_currency: str = Config.FIAT_CURRENCY,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.store = store
        self.client = client
        self.metrics = metrics
        self.price_cooldown = price_cooldown
        self.fiat_rate_interval = fiat_rate_interval
        self.tick_interval = tick_interval
        self.forced_min_delay = forced_min_delay
        self.fiat_currency = fiat_currency
        self.fiat_rate: Decimal = Config.DEFAULT_FIAT_RATE
        self._clock = clock
        self._sleep = sleep
        self._last_price_fetch: Optional[float] = None
        self._last_fiat_attempt: Optional[float] = None
        self._in_flight = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _price_cooldown_active(self, now: float) -> bool:
        return (
            self._last_price_fetch is not None
            and now - self._last_price_fetch < self.price_cooldown
        )

    async def refresh(self, force: bool = False) -> bool:
        """Fetch prices for the active wallet; returns True when prices were merged"""
        started = self._clock()
        if not force and (self._in_flight or self._price_cooldown_active(started)):
            logger.debug("Price refresh skipped: cool-down active or fetch in flight")
            if self.metrics:
                self.metrics.record_refresh("throttled")
            return False

        self._in_flight = True
        try:
            updated = await self._fetch_and_merge()
        finally:
            self._in_flight = False
            if force:
                elapsed = self._clock() - started
                if elapsed < self.forced_min_delay:
                    await self._sleep(self.forced_min_delay - elapsed)
        return updated

    async def _fetch_and_merge(self) -> bool:
        wallet = self.store.active_wallet
        source_ids = {asset.id: price_source_id(asset.id) for asset in wallet.assets}
        started = self._clock()
        try:
            quotes = await self.client.fetch_prices(source_ids.values())
        except TransientFetchError as e:
            logger.warning(f"Price refresh failed, keeping previous prices: {e}")
            if self.metrics:
                self.metrics.record_refresh("failed")
            return False
        if self.metrics:
            self.metrics.observe_fetch_latency(self._clock() - started)

        # Applied to whichever wallet is active now, matching by asset id
        active = self.store.active_wallet
        merged: Dict[str, Tuple[Decimal, Optional[Decimal]]] = {}
        for asset in active.assets:
            quote = quotes.get(price_source_id(asset.id))
            if quote is not None:
                merged[asset.id] = (quote.usd, quote.usd_24h_change)
        count = self.store.merge_prices(active.id, merged)
        self._last_price_fetch = self._clock()
        logger.info(f"Updated prices for {count} asset(s) in wallet {active.id}")
        if self.metrics:
            self.metrics.record_refresh("ok")
        return True

    async def refresh_fiat_rate(self) -> Decimal:
        """Refresh the USD fiat rate at most once per cadence window"""
        now = self._clock()
        if self._last_fiat_attempt is not None and now - self._last_fiat_attempt < self.fiat_rate_interval:
            return self.fiat_rate
        self._last_fiat_attempt = now
        try:
            self.fiat_rate = await self.client.fetch_fiat_rate(self.fiat_currency)
            logger.info(f"Fiat rate updated: 1 USD = {self.fiat_rate} {self.fiat_currency}")
        except TransientFetchError as e:
            logger.warning(f"Fiat rate refresh failed, keeping {self.fiat_rate}: {e}")
        return self.fiat_rate

    async def tick(self) -> None:
        await self.refresh(False)
        await self.refresh_fiat_rate()

    async def _run(self) -> None:
        while True:
            try:
                await self.tick()
            except Exception as e:
                logger.exception(f"Background price refresh crashed: {e}")
            await self._sleep(self.tick_interval)

    async def start(self) -> None:
        """Start the background refresh task"""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Price synchronizer started (tick {self.tick_interval}s)")

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish"""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Price synchronizer stopped")
