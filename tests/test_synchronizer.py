# tests/test_synchronizer.py
import asyncio
import pytest
from decimal import Decimal
from unittest.mock import AsyncMock
from prometheus_client import CollectorRegistry

from walletsim.market.models import PriceQuote
from walletsim.market.synchronizer import PriceSynchronizer
from walletsim.monitoring.metrics import MetricsCollector
from walletsim.wallet.processor import TransactionIntent, TransactionProcessor
from walletsim.wallet.store import WalletStore
from walletsim.wallet.identifiers import SequentialIdentifierGenerator
from walletsim.exceptions import TransientFetchError

class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds

QUOTES = {
    "ethereum": PriceQuote(usd=Decimal("3500"), usd_24h_change=Decimal("2.5")),
    "tron": PriceQuote(usd=Decimal("0.15")),
}

@pytest.fixture
def store():
    return WalletStore.with_default_wallet(id_generator=SequentialIdentifierGenerator())

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def client():
    client = AsyncMock()
    client.fetch_prices.return_value = QUOTES
    client.fetch_fiat_rate.return_value = Decimal("95.1")
    return client

@pytest.fixture
def metrics():
    return MetricsCollector(registry=CollectorRegistry())

@pytest.fixture
def synchronizer(store, client, metrics, clock):
    return PriceSynchronizer(store, client, metrics, clock=clock, sleep=clock.sleep)

@pytest.mark.asyncio
async def test_refresh_merges_prices(synchronizer, store, client):
    assert await synchronizer.refresh() is True

    eth = store.active_wallet.get_asset("eth")
    assert eth.price_usd == Decimal("3500")
    assert eth.change_24h == Decimal("2.5")
    assert eth.balance == Decimal("0.452")
    assert store.active_wallet.get_asset("tron").price_usd == Decimal("0.15")
    # No quote, previous price kept
    assert store.active_wallet.get_asset("bitcoin").price_usd == Decimal("64230.50")

    requested = set(client.fetch_prices.call_args[0][0])
    assert requested == {"tether", "tron", "ethereum", "bitcoin"}

@pytest.mark.asyncio
async def test_cooldown_throttles_unforced_refresh(synchronizer, client, clock, metrics):
    await synchronizer.refresh(False)
    clock.now += 10
    assert await synchronizer.refresh(False) is False
    assert client.fetch_prices.await_count == 1
    assert metrics.sample("walletsim_price_refreshes_total", outcome="throttled") == 1

    clock.now += 25
    assert await synchronizer.refresh(False) is True
    assert client.fetch_prices.await_count == 2

@pytest.mark.asyncio
async def test_forced_refresh_bypasses_cooldown(synchronizer, client):
    await synchronizer.refresh(True)
    await synchronizer.refresh(True)
    assert client.fetch_prices.await_count == 2

@pytest.mark.asyncio
async def test_forced_refresh_takes_minimum_delay(synchronizer, clock):
    started = clock.now
    await synchronizer.refresh(True)
    assert clock.now - started == pytest.approx(0.8)

    # An unforced refresh does not wait
    clock.now += 60
    clock.sleeps.clear()
    await synchronizer.refresh(False)
    assert clock.sleeps == []

@pytest.mark.asyncio
async def test_forced_refresh_waits_even_on_failure(synchronizer, client, clock):
    client.fetch_prices.side_effect = TransientFetchError("offline")
    started = clock.now
    assert await synchronizer.refresh(True) is False
    assert clock.now - started == pytest.approx(0.8)

@pytest.mark.asyncio
async def test_failed_fetch_keeps_prices(synchronizer, store, client, metrics):
    client.fetch_prices.side_effect = TransientFetchError("HTTP 429")
    before = store.to_dict()
    assert await synchronizer.refresh() is False
    assert store.to_dict() == before
    assert metrics.sample("walletsim_price_refreshes_total", outcome="failed") == 1

@pytest.mark.asyncio
async def test_failed_fetch_does_not_start_cooldown(synchronizer, client):
    client.fetch_prices.side_effect = TransientFetchError("offline")
    await synchronizer.refresh()
    client.fetch_prices.side_effect = None
    assert await synchronizer.refresh() is True
    assert client.fetch_prices.await_count == 2

@pytest.mark.asyncio
async def test_merge_preserves_concurrent_balance_change(store, clock):
    processor = TransactionProcessor(store)

    async def fetch_prices(ids):
        # A transaction commits while the request is in flight
        processor.apply_transaction(TransactionIntent("send", "eth", "0.2", address="x"), "main")
        return QUOTES

    client = AsyncMock()
    client.fetch_prices.side_effect = fetch_prices
    synchronizer = PriceSynchronizer(store, client, clock=clock, sleep=clock.sleep)
    await synchronizer.refresh()

    eth = store.active_wallet.get_asset("eth")
    assert eth.balance == Decimal("0.252")
    assert eth.price_usd == Decimal("3500")
    assert len(store.active_wallet.transactions) == 1

@pytest.mark.asyncio
async def test_prices_go_to_wallet_active_at_merge(store, clock):
    other = store.create_wallet()
    store.select_wallet("main")

    async def fetch_prices(ids):
        store.select_wallet(other.id)
        return QUOTES

    client = AsyncMock()
    client.fetch_prices.side_effect = fetch_prices
    synchronizer = PriceSynchronizer(store, client, clock=clock, sleep=clock.sleep)
    await synchronizer.refresh()

    assert store.get_wallet(other.id).get_asset("eth").price_usd == Decimal("3500")
    assert store.get_wallet("main").get_asset("eth").price_usd == Decimal("3240.15")

@pytest.mark.asyncio
async def test_negative_quote_not_merged(synchronizer, store, client):
    client.fetch_prices.return_value = {
        "tether": PriceQuote.model_construct(usd=Decimal("-5"), usd_24h_change=None),
        "tron": PriceQuote.model_construct(usd=Decimal("Infinity"), usd_24h_change=None),
        "ethereum": PriceQuote(usd=Decimal("3500")),
    }
    assert await synchronizer.refresh() is True

    wallet = store.active_wallet
    assert wallet.get_asset("usdt-tron").price_usd == Decimal("1.00")
    assert wallet.get_asset("tron").price_usd == Decimal("0.12")
    assert wallet.get_asset("eth").price_usd == Decimal("3500")

def test_negative_quote_rejected_by_model():
    with pytest.raises(ValueError):
        PriceQuote(usd=Decimal("-5"))
    with pytest.raises(ValueError):
        PriceQuote.model_validate({"usd": "Infinity"})
    assert PriceQuote(usd=Decimal("0")).usd == 0

@pytest.mark.asyncio
async def test_overlapping_unforced_refreshes_fetch_once(synchronizer, client, metrics):
    release = asyncio.Event()

    async def fetch_prices(ids):
        await release.wait()
        return QUOTES

    client.fetch_prices.side_effect = fetch_prices
    first = asyncio.create_task(synchronizer.refresh(False))
    await asyncio.sleep(0)
    second = await synchronizer.refresh(False)
    release.set()

    assert await first is True
    assert second is False
    assert client.fetch_prices.await_count == 1
    assert metrics.sample("walletsim_price_refreshes_total", outcome="throttled") == 1

@pytest.mark.asyncio
async def test_gathered_unforced_refreshes_fetch_once(synchronizer, client):
    results = await asyncio.gather(synchronizer.refresh(False), synchronizer.refresh(False))
    assert sorted(results) == [False, True]
    assert client.fetch_prices.await_count == 1

@pytest.mark.asyncio
async def test_fiat_rate_cadence(synchronizer, client, clock):
    assert synchronizer.fiat_rate == Decimal("92.5")
    assert await synchronizer.refresh_fiat_rate() == Decimal("95.1")

    client.fetch_fiat_rate.return_value = Decimal("99")
    clock.now += 30
    assert await synchronizer.refresh_fiat_rate() == Decimal("95.1")
    assert client.fetch_fiat_rate.await_count == 1

    clock.now += 31
    assert await synchronizer.refresh_fiat_rate() == Decimal("99")

@pytest.mark.asyncio
async def test_fiat_rate_failure_keeps_previous(synchronizer, client):
    client.fetch_fiat_rate.side_effect = TransientFetchError("offline")
    assert await synchronizer.refresh_fiat_rate() == Decimal("92.5")
    assert synchronizer.fiat_rate == Decimal("92.5")

@pytest.mark.asyncio
async def test_tick_refreshes_prices_and_rate(synchronizer, client):
    await synchronizer.tick()
    assert client.fetch_prices.await_count == 1
    assert client.fetch_fiat_rate.await_count == 1

@pytest.mark.asyncio
async def test_start_stop(store, client):
    ticked = asyncio.Event()

    async def fetch_prices(ids):
        ticked.set()
        return QUOTES

    client.fetch_prices.side_effect = fetch_prices
    synchronizer = PriceSynchronizer(store, client, tick_interval=3600)

    await synchronizer.start()
    assert synchronizer.running
    # Starting twice keeps a single task
    task = synchronizer._task
    await synchronizer.start()
    assert synchronizer._task is task

    await asyncio.wait_for(ticked.wait(), timeout=1)
    await synchronizer.stop()
    assert not synchronizer.running
    # Stopping again is harmless
    await synchronizer.stop()

@pytest.mark.asyncio
async def test_background_loop_survives_errors(store, clock):
    calls = []

    async def fetch_prices(ids):
        calls.append(ids)
        raise RuntimeError("unexpected")

    client = AsyncMock()
    client.fetch_prices.side_effect = fetch_prices

    async def sleep(seconds):
        if len(calls) >= 2:
            raise asyncio.CancelledError()
        clock.now += seconds

    synchronizer = PriceSynchronizer(store, client, clock=clock, sleep=sleep)
    with pytest.raises(asyncio.CancelledError):
        await synchronizer._run()
    assert len(calls) == 2
