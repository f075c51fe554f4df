# tests/test_session.py
import os
import shutil
import tempfile
import pytest
import yaml
from decimal import Decimal
from unittest.mock import AsyncMock
from prometheus_client import CollectorRegistry

from walletsim.cli.cli import CLI
from walletsim.config.settings import Settings
from walletsim.market.models import MarketToken, PriceQuote
from walletsim.monitoring.metrics import MetricsCollector
from walletsim.session import WalletSession
from walletsim.storage.database import Database
from walletsim.wallet.identifiers import SequentialIdentifierGenerator
from walletsim.utils.config import Config
from walletsim.exceptions import InsufficientBalanceError, UnknownAssetError

LISTING = [
    MarketToken(id="bitcoin", name="Bitcoin", symbol="btc", current_price=Decimal("64000")),
    MarketToken(id="solana", name="Solana", symbol="sol", current_price=Decimal("150")),
]

@pytest.fixture
def temp_dir():
    tmp_dir = tempfile.mkdtemp()
    yield tmp_dir
    shutil.rmtree(tmp_dir)

@pytest.fixture
def client():
    client = AsyncMock()
    client.fetch_prices.return_value = {"ethereum": PriceQuote(usd=Decimal("3000"))}
    client.fetch_market_listing_or_fallback.return_value = LISTING
    client.fetch_fiat_rate.return_value = Decimal("90")
    return client

@pytest.fixture
def metrics():
    return MetricsCollector(registry=CollectorRegistry())

@pytest.fixture
def session(temp_dir, client, metrics):
    db = Database(os.path.join(temp_dir, "session.db"))
    session = WalletSession(
        db,
        client=client,
        id_generator=SequentialIdentifierGenerator(),
        metrics=metrics,
        forced_min_delay=0
    )
    yield session
    session.close()

class TestWalletSession:
    def test_first_load_is_persisted(self, session):
        assert session.db.get(Config.WALLETS_KEY) is not None
        assert session.db.get(Config.ACTIVE_WALLET_KEY) == "main"

    def test_mutations_are_saved(self, session, temp_dir, client):
        other = session.store.create_wallet("Savings")
        session.store.select_wallet("main")
        session.send("usdt-tron", "50", to_wallet_id=other.id)
        session.close()

        reopened = WalletSession(Database(os.path.join(temp_dir, "session.db")), client=client)
        try:
            assert reopened.store.get_wallet(other.id).get_asset("usdt-tron").balance == Decimal("50")
            assert reopened.active_wallet_id == "main"
        finally:
            reopened.close()

    def test_swap_is_quoted(self, session):
        tx = session.swap("eth", "tron", "0.1")
        assert tx.to_amount == Decimal("0.1") * (Decimal("3240.15") / Decimal("0.12"))

    def test_rejected_send(self, session):
        with pytest.raises(InsufficientBalanceError):
            session.send("bitcoin", "1", address="bc1q")

    def test_wallet_count_gauge(self, session, metrics):
        assert metrics.sample("walletsim_wallets") == 1
        session.store.create_wallet()
        assert metrics.sample("walletsim_wallets") == 2

    @pytest.mark.asyncio
    async def test_buy_listed_token(self, session):
        tx = await session.buy("sol", "300")
        assert tx.to_asset_id == "solana"
        assert session.store.active_wallet.get_asset("solana").balance == Decimal("2")

    @pytest.mark.asyncio
    async def test_buy_unlisted_token(self, session):
        with pytest.raises(UnknownAssetError):
            await session.buy("pepe", "10")

    @pytest.mark.asyncio
    async def test_context_manager_runs_synchronizer(self, session):
        async with session as running:
            assert running.synchronizer.running
        assert not session.synchronizer.running

    def test_from_settings(self, temp_dir, client, metrics):
        config_path = os.path.join(temp_dir, "config", "walletsim.yaml")
        with open(os.path.join(temp_dir, "partial.yaml"), "w") as f:
            yaml.safe_dump({"storage": {"db_path": os.path.join(temp_dir, "from_settings.db")}}, f)

        settings = Settings(config_path)
        assert os.path.exists(config_path)
        assert settings.get("sync.price_cooldown") == 30

        partial = Settings(os.path.join(temp_dir, "partial.yaml"))
        session = WalletSession.from_settings(partial, metrics=metrics)
        try:
            assert session.synchronizer.price_cooldown == Config.PRICE_COOLDOWN
            assert session.synchronizer.fiat_currency == "RUB"
            assert os.path.exists(os.path.join(temp_dir, "from_settings.db"))
        finally:
            session.close()

class TestCLI:
    @pytest.fixture
    def cli(self, session):
        return CLI(session=session)

    def test_wallet_commands(self, cli, session, capsys):
        assert cli.main(["wallet", "create", "Savings"]) == 0
        assert "Created wallet wallet-1 (Savings)" in capsys.readouterr().out

        assert cli.main(["wallet", "list"]) == 0
        out = capsys.readouterr().out
        assert "main" in out
        assert "* wallet-1" in out

        assert cli.main(["wallet", "select", "main"]) == 0
        assert session.active_wallet_id == "main"
        assert cli.main(["wallet", "rename", "main", "Daily"]) == 0
        assert session.store.active_wallet.name == "Daily"

    def test_delete_last_wallet(self, cli, capsys):
        assert cli.main(["wallet", "delete", "main"]) == 0
        assert "cannot be deleted" in capsys.readouterr().out

    def test_send_and_history(self, cli, session, capsys):
        assert cli.main(["tx", "send", "tron", "20", "--address", "TXYZ"]) == 0
        assert session.store.active_wallet.get_asset("tron").balance == Decimal("5400.50")
        capsys.readouterr()

        assert cli.main(["tx", "history", "--asset", "tron"]) == 0
        out = capsys.readouterr().out
        assert "send" in out
        assert "(TXYZ)" in out

    def test_validation_error_exit_code(self, cli, capsys):
        assert cli.main(["tx", "send", "tron", "-5", "--address", "TXYZ"]) == 2
        assert capsys.readouterr().out.startswith("Error:")

    def test_balance_in_rubles(self, cli, capsys):
        assert cli.main(["prefs", "--currency", "RUB"]) == 0
        capsys.readouterr()
        assert cli.main(["wallet", "balance", "--sort", "desc"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("BTC")
        assert lines[-1].endswith("RUB")

    def test_market_refresh(self, cli, session, capsys):
        assert cli.main(["market", "prices", "--force"]) == 0
        assert "Prices updated" in capsys.readouterr().out
        assert session.store.active_wallet.get_asset("eth").price_usd == Decimal("3000")

    def test_buy(self, cli, session):
        assert cli.main(["tx", "buy", "bitcoin", "640"]) == 0
        # Quoted from the wallet's own price, not the listing price
        bought = Decimal("640") * Decimal("1.00") / Decimal("64230.50")
        assert session.store.active_wallet.get_asset("bitcoin").balance == Decimal("0.0842") + bought

    def test_no_command(self, cli):
        assert cli.main([]) == 1
