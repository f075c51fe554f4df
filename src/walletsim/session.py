# src/walletsim/session.py
from typing import Optional
from decimal import Decimal
import logging

from .config.settings import Settings
from .market.models import MarketToken
from .market.price_source import MarketDataClient
from .market.synchronizer import PriceSynchronizer
from .monitoring.metrics import MetricsCollector
from .storage.database import Database
from .storage.persistence import StorePersistence
from .wallet.identifiers import IdentifierGenerator
from .wallet.models import Number, Transaction, TransactionType
from .wallet.processor import TransactionIntent, TransactionProcessor
from .wallet.store import WalletStore
from .exceptions import UnknownAssetError

logger = logging.getLogger(__name__)

class WalletSession:
    """Process-wide context owning the store and everything that touches it.

    Loading happens on construction; every committed store mutation is
    saved before the mutating call returns. The background price task runs
    between ``start()`` and ``stop()`` (or inside ``async with``).
    """

    def __init__(
        self,
        db: Database,
        client: Optional[MarketDataClient] = None,
        id_generator: Optional[IdentifierGenerator] = None,
        metrics: Optional[MetricsCollector] = None,
        **sync_options
    ):
        self.db = db
        self.metrics = metrics
        self.persistence = StorePersistence(db, id_generator)
        self.store: WalletStore = self.persistence.load()
        self.persistence.save(self.store)
        self.persistence.attach(self.store)
        if metrics:
            metrics.set_wallet_count(len(self.store))
            self.store.add_listener(lambda store: metrics.set_wallet_count(len(store)))
        self.processor = TransactionProcessor(self.store, metrics)
        self.client = client or MarketDataClient()
        self.synchronizer = PriceSynchronizer(self.store, self.client, metrics, **sync_options)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> 'WalletSession':
        defaults = Settings.default_config()

        def option(key):
            section, name = key.split('.')
            return settings.get(key, defaults[section][name])

        client = MarketDataClient(
            price_api_url=option("market.price_api_url"),
            fiat_rate_url=option("market.fiat_rate_url"),
            request_timeout=option("market.request_timeout"),
        )
        metrics = kwargs.pop("metrics", None) or MetricsCollector(port=option("monitoring.metrics_port"))
        return cls(
            Database(option("storage.db_path")),
            client=client,
            metrics=metrics,
            price_cooldown=option("sync.price_cooldown"),
            fiat_rate_interval=option("sync.fiat_rate_interval"),
            tick_interval=option("sync.tick_interval"),
            forced_min_delay=option("sync.forced_min_delay"),
            fiat_currency=option("market.fiat_currency"),
            **kwargs
        )

    async def start(self) -> None:
        await self.synchronizer.start()

    async def stop(self) -> None:
        await self.synchronizer.stop()

    def close(self) -> None:
        self.db.close()

    async def __aenter__(self) -> 'WalletSession':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # Shortcuts acting on the active wallet

    @property
    def active_wallet_id(self) -> str:
        return self.store.active_wallet_id

    def send(
        self,
        asset_id: str,
        amount: Number,
        address: Optional[str] = None,
        to_wallet_id: Optional[str] = None
    ) -> Transaction:
        intent = TransactionIntent(TransactionType.SEND, asset_id, amount, address=address)
        return self.processor.apply_transaction(intent, self.active_wallet_id, to_wallet_id)

    def receive(self, asset_id: str, amount: Number, address: Optional[str] = None) -> Transaction:
        intent = TransactionIntent(TransactionType.RECEIVE, asset_id, amount, address=address)
        return self.processor.apply_transaction(intent, self.active_wallet_id)

    def swap(
        self,
        from_asset_id: str,
        to_asset_id: str,
        amount: Number,
        to_amount: Optional[Number] = None
    ) -> Transaction:
        """Swap inside the active wallet, quoting ``to_amount`` from prices when omitted"""
        wallet_id = self.active_wallet_id
        if to_amount is None:
            to_amount = self.processor.quote_swap(wallet_id, from_asset_id, to_asset_id, amount)
        intent = TransactionIntent(
            TransactionType.SWAP, from_asset_id, amount,
            to_asset_id=to_asset_id, to_amount=to_amount
        )
        return self.processor.apply_transaction(intent, wallet_id)

    async def find_token(self, token_id: str) -> MarketToken:
        """Look a token up on the first listing page (or the bundled fallback)"""
        for token in await self.client.fetch_market_listing_or_fallback(page=1):
            if token.id == token_id or token.symbol.lower() == token_id.lower():
                return token
        raise UnknownAssetError(f"Token not listed: {token_id}")

    async def buy(self, token_id: str, amount: Number) -> Transaction:
        token = await self.find_token(token_id)
        return self.processor.purchase(self.active_wallet_id, token, amount)

    @property
    def fiat_rate(self) -> Decimal:
        return self.synchronizer.fiat_rate
