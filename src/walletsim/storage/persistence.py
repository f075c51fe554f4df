# src/walletsim/storage/persistence.py
from typing import Any, List, Optional
import json
import logging

from .database import Database
from ..wallet.models import Asset, Transaction, Wallet, Preferences
from ..wallet.store import WalletStore
from ..wallet.templates import empty_assets
from ..wallet.identifiers import IdentifierGenerator
from ..utils.config import Config
from ..exceptions import PersistenceCorruption, StorageError

logger = logging.getLogger(__name__)

RECORD_ERRORS = (KeyError, TypeError, ValueError, ArithmeticError, AttributeError)

class StorePersistence:
    """Reads and writes the whole wallet store as text values.

    Loading never fails: an unusable wallet list falls back to the demo
    wallet, and inside each wallet the asset and transaction lists are
    recovered independently of each other.
    """

    def __init__(self, db: Database, id_generator: Optional[IdentifierGenerator] = None):
        self.db = db
        self.id_generator = id_generator

    def load(self) -> WalletStore:
        preferences = self._load_preferences()
        try:
            wallets = self._load_wallets()
        except PersistenceCorruption as e:
            logger.warning(f"Stored wallets unusable, starting from demo wallet: {e}")
            wallets = []

        if not wallets:
            store = WalletStore.with_default_wallet(id_generator=self.id_generator)
            store.preferences = preferences
            return store

        active_wallet_id = self.db.get(Config.ACTIVE_WALLET_KEY)
        store = WalletStore(
            wallets,
            active_wallet_id=active_wallet_id,
            preferences=preferences,
            id_generator=self.id_generator
        )
        logger.info(f"Loaded {len(wallets)} wallet(s), active {store.active_wallet_id}")
        return store

    def save(self, store: WalletStore) -> None:
        """Write the full store in one database transaction.

        The snapshot is taken under the store lock, so a save never mixes
        state from before and after a concurrent mutation.
        """
        snapshot = store.to_dict()
        self.db.batch_write({
            Config.WALLETS_KEY: json.dumps(snapshot["wallets"]),
            Config.ACTIVE_WALLET_KEY: snapshot["active_wallet_id"],
            Config.LANGUAGE_KEY: snapshot["language"],
            Config.THEME_KEY: snapshot["theme"],
            Config.CURRENCY_KEY: snapshot["currency"],
        })
        logger.debug(f"Saved {len(snapshot['wallets'])} wallet(s)")

    def attach(self, store: WalletStore) -> None:
        """Save after every committed store mutation"""
        store.add_listener(self._on_change)

    def _on_change(self, store: WalletStore) -> None:
        try:
            self.save(store)
        except StorageError as e:
            logger.error(f"Failed to persist wallet store: {e}")

    # Decoding

    def _load_wallets(self) -> List[Wallet]:
        raw = self.db.get(Config.WALLETS_KEY)
        if raw is None:
            return self._load_legacy_wallet()
        data = self._parse_json(raw, Config.WALLETS_KEY)
        if not isinstance(data, list):
            raise PersistenceCorruption(f"{Config.WALLETS_KEY} is not a list")

        wallets: List[Wallet] = []
        seen = set()
        for index, entry in enumerate(data):
            wallet = self._decode_wallet(entry, index)
            if wallet is None or wallet.id in seen:
                continue
            seen.add(wallet.id)
            wallets.append(wallet)
        return wallets

    def _load_legacy_wallet(self) -> List[Wallet]:
        """Single-wallet layout written before multiple wallets existed"""
        raw_assets = self.db.get(Config.LEGACY_ASSETS_KEY)
        if raw_assets is None:
            return []
        raw_txs = self.db.get(Config.LEGACY_TRANSACTIONS_KEY)
        entry = {
            "id": Config.DEFAULT_WALLET_ID,
            "name": "Main Wallet",
            "assets": self._parse_json_or_none(raw_assets),
            "transactions": self._parse_json_or_none(raw_txs) if raw_txs is not None else [],
        }
        logger.info("Migrating single-wallet data to the wallet list layout")
        wallet = self._decode_wallet(entry, 0)
        return [wallet] if wallet is not None else []

    def _decode_wallet(self, entry: Any, index: int) -> Optional[Wallet]:
        if not isinstance(entry, dict) or not isinstance(entry.get("id"), str) or not entry["id"]:
            logger.warning(f"Skipping stored wallet #{index}: missing id")
            return None
        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            name = f"{Config.WALLET_NAME_PREFIX} {index + 1}"
        return Wallet(
            id=entry["id"],
            name=name.strip(),
            assets=self._decode_assets(entry.get("assets"), entry["id"]),
            transactions=self._decode_transactions(entry.get("transactions"), entry["id"]),
        )

    def _decode_assets(self, raw: Any, wallet_id: str) -> List[Asset]:
        if not isinstance(raw, list):
            logger.warning(f"Wallet {wallet_id}: assets missing or malformed, using template")
            return empty_assets()
        assets: List[Asset] = []
        seen = set()
        for item in raw:
            try:
                asset = Asset.from_dict(item)
            except RECORD_ERRORS as e:
                logger.warning(f"Wallet {wallet_id}: dropping malformed asset: {e}")
                continue
            if asset.id in seen:
                continue
            seen.add(asset.id)
            assets.append(asset)
        return assets

    def _decode_transactions(self, raw: Any, wallet_id: str) -> List[Transaction]:
        if not isinstance(raw, list):
            if raw is not None:
                logger.warning(f"Wallet {wallet_id}: transactions malformed, starting empty ledger")
            return []
        transactions: List[Transaction] = []
        for item in raw:
            try:
                transactions.append(Transaction.from_dict(item))
            except RECORD_ERRORS as e:
                logger.warning(f"Wallet {wallet_id}: dropping malformed transaction: {e}")
        return transactions

    def _load_preferences(self) -> Preferences:
        language = self.db.get(Config.LANGUAGE_KEY)
        theme = self.db.get(Config.THEME_KEY)
        currency = self.db.get(Config.CURRENCY_KEY)
        return Preferences(
            language=language if language in Config.LANGUAGES else Config.DEFAULT_LANGUAGE,
            theme=theme if theme in Config.THEMES else Config.DEFAULT_THEME,
            currency=currency if currency in Config.CURRENCIES else Config.DEFAULT_CURRENCY,
        )

    def _parse_json(self, raw: str, key: str) -> Any:
        try:
            return json.loads(raw)
        except (ValueError, RecursionError) as e:
            raise PersistenceCorruption(f"{key} is not valid JSON: {e}") from e

    def _parse_json_or_none(self, raw: str) -> Any:
        try:
            return json.loads(raw)
        except (ValueError, RecursionError):
            return None
