# src/walletsim/wallet/store.py
from typing import Callable, Dict, Iterator, List, Optional, Tuple
from contextlib import contextmanager
from dataclasses import replace
from decimal import Decimal
import threading
import logging

from .models import Wallet, Asset, Preferences, Number, to_decimal
from .templates import demo_assets, empty_assets
from .identifiers import IdentifierGenerator, RandomIdentifierGenerator
from ..utils.config import Config
from ..exceptions import (
    InvalidAmountError,
    InvalidWalletNameError,
    UnknownAssetError,
    UnknownWalletError,
    ValidationError,
)

logger = logging.getLogger(__name__)

StoreListener = Callable[['WalletStore'], None]

class WalletStore:
    """Ordered collection of wallets with one active wallet.

    Every mutation runs inside ``atomic()``: the store lock is held while
    the change is applied and listeners (persistence) run once the outermost
    block exits without error. Wallet asset and transaction lists are
    replaced rather than edited in place, so a reader holding a list
    reference never sees half of an update.
    """

    def __init__(
        self,
        wallets: List[Wallet],
        active_wallet_id: Optional[str] = None,
        preferences: Optional[Preferences] = None,
        id_generator: Optional[IdentifierGenerator] = None
    ):
        if not wallets:
            raise ValueError("A wallet store needs at least one wallet")
        self._wallets: List[Wallet] = list(wallets)
        self._active_wallet_id = active_wallet_id
        self.preferences = preferences or Preferences()
        self.id_generator = id_generator or RandomIdentifierGenerator()
        self._lock = threading.RLock()
        self._depth = 0
        self._dirty = False
        self._quiet = False
        self._listeners: List[StoreListener] = []

    @classmethod
    def with_default_wallet(
        cls,
        id_generator: Optional[IdentifierGenerator] = None
    ) -> 'WalletStore':
        """First-run store: one wallet seeded with demo balances"""
        wallet = Wallet(
            id=Config.DEFAULT_WALLET_ID,
            name="Main Wallet",
            assets=demo_assets()
        )
        return cls([wallet], wallet.id, id_generator=id_generator)

    # Change notification

    def add_listener(self, listener: StoreListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StoreListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @contextmanager
    def atomic(self) -> Iterator['WalletStore']:
        """Hold the store lock; notify listeners after the outermost block commits"""
        with self._lock:
            self._depth += 1
            outer_quiet = self._quiet
            self._quiet = False
            committed = False
            try:
                yield self
                committed = True
                if not self._quiet:
                    self._dirty = True
            finally:
                self._quiet = outer_quiet
                self._depth -= 1
                notify = self._depth == 0 and committed and self._dirty
                if self._depth == 0:
                    self._dirty = False
            if notify:
                self._notify()

    def _skip_notify(self) -> None:
        """Mark the current atomic block as a no-op"""
        self._quiet = True

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    # Readers

    @property
    def wallets(self) -> List[Wallet]:
        with self._lock:
            return list(self._wallets)

    def __len__(self) -> int:
        with self._lock:
            return len(self._wallets)

    @property
    def active_wallet_id(self) -> str:
        """Active wallet id, falling back to the first wallet when stale"""
        with self._lock:
            if self.find_wallet(self._active_wallet_id) is None:
                return self._wallets[0].id
            return self._active_wallet_id

    @property
    def active_wallet(self) -> Wallet:
        with self._lock:
            return self.get_wallet(self.active_wallet_id)

    def find_wallet(self, wallet_id: Optional[str]) -> Optional[Wallet]:
        for wallet in self._wallets:
            if wallet.id == wallet_id:
                return wallet
        return None

    def get_wallet(self, wallet_id: str) -> Wallet:
        wallet = self.find_wallet(wallet_id)
        if wallet is None:
            raise UnknownWalletError(f"Unknown wallet: {wallet_id}")
        return wallet

    # Wallet lifecycle

    def _new_wallet_id(self) -> str:
        while True:
            wallet_id = self.id_generator.wallet_id()
            if self.find_wallet(wallet_id) is None:
                return wallet_id

    def create_wallet(self, name: Optional[str] = None) -> Wallet:
        """Add an empty wallet built from the zero-balance template and make it active"""
        with self.atomic():
            if name is None or not name.strip():
                name = f"{Config.WALLET_NAME_PREFIX} {len(self._wallets) + 1}"
            wallet = Wallet(
                id=self._new_wallet_id(),
                name=name.strip(),
                assets=empty_assets()
            )
            self._wallets = self._wallets + [wallet]
            self._active_wallet_id = wallet.id
        logger.info(f"Created wallet {wallet.id} ({wallet.name})")
        return wallet

    def delete_wallet(self, wallet_id: str) -> bool:
        """Remove a wallet; refuses to remove the last one"""
        with self.atomic():
            wallet = self.get_wallet(wallet_id)
            if len(self._wallets) <= 1:
                logger.info(f"Refusing to delete {wallet_id}: last wallet in store")
                self._skip_notify()
                return False
            was_active = self.active_wallet_id == wallet_id
            self._wallets = [w for w in self._wallets if w.id != wallet_id]
            if was_active:
                self._active_wallet_id = self._wallets[0].id
        logger.info(f"Deleted wallet {wallet.id} ({wallet.name})")
        return True

    def rename_wallet(self, wallet_id: str, name: str) -> Wallet:
        new_name = (name or "").strip()
        if not new_name:
            raise InvalidWalletNameError("Wallet name cannot be empty")
        with self.atomic():
            wallet = self.get_wallet(wallet_id)
            wallet.name = new_name
        return wallet

    def select_wallet(self, wallet_id: str) -> Wallet:
        with self.atomic():
            wallet = self.get_wallet(wallet_id)
            self._active_wallet_id = wallet.id
        return wallet

    def reset_active_wallet(self) -> Wallet:
        """Zero every balance and clear the ledger of the active wallet only"""
        with self.atomic():
            wallet = self.active_wallet
            wallet.assets = [asset.with_balance(Decimal('0')) for asset in wallet.assets]
            wallet.transactions = []
        logger.info(f"Reset wallet {wallet.id}")
        return wallet

    # Asset registry

    def set_balance(self, wallet_id: str, asset_id: str, balance: Number) -> Asset:
        """Overwrite a balance directly, without a ledger row (demo top-up tool)"""
        try:
            value = to_decimal(balance)
        except ArithmeticError as e:
            raise InvalidAmountError(str(e)) from e
        if not value.is_finite() or value < 0:
            raise InvalidAmountError(f"Balance must be a finite non-negative number: {balance}")
        with self.atomic():
            wallet = self.get_wallet(wallet_id)
            asset = wallet.get_asset(asset_id)
            if asset is None:
                raise UnknownAssetError(f"Wallet {wallet_id} holds no {asset_id}")
            updated = asset.with_balance(value)
            self._put_asset(wallet, updated)
        return updated

    def _put_asset(self, wallet: Wallet, asset: Asset) -> None:
        """Replace or append an asset; caller holds the lock"""
        assets = list(wallet.assets)
        for index, existing in enumerate(assets):
            if existing.id == asset.id:
                assets[index] = asset
                break
        else:
            assets.append(asset)
        wallet.assets = assets

    def merge_prices(
        self,
        wallet_id: str,
        quotes: Dict[str, Tuple[Decimal, Optional[Decimal]]]
    ) -> int:
        """Write price and 24h change onto matching assets.

        Only price fields are touched, balances are re-read under the lock so
        a concurrent transaction is never overwritten. Assets missing from
        ``quotes`` keep their previous values. Returns the number updated.
        """
        with self.atomic():
            wallet = self.find_wallet(wallet_id)
            if wallet is None:
                self._skip_notify()
                return 0
            updated = 0
            assets = []
            for asset in wallet.assets:
                quote = quotes.get(asset.id)
                if quote is None:
                    assets.append(asset)
                    continue
                price, change = quote
                if not price.is_finite() or price < 0:
                    logger.warning(f"Ignoring invalid price {price} for {asset.id}")
                    assets.append(asset)
                    continue
                if change is not None and not change.is_finite():
                    change = None
                assets.append(replace(
                    asset,
                    price_usd=price,
                    change_24h=change if change is not None else asset.change_24h
                ))
                updated += 1
            if updated:
                wallet.assets = assets
            else:
                self._skip_notify()
        return updated

    # Preferences

    def _set_preference(self, name: str, value: str, allowed) -> None:
        if value not in allowed:
            raise ValidationError(f"Unsupported {name}: {value}")
        with self.atomic():
            setattr(self.preferences, name, value)

    def set_language(self, language: str) -> None:
        self._set_preference("language", language, Config.LANGUAGES)

    def set_theme(self, theme: str) -> None:
        self._set_preference("theme", theme, Config.THEMES)

    def set_currency(self, currency: str) -> None:
        self._set_preference("currency", currency.upper(), Config.CURRENCIES)

    def to_dict(self) -> Dict:
        """Consistent snapshot; waits for any in-progress atomic block"""
        with self._lock:
            return {
                "wallets": [wallet.to_dict() for wallet in self._wallets],
                "active_wallet_id": self.active_wallet_id,
                "language": self.preferences.language,
                "theme": self.preferences.theme,
                "currency": self.preferences.currency,
            }
