# src/walletsim/wallet/processor.py
from typing import Optional, List, Tuple, Union, TYPE_CHECKING
from dataclasses import dataclass
from decimal import Decimal
import logging

from .models import (
    Asset,
    Number,
    Transaction,
    TransactionStatus,
    TransactionType,
    Wallet,
    now_ms,
    to_decimal,
)
from .store import WalletStore
from ..utils.config import Config
from ..exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    UnknownAssetError,
    ValidationError,
)

if TYPE_CHECKING:
    from ..market.models import MarketToken
    from ..monitoring.metrics import MetricsCollector

logger = logging.getLogger(__name__)

@dataclass
class TransactionIntent:
    """What the caller wants to happen; becomes a Transaction once applied"""
    type: Union[TransactionType, str]
    asset_id: str
    amount: Number
    to_asset_id: Optional[str] = None
    to_amount: Optional[Number] = None
    address: Optional[str] = None
    status: TransactionStatus = TransactionStatus.CONFIRMED

# (wallet, replacement asset list, ledger row to prepend)
LedgerWrite = Tuple[Wallet, List[Asset], Transaction]

def parse_amount(value: Optional[Number], field: str = "amount") -> Decimal:
    """Parse a strictly positive finite amount"""
    if value is None:
        raise InvalidAmountError(f"{field} is required")
    try:
        amount = to_decimal(value)
    except ArithmeticError as e:
        raise InvalidAmountError(f"{field} is not a number: {value!r}") from e
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(f"{field} must be a finite positive number, got {value!r}")
    return amount

def _debit(assets: List[Asset], asset_id: str, amount: Decimal) -> List[Asset]:
    result = []
    for asset in assets:
        if asset.id == asset_id:
            if asset.balance < amount:
                raise InsufficientBalanceError(asset_id, asset.balance, amount)
            asset = asset.with_balance(asset.balance - amount)
        result.append(asset)
    return result

def _credit(assets: List[Asset], template: Asset, amount: Decimal) -> List[Asset]:
    """Credit ``amount``, adding the asset with a zero balance first if absent"""
    result = []
    credited = False
    for asset in assets:
        if asset.id == template.id:
            asset = asset.with_balance(asset.balance + amount)
            credited = True
        result.append(asset)
    if not credited:
        result.append(template.with_balance(amount))
    return result

class TransactionProcessor:
    """Validates intents and applies them to the wallet store.

    All checks run before anything is written; the balance updates and the
    ledger rows of one call are committed together inside a single
    ``WalletStore.atomic()`` block.
    """

    def __init__(
        self,
        store: WalletStore,
        metrics: Optional['MetricsCollector'] = None,
        settlement_asset_id: str = Config.SETTLEMENT_ASSET_ID
    ):
        self.store = store
        self.metrics = metrics
        self.settlement_asset_id = settlement_asset_id

    @property
    def id_generator(self):
        return self.store.id_generator

    def apply_transaction(
        self,
        intent: TransactionIntent,
        origin_wallet_id: str,
        destination_wallet_id: Optional[str] = None
    ) -> Transaction:
        """Validate and commit an intent, returning the origin wallet's ledger row"""
        try:
            tx_type = self._coerce_type(intent.type)
            amount = parse_amount(intent.amount)
            with self.store.atomic():
                origin = self.store.get_wallet(origin_wallet_id)
                destination = None
                if destination_wallet_id is not None and destination_wallet_id != origin.id:
                    if tx_type != TransactionType.SEND:
                        raise ValidationError(
                            f"Only sends can target another wallet, got {tx_type.value}"
                        )
                    destination = self.store.get_wallet(destination_wallet_id)

                if tx_type == TransactionType.SEND:
                    writes = self._plan_send(intent, amount, origin, destination)
                elif tx_type == TransactionType.RECEIVE:
                    writes = self._plan_receive(intent, amount, origin)
                else:
                    writes = self._plan_swap(intent, amount, origin)
                self._commit(writes)
        except ValidationError as e:
            logger.info(f"Rejected {intent.type} of {intent.amount} {intent.asset_id}: {e}")
            if self.metrics:
                self.metrics.record_rejection(type(e).__name__)
            raise

        committed = writes[0][2]
        for _, _, tx in writes:
            if self.metrics:
                self.metrics.record_transaction(tx.type.value)
        logger.info(
            f"Committed {committed.type.value} {committed.amount} {committed.asset_id} "
            f"in wallet {origin_wallet_id} ({committed.id})"
        )
        return committed

    def purchase(
        self,
        wallet_id: str,
        token: 'MarketToken',
        amount: Number,
        to_amount: Optional[Number] = None
    ) -> Transaction:
        """Buy ``token`` by swapping ``amount`` of the settlement asset.

        The token is added to the wallet with a zero balance if it is not
        held yet. When ``to_amount`` is omitted it is quoted from the
        settlement asset price and the token price.
        """
        target = token.to_asset()
        try:
            if target.id == self.settlement_asset_id:
                raise ValidationError("Cannot purchase the settlement asset with itself")
            spend = parse_amount(amount)
            with self.store.atomic():
                wallet = self.store.get_wallet(wallet_id)
                settlement = self._require_asset(wallet, self.settlement_asset_id)
                if to_amount is None:
                    held = wallet.get_asset(target.id) or target
                    if held.price_usd <= 0:
                        raise ValidationError(f"No price known for {target.id}")
                    to_amount = spend * settlement.price_usd / held.price_usd
                intent = TransactionIntent(
                    type=TransactionType.SWAP,
                    asset_id=settlement.id,
                    amount=spend,
                    to_asset_id=target.id,
                    to_amount=to_amount,
                )
                writes = self._plan_swap(intent, spend, wallet, target)
                self._commit(writes)
        except ValidationError as e:
            logger.info(f"Rejected purchase of {target.id} in wallet {wallet_id}: {e}")
            if self.metrics:
                self.metrics.record_rejection(type(e).__name__)
            raise

        swapped = writes[0][2]
        if self.metrics:
            self.metrics.record_transaction("purchase")
        logger.info(
            f"Committed purchase of {swapped.to_amount} {swapped.to_asset_id} "
            f"for {swapped.amount} {swapped.asset_id} in wallet {wallet_id}"
        )
        return swapped

    def quote_swap(
        self,
        wallet_id: str,
        from_asset_id: str,
        to_asset_id: str,
        amount: Number
    ) -> Decimal:
        """Amount of ``to_asset_id`` received for ``amount`` at current USD prices"""
        value = parse_amount(amount)
        wallet = self.store.get_wallet(wallet_id)
        source = wallet.get_asset(from_asset_id)
        target = wallet.get_asset(to_asset_id)
        if source is None or target is None:
            raise UnknownAssetError(f"Unknown asset in pair {from_asset_id}/{to_asset_id}")
        if target.price_usd <= 0:
            raise ValidationError(f"No price known for {to_asset_id}")
        return value * (source.price_usd / target.price_usd)

    # Planning

    def _coerce_type(self, value: Union[TransactionType, str]) -> TransactionType:
        if isinstance(value, TransactionType):
            return value
        try:
            return TransactionType(str(value).lower())
        except ValueError as e:
            raise ValidationError(f"Unknown transaction type: {value}") from e

    def _new_transaction(self, tx_type: TransactionType, asset_id: str, amount: Decimal, **fields) -> Transaction:
        tx_id = self.id_generator.transaction_id()
        return Transaction(
            id=tx_id,
            asset_id=asset_id,
            type=tx_type,
            amount=amount,
            timestamp=now_ms(),
            hash=self.id_generator.settlement_hash(tx_id),
            network_fee=self.id_generator.network_fee(),
            block_number=self.id_generator.block_number(),
            **fields
        )

    def _require_asset(self, wallet: Wallet, asset_id: str) -> Asset:
        asset = wallet.get_asset(asset_id)
        if asset is None:
            raise UnknownAssetError(f"Wallet {wallet.id} holds no {asset_id}")
        return asset

    def _plan_send(
        self,
        intent: TransactionIntent,
        amount: Decimal,
        origin: Wallet,
        destination: Optional[Wallet]
    ) -> List[LedgerWrite]:
        asset = self._require_asset(origin, intent.asset_id)
        origin_assets = _debit(origin.assets, asset.id, amount)
        address = destination.name if destination is not None and not intent.address else intent.address
        sent = self._new_transaction(
            TransactionType.SEND, asset.id, amount,
            status=intent.status, address=address
        )
        writes = [(origin, origin_assets, sent)]
        if destination is not None:
            received = self._new_transaction(
                TransactionType.RECEIVE, asset.id, amount,
                status=intent.status, address=origin.name
            )
            writes.append((destination, _credit(destination.assets, asset, amount), received))
        return writes

    def _plan_receive(self, intent: TransactionIntent, amount: Decimal, origin: Wallet) -> List[LedgerWrite]:
        asset = self._require_asset(origin, intent.asset_id)
        received = self._new_transaction(
            TransactionType.RECEIVE, asset.id, amount,
            status=intent.status, address=intent.address
        )
        return [(origin, _credit(origin.assets, asset, amount), received)]

    def _plan_swap(
        self,
        intent: TransactionIntent,
        amount: Decimal,
        origin: Wallet,
        target_template: Optional[Asset] = None
    ) -> List[LedgerWrite]:
        if not intent.to_asset_id:
            raise UnknownAssetError("Swap needs a destination asset")
        to_amount = parse_amount(intent.to_amount, "to_amount")
        if intent.to_asset_id == intent.asset_id:
            raise ValidationError("Cannot swap an asset into itself")
        self._require_asset(origin, intent.asset_id)
        target = origin.get_asset(intent.to_asset_id) or target_template
        if target is None:
            raise UnknownAssetError(f"Wallet {origin.id} holds no {intent.to_asset_id}")

        assets = _debit(origin.assets, intent.asset_id, amount)
        assets = _credit(assets, target, to_amount)
        swapped = self._new_transaction(
            TransactionType.SWAP, intent.asset_id, amount,
            status=intent.status,
            to_asset_id=target.id,
            to_amount=to_amount,
            address=intent.address
        )
        return [(origin, assets, swapped)]

    def _commit(self, writes: List[LedgerWrite]) -> None:
        """Apply planned writes; caller holds the store lock"""
        for wallet, assets, tx in writes:
            wallet.assets = assets
            wallet.transactions = [tx] + wallet.transactions
