# src/walletsim/wallet/models.py
from typing import Optional, List, Dict, Any, Union
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from enum import Enum
import time

Number = Union[Decimal, int, float, str]

class TransactionType(Enum):
    SEND = "send"
    RECEIVE = "receive"
    SWAP = "swap"

class TransactionStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"

def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal, going through str so floats keep their printed value"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidOperation(f"Not a number: {value!r}")
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise InvalidOperation(f"Not a number: {value!r}") from e

def now_ms() -> int:
    return int(time.time() * 1000)

@dataclass(frozen=True)
class Asset:
    id: str
    name: str
    symbol: str
    network: str
    balance: Decimal = Decimal('0')
    price_usd: Decimal = Decimal('0')
    change_24h: Decimal = Decimal('0')
    network_icon: Optional[str] = None
    icon: str = ""
    logo_url: str = ""
    color: str = ""

    @property
    def value_usd(self) -> Decimal:
        return self.balance * self.price_usd

    def with_balance(self, balance: Decimal) -> 'Asset':
        return replace(self, balance=balance)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "name": self.name,
            "symbol": self.symbol,
            "network": self.network,
            "balance": str(self.balance),
            "priceUsd": str(self.price_usd),
            "change24h": str(self.change_24h),
            "icon": self.icon,
            "logoUrl": self.logo_url,
            "color": self.color,
        }
        if self.network_icon:
            data["networkIcon"] = self.network_icon
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Asset':
        """Build an asset from its stored form.

        Raises KeyError, TypeError or InvalidOperation on malformed input.
        """
        balance = to_decimal(data.get("balance", "0"))
        price = to_decimal(data.get("priceUsd", "0"))
        if not balance.is_finite() or balance < 0:
            raise InvalidOperation(f"Invalid balance for asset {data.get('id')!r}")
        if not price.is_finite() or price < 0:
            price = Decimal('0')
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", data["id"])),
            symbol=str(data.get("symbol", str(data["id"]).upper())),
            network=str(data.get("network", "")),
            balance=balance,
            price_usd=price,
            change_24h=to_decimal(data.get("change24h", "0")),
            network_icon=data.get("networkIcon"),
            icon=str(data.get("icon", "")),
            logo_url=str(data.get("logoUrl", "")),
            color=str(data.get("color", "")),
        )

@dataclass(frozen=True)
class Transaction:
    """Committed ledger row; never edited once created."""
    id: str
    asset_id: str
    type: TransactionType
    amount: Decimal
    timestamp: int
    status: TransactionStatus = TransactionStatus.CONFIRMED
    to_asset_id: Optional[str] = None
    to_amount: Optional[Decimal] = None
    address: Optional[str] = None
    hash: Optional[str] = None
    network_fee: Optional[str] = None
    block_number: Optional[int] = None

    def __post_init__(self):
        if not self.amount.is_finite() or self.amount <= 0:
            raise ValueError("Transaction amount must be positive")
        if self.to_amount is not None and (not self.to_amount.is_finite() or self.to_amount <= 0):
            raise ValueError("Swap target amount must be positive")
        is_swap = self.type == TransactionType.SWAP
        has_target = self.to_asset_id is not None and self.to_amount is not None
        if is_swap != has_target:
            raise ValueError("to_asset_id and to_amount are required together for swaps only")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "assetId": self.asset_id,
            "type": self.type.value,
            "amount": str(self.amount),
            "timestamp": self.timestamp,
            "status": self.status.value,
        }
        if self.to_asset_id is not None:
            data["toAssetId"] = self.to_asset_id
            data["toAmount"] = str(self.to_amount)
        if self.address is not None:
            data["address"] = self.address
        if self.hash is not None:
            data["hash"] = self.hash
        if self.network_fee is not None:
            data["networkFee"] = self.network_fee
        if self.block_number is not None:
            data["blockNumber"] = self.block_number
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        to_amount = data.get("toAmount")
        block_number = data.get("blockNumber")
        return cls(
            id=str(data["id"]),
            asset_id=str(data["assetId"]),
            type=TransactionType(data["type"]),
            amount=to_decimal(data["amount"]),
            timestamp=int(data.get("timestamp", 0)),
            status=TransactionStatus(data.get("status", "confirmed")),
            to_asset_id=data.get("toAssetId"),
            to_amount=to_decimal(to_amount) if to_amount is not None else None,
            address=data.get("address"),
            hash=data.get("hash"),
            network_fee=data.get("networkFee"),
            block_number=int(block_number) if block_number is not None else None,
        )

@dataclass
class Wallet:
    id: str
    name: str
    assets: List[Asset] = field(default_factory=list)
    transactions: List[Transaction] = field(default_factory=list)  # newest first

    def __post_init__(self):
        seen = set()
        for asset in self.assets:
            if asset.id in seen:
                raise ValueError(f"Duplicate asset id {asset.id!r} in wallet {self.id!r}")
            seen.add(asset.id)

    def get_asset(self, asset_id: str) -> Optional[Asset]:
        for asset in self.assets:
            if asset.id == asset_id:
                return asset
        return None

    def has_asset(self, asset_id: str) -> bool:
        return self.get_asset(asset_id) is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "assets": [asset.to_dict() for asset in self.assets],
            "transactions": [tx.to_dict() for tx in self.transactions],
        }

    def __str__(self) -> str:
        return f"Wallet(id={self.id}, name={self.name})"

@dataclass
class Preferences:
    language: str = "ru"
    theme: str = "light"
    currency: str = "USD"
