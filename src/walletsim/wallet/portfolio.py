# src/walletsim/wallet/portfolio.py
from typing import Dict, List, Iterable
from datetime import datetime, date
from decimal import Decimal

from .models import Asset, Transaction, Wallet
from ..exceptions import ValidationError

SORT_ORDERS = ("default", "asc", "desc")

def asset_value_usd(asset: Asset) -> Decimal:
    return asset.value_usd

def total_balance_usd(wallet: Wallet) -> Decimal:
    """Sum of balance x price over every asset"""
    return sum((asset_value_usd(asset) for asset in wallet.assets), Decimal('0'))

def sort_assets(assets: Iterable[Asset], order: str = "default") -> List[Asset]:
    """Order assets by USD value; 'default' keeps registry order"""
    if order not in SORT_ORDERS:
        raise ValidationError(f"Unknown sort order: {order}")
    result = list(assets)
    if order != "default":
        result.sort(key=lambda a: a.value_usd, reverse=(order == "desc"))
    return result

def asset_history(wallet: Wallet, asset_id: str) -> List[Transaction]:
    """Rows touching the asset, either as source or swap target"""
    return [
        tx for tx in wallet.transactions
        if tx.asset_id == asset_id or tx.to_asset_id == asset_id
    ]

def group_by_date(transactions: Iterable[Transaction]) -> Dict[date, List[Transaction]]:
    # dicts keep insertion order, so newest-first input gives newest day first
    groups: Dict[date, List[Transaction]] = {}
    for tx in transactions:
        day = datetime.fromtimestamp(tx.timestamp / 1000).date()
        groups.setdefault(day, []).append(tx)
    return groups

def convert_usd(amount: Decimal, currency: str, rate: Decimal) -> Decimal:
    """Express a USD amount in the display currency"""
    if currency == "USD":
        return amount
    if currency == "RUB":
        return amount * rate
    raise ValidationError(f"Unsupported currency: {currency}")
