# File: src/walletsim/__init__.py
from .session import WalletSession
from .wallet import (
    Asset,
    Transaction,
    TransactionIntent,
    TransactionProcessor,
    TransactionType,
    Wallet,
    WalletStore,
)

__version__ = "0.1.0"

__all__ = [
    'WalletSession', 'Asset', 'Transaction', 'TransactionIntent',
    'TransactionProcessor', 'TransactionType', 'Wallet', 'WalletStore',
]
