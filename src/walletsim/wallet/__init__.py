# File: src/walletsim/wallet/__init__.py
from .models import Asset, Transaction, TransactionType, TransactionStatus, Wallet, Preferences
from .store import WalletStore
from .processor import TransactionProcessor, TransactionIntent
from .identifiers import IdentifierGenerator, RandomIdentifierGenerator, SequentialIdentifierGenerator

__all__ = [
    'Asset', 'Transaction', 'TransactionType', 'TransactionStatus', 'Wallet', 'Preferences',
    'WalletStore', 'TransactionProcessor', 'TransactionIntent',
    'IdentifierGenerator', 'RandomIdentifierGenerator', 'SequentialIdentifierGenerator',
]
