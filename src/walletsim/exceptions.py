# src/walletsim/exceptions.py

class WalletSimError(Exception):
    """Base exception class for wallet engine errors"""
    pass

class ValidationError(WalletSimError):
    """Raised when an operation is rejected before any mutation"""
    pass

class InvalidAmountError(ValidationError):
    """Raised when an amount is not a finite positive number"""
    pass

class InsufficientBalanceError(ValidationError):
    """Raised when an asset balance does not cover the requested amount"""

    def __init__(self, asset_id: str, balance, amount):
        super().__init__(
            f"Insufficient {asset_id} balance: {balance} < {amount}"
        )
        self.asset_id = asset_id
        self.balance = balance
        self.amount = amount

class UnknownAssetError(ValidationError):
    """Raised when an asset is not held by the wallet"""
    pass

class UnknownWalletError(ValidationError):
    """Raised when a wallet id is not in the store"""
    pass

class InvalidWalletNameError(ValidationError):
    """Raised when a wallet name is empty after trimming"""
    pass

class TransientFetchError(WalletSimError):
    """Raised when a price, rate or listing request fails"""
    pass

class StorageError(WalletSimError):
    """Base exception class for storage-related errors"""
    pass

class DatabaseError(StorageError):
    """Raised when database operations fail"""
    pass

class PersistenceCorruption(StorageError):
    """Raised when stored state cannot be decoded"""
    pass
