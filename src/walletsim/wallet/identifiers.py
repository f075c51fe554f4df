# src/walletsim/wallet/identifiers.py
import hashlib
import itertools
import random
import secrets
import threading
from abc import ABC, abstractmethod
from ..utils.config import Config

class IdentifierGenerator(ABC):
    """Source of the fabricated values attached to committed transactions.

    None of these values carry meaning; they exist so history rows look like
    real chain records.
    """

    @abstractmethod
    def transaction_id(self) -> str:
        pass

    @abstractmethod
    def settlement_hash(self, transaction_id: str) -> str:
        pass

    def network_fee(self) -> str:
        return Config.SIMULATED_NETWORK_FEE

    @abstractmethod
    def block_number(self) -> int:
        pass

    @abstractmethod
    def wallet_id(self) -> str:
        pass

class RandomIdentifierGenerator(IdentifierGenerator):
    def __init__(self):
        self._issued = set()
        self._lock = threading.Lock()

    def _unique_token(self, nbytes: int) -> str:
        with self._lock:
            while True:
                token = secrets.token_hex(nbytes)
                if token not in self._issued:
                    self._issued.add(token)
                    return token

    def transaction_id(self) -> str:
        return self._unique_token(6)

    def settlement_hash(self, transaction_id: str) -> str:
        salt = secrets.token_hex(8)
        return "0x" + hashlib.sha256(f"{transaction_id}{salt}".encode()).hexdigest()

    def block_number(self) -> int:
        return Config.BLOCK_NUMBER_BASE + random.randrange(10_000_000)

    def wallet_id(self) -> str:
        return "w-" + self._unique_token(4)

class SequentialIdentifierGenerator(IdentifierGenerator):
    """Deterministic generator: same call sequence, same values"""

    def __init__(self, prefix: str = "tx"):
        self.prefix = prefix
        self._tx_counter = itertools.count(1)
        self._wallet_counter = itertools.count(1)
        self._block_counter = itertools.count(1)

    def transaction_id(self) -> str:
        return f"{self.prefix}-{next(self._tx_counter)}"

    def settlement_hash(self, transaction_id: str) -> str:
        return "0x" + hashlib.sha256(transaction_id.encode()).hexdigest()

    def block_number(self) -> int:
        return Config.BLOCK_NUMBER_BASE + next(self._block_counter)

    def wallet_id(self) -> str:
        return f"wallet-{next(self._wallet_counter)}"
