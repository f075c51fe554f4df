# File: src/walletsim/storage/__init__.py
from .database import Database
from .persistence import StorePersistence
from ..exceptions import DatabaseError

__all__ = ['Database', 'DatabaseError', 'StorePersistence']
