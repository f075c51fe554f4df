# File: src/walletsim/config/__init__.py
from .settings import Settings

__all__ = ['Settings']
