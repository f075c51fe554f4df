# File: src/walletsim/market/__init__.py
from .models import MarketToken, PriceQuote, FiatRates
from .price_source import MarketDataClient
from .synchronizer import PriceSynchronizer

__all__ = ['MarketToken', 'PriceQuote', 'FiatRates', 'MarketDataClient', 'PriceSynchronizer']
