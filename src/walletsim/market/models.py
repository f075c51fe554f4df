# File: src/walletsim/market/models.py
from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Dict, Optional

from ..wallet.models import Asset
from ..wallet.templates import local_asset_id, network_label

class PriceQuote(BaseModel):
    usd: Decimal = Field(ge=0, allow_inf_nan=False)
    usd_24h_change: Optional[Decimal] = None

class MarketToken(BaseModel):
    id: str
    name: str
    symbol: str
    current_price: Optional[Decimal] = None
    price_change_percentage_24h: Optional[Decimal] = None
    image: Optional[str] = None
    market_cap_rank: Optional[int] = None

    def to_asset(self) -> Asset:
        """Zero-balance asset carrying this token's metadata"""
        return Asset(
            id=local_asset_id(self.id),
            name=self.name,
            symbol=self.symbol.upper(),
            network=network_label(self.id),
            balance=Decimal('0'),
            price_usd=self.current_price or Decimal('0'),
            change_24h=self.price_change_percentage_24h or Decimal('0'),
            icon=self.symbol.upper()[:3],
            logo_url=self.image or "",
        )

class FiatRates(BaseModel):
    base_code: str = "USD"
    rates: Dict[str, Decimal]
