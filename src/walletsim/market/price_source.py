# File: src/walletsim/market/price_source.py

import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

import aiohttp
from async_timeout import timeout
from pydantic import ValidationError as SchemaError

from .models import FiatRates, MarketToken, PriceQuote
from ..wallet.templates import FALLBACK_MARKET_DATA
from ..utils.config import Config
from ..exceptions import TransientFetchError

logger = logging.getLogger(__name__)

class MarketDataClient:
    """Read-only client for the price feed, market listing and fiat rate.

    Every failure (connection, HTTP status, timeout, undecodable body) is
    raised as TransientFetchError; callers decide whether stale data is good
    enough.
    """

    def __init__(
        self,
        price_api_url: str = Config.PRICE_API_URL,
        fiat_rate_url: str = Config.FIAT_RATE_API_URL,
        request_timeout: float = Config.REQUEST_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None
    ):
        self.price_api_url = price_api_url.rstrip('/')
        self.fiat_rate_url = fiat_rate_url
        self.request_timeout = request_timeout
        self._session = session

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            async with timeout(self.request_timeout):
                if self._session is not None:
                    return await self._request(self._session, url, params)
                async with aiohttp.ClientSession() as session:
                    return await self._request(session, url, params)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise TransientFetchError(f"GET {url} failed: {e!r}") from e

    async def _request(self, session: aiohttp.ClientSession, url: str, params: Optional[Dict[str, Any]]) -> Any:
        async with session.get(url, params=params) as response:
            response.raise_for_status()
            return await response.json(content_type=None)

    async def fetch_prices(self, source_ids: Iterable[str]) -> Dict[str, PriceQuote]:
        """Spot USD price and 24h change keyed by price source id"""
        ids = sorted(set(source_ids))
        if not ids:
            return {}
        data = await self._get_json(
            f"{self.price_api_url}/simple/price",
            params={
                "ids": ",".join(ids),
                "vs_currencies": "usd",
                "include_24hr_change": "true",
            }
        )
        if not isinstance(data, dict):
            raise TransientFetchError("Price response is not an object")

        quotes: Dict[str, PriceQuote] = {}
        for source_id, entry in data.items():
            try:
                quotes[source_id] = PriceQuote.model_validate(entry)
            except SchemaError:
                logger.debug(f"Ignoring unparseable quote for {source_id}: {entry!r}")
        return quotes

    async def fetch_market_listing(self, page: int = 1, per_page: int = Config.MARKET_PAGE_SIZE) -> List[MarketToken]:
        """Tokens ranked by market cap"""
        data = await self._get_json(
            f"{self.price_api_url}/coins/markets",
            params={
                "vs_currency": "usd",
                "order": "market_cap_desc",
                "per_page": per_page,
                "page": page,
                "sparkline": "false",
            }
        )
        if not isinstance(data, list):
            raise TransientFetchError("Market listing response is not a list")
        try:
            return [MarketToken.model_validate(item) for item in data]
        except SchemaError as e:
            raise TransientFetchError(f"Market listing malformed: {e}") from e

    async def fetch_market_listing_or_fallback(
        self,
        page: int = 1,
        per_page: int = Config.MARKET_PAGE_SIZE
    ) -> List[MarketToken]:
        """Listing page; page 1 falls back to the bundled list when the source is down"""
        try:
            return await self.fetch_market_listing(page, per_page)
        except TransientFetchError as e:
            logger.warning(f"Market listing unavailable: {e}")
            if page != 1:
                return []
            return [MarketToken.model_validate(item) for item in FALLBACK_MARKET_DATA[:per_page]]

    async def fetch_fiat_rate(self, currency: str = Config.FIAT_CURRENCY) -> Decimal:
        """Units of ``currency`` per one USD"""
        data = await self._get_json(self.fiat_rate_url)
        try:
            rates = FiatRates.model_validate(data)
        except SchemaError as e:
            raise TransientFetchError(f"Fiat rate response malformed: {e}") from e
        rate = rates.rates.get(currency)
        if rate is None or not rate.is_finite() or rate <= 0:
            raise TransientFetchError(f"No usable {currency} rate in response")
        return rate
