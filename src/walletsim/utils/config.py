# src/walletsim/utils/config.py
from decimal import Decimal

class Config:
    # Price synchronizer configuration
    PRICE_COOLDOWN = 30  # seconds between non-forced price fetches
    FIAT_RATE_INTERVAL = 60  # seconds between fiat rate fetches
    REFRESH_TICK = 60  # background task period in seconds
    FORCED_REFRESH_MIN_DELAY = 0.8  # seconds a manual refresh takes at least
    REQUEST_TIMEOUT = 10  # seconds per HTTP request

    # Market sources
    PRICE_API_URL = "https://api.coingecko.com/api/v3"
    FIAT_RATE_API_URL = "https://open.er-api.com/v6/latest/USD"
    FIAT_CURRENCY = "RUB"
    DEFAULT_FIAT_RATE = Decimal('92.5')  # RUB per USD until the first fetch
    MARKET_PAGE_SIZE = 50

    # Ledger configuration
    SETTLEMENT_ASSET_ID = "usdt-tron"  # asset spent on purchases
    SIMULATED_NETWORK_FEE = "0.85 USD"
    BLOCK_NUMBER_BASE = 18000000

    # Wallet store configuration
    DEFAULT_WALLET_ID = "main"
    WALLET_NAME_PREFIX = "Wallet"

    # Preferences
    LANGUAGES = ("en", "ru")
    THEMES = ("light", "dark")
    CURRENCIES = ("USD", "RUB")
    DEFAULT_LANGUAGE = "ru"
    DEFAULT_THEME = "light"
    DEFAULT_CURRENCY = "USD"

    # Storage keys
    WALLETS_KEY = "demo_wallet_list"
    ACTIVE_WALLET_KEY = "demo_wallet_active_id"
    LANGUAGE_KEY = "demo_wallet_lang"
    THEME_KEY = "demo_wallet_theme"
    CURRENCY_KEY = "demo_wallet_currency"
    LEGACY_ASSETS_KEY = "demo_wallet_assets"  # single-wallet layout
    LEGACY_TRANSACTIONS_KEY = "demo_wallet_txs"

    # Database configuration
    DB_PATH = "data/walletsim.db"
