# src/walletsim/wallet/templates.py

from decimal import Decimal
from typing import Dict, List, Any
from .models import Asset

USER_ADDRESSES: Dict[str, str] = {
    'bitcoin': 'bc1qxy2kgdygjrsqtzq2n0yrf2493p83kkfjhx0wlh',
    'evm': '0x71C7656EC7ab88b098defB751B7401B5f6d8976F',
    'tron': 'TWs9Uo232Yx6yF13o57v3q8mD9nUo3vW2v',
}

# Local asset id -> price source id
PRICE_ID_MAP: Dict[str, str] = {
    'bitcoin': 'bitcoin',
    'eth': 'ethereum',
    'tron': 'tron',
    'usdt-tron': 'tether',
    'solana': 'solana',
    'binancecoin': 'binancecoin',
    'ripple': 'ripple',
    'dogecoin': 'dogecoin',
    'cardano': 'cardano',
    'lighter': 'lighter',
    'layerzero': 'layerzero',
}

NETWORK_LABELS: Dict[str, str] = {
    'bitcoin': 'Bitcoin',
    'tron': 'Tron',
    'tether': 'Tron',
    'solana': 'Solana',
    'binancecoin': 'BEP20',
    'ripple': 'XRP Ledger',
    'dogecoin': 'Dogecoin',
    'cardano': 'Cardano',
}

DEMO_ASSETS: List[Asset] = [
    Asset(
        id='usdt-tron',
        name='USDT',
        symbol='USDT',
        network='Tron',
        network_icon='https://cryptologos.cc/logos/tron-trx-logo.png',
        balance=Decimal('1170.2439'),
        price_usd=Decimal('1.00'),
        change_24h=Decimal('0.01'),
        icon='₮',
        logo_url='https://cryptologos.cc/logos/tether-usdt-logo.png',
        color='#26A17B',
    ),
    Asset(
        id='tron',
        name='TRON',
        symbol='TRX',
        network='Tron',
        balance=Decimal('5420.50'),
        price_usd=Decimal('0.12'),
        change_24h=Decimal('1.25'),
        icon='TRX',
        logo_url='https://cryptologos.cc/logos/tron-trx-logo.png',
        color='#EF0027',
    ),
    Asset(
        id='eth',
        name='Ethereum',
        symbol='ETH',
        network='ERC20',
        balance=Decimal('0.452'),
        price_usd=Decimal('3240.15'),
        change_24h=Decimal('-0.44'),
        icon='Ξ',
        logo_url='https://cryptologos.cc/logos/ethereum-eth-logo.png',
        color='#627EEA',
    ),
    Asset(
        id='bitcoin',
        name='Bitcoin',
        symbol='BTC',
        network='Bitcoin',
        balance=Decimal('0.0842'),
        price_usd=Decimal('64230.50'),
        change_24h=Decimal('2.15'),
        icon='₿',
        logo_url='https://cryptologos.cc/logos/bitcoin-btc-logo.png',
        color='#F7931A',
    ),
]

# Shown by market discovery when the listing source is unreachable
FALLBACK_MARKET_DATA: List[Dict[str, Any]] = [
    {'id': 'bitcoin', 'name': 'Bitcoin', 'symbol': 'btc', 'current_price': 64230.50, 'price_change_percentage_24h': 2.15, 'image': 'https://cryptologos.cc/logos/bitcoin-btc-logo.png'},
    {'id': 'ethereum', 'name': 'Ethereum', 'symbol': 'eth', 'current_price': 3240.15, 'price_change_percentage_24h': -0.44, 'image': 'https://cryptologos.cc/logos/ethereum-eth-logo.png'},
    {'id': 'solana', 'name': 'Solana', 'symbol': 'sol', 'current_price': 145.20, 'price_change_percentage_24h': 5.12, 'image': 'https://cryptologos.cc/logos/solana-sol-logo.png'},
    {'id': 'binancecoin', 'name': 'BNB', 'symbol': 'bnb', 'current_price': 580.40, 'price_change_percentage_24h': 1.20, 'image': 'https://cryptologos.cc/logos/bnb-bnb-logo.png'},
    {'id': 'ripple', 'name': 'XRP', 'symbol': 'xrp', 'current_price': 0.62, 'price_change_percentage_24h': -1.15, 'image': 'https://cryptologos.cc/logos/xrp-xrp-logo.png'},
    {'id': 'dogecoin', 'name': 'Dogecoin', 'symbol': 'doge', 'current_price': 0.16, 'price_change_percentage_24h': 12.45, 'image': 'https://cryptologos.cc/logos/dogecoin-doge-logo.png'},
    {'id': 'cardano', 'name': 'Cardano', 'symbol': 'ada', 'current_price': 0.45, 'price_change_percentage_24h': 0.50, 'image': 'https://cryptologos.cc/logos/cardano-ada-logo.png'},
    {'id': 'tron', 'name': 'TRON', 'symbol': 'trx', 'current_price': 0.12, 'price_change_percentage_24h': 1.25, 'image': 'https://cryptologos.cc/logos/tron-trx-logo.png'},
    {'id': 'lighter', 'name': 'Lighter', 'symbol': 'lit', 'current_price': 0.054, 'price_change_percentage_24h': -2.3, 'image': 'https://assets.coingecko.com/coins/images/36224/standard/lighter.png'},
    {'id': 'layerzero', 'name': 'LayerZero', 'symbol': 'zro', 'current_price': 3.84, 'price_change_percentage_24h': 4.15, 'image': 'https://assets.coingecko.com/coins/images/38914/standard/zro.png'},
]

def demo_assets() -> List[Asset]:
    """Assets of the first-run wallet, with demo balances"""
    return list(DEMO_ASSETS)

def empty_assets() -> List[Asset]:
    """Demo template with every balance zeroed"""
    return [asset.with_balance(Decimal('0')) for asset in DEMO_ASSETS]

def price_source_id(asset_id: str) -> str:
    """Translate a local asset id, falling back to the id itself"""
    return PRICE_ID_MAP.get(asset_id, asset_id)

def local_asset_id(source_id: str) -> str:
    """Inverse of price_source_id: 'ethereum' -> 'eth'"""
    for local_id, mapped in PRICE_ID_MAP.items():
        if mapped == source_id:
            return local_id
    return source_id

def network_label(source_id: str) -> str:
    return NETWORK_LABELS.get(source_id, 'ERC20')

def receive_address(asset: Asset) -> str:
    """Demo deposit address for the asset's network"""
    network = asset.network.lower()
    if network == 'bitcoin':
        return USER_ADDRESSES['bitcoin']
    if network == 'tron':
        return USER_ADDRESSES['tron']
    return USER_ADDRESSES['evm']
