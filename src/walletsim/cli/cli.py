# src/walletsim/cli/cli.py
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from ..config.settings import Settings
from ..utils.logger import setup_logging
from ..session import WalletSession
from ..wallet.portfolio import asset_history, convert_usd, group_by_date, sort_assets, total_balance_usd
from ..wallet.templates import receive_address
from ..exceptions import ValidationError

class CLI:
    def __init__(self, session: Optional[WalletSession] = None, config_path: Optional[str] = None):
        self._session = session
        self.config_path = config_path
        self.log_level: Optional[str] = None

    @property
    def session(self) -> WalletSession:
        if self._session is None:
            settings = Settings(self.config_path or "config/walletsim.yaml")
            level = self.log_level or settings.get("monitoring.log_level", "INFO")
            setup_logging(getattr(logging, str(level).upper(), logging.INFO))
            self._session = WalletSession.from_settings(settings)
        return self._session

    def main(self, args: List[str]) -> int:
        parser = self.create_parser()
        args = parser.parse_args(args)

        if args.config:
            self.config_path = args.config
        self.log_level = args.log_level
        if not hasattr(args, 'func'):
            parser.print_help()
            return 1

        try:
            args.func(args)
        except ValidationError as e:
            print(f"Error: {e}")
            return 2
        return 0

    def create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(description='walletsim CLI')
        parser.add_argument('--config', help='Path to the YAML settings file')
        parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'])
        subparsers = parser.add_subparsers(title='commands', dest='command')

        # Wallet commands
        wallet_parser = subparsers.add_parser('wallet', help='Wallet operations')
        wallet_subparsers = wallet_parser.add_subparsers()

        list_wallets = wallet_subparsers.add_parser('list', help='List wallets')
        list_wallets.set_defaults(func=self.list_wallets)

        create_wallet = wallet_subparsers.add_parser('create', help='Create new wallet')
        create_wallet.add_argument('name', nargs='?', help='Wallet name')
        create_wallet.set_defaults(func=self.create_wallet)

        select_wallet = wallet_subparsers.add_parser('select', help='Make a wallet active')
        select_wallet.add_argument('wallet_id')
        select_wallet.set_defaults(func=self.select_wallet)

        rename_wallet = wallet_subparsers.add_parser('rename', help='Rename a wallet')
        rename_wallet.add_argument('wallet_id')
        rename_wallet.add_argument('name')
        rename_wallet.set_defaults(func=self.rename_wallet)

        delete_wallet = wallet_subparsers.add_parser('delete', help='Delete a wallet')
        delete_wallet.add_argument('wallet_id')
        delete_wallet.set_defaults(func=self.delete_wallet)

        reset_wallet = wallet_subparsers.add_parser('reset', help='Zero balances and clear history of the active wallet')
        reset_wallet.set_defaults(func=self.reset_wallet)

        balance = wallet_subparsers.add_parser('balance', help='Show active wallet balances')
        balance.add_argument('--sort', choices=['default', 'asc', 'desc'], default='default')
        balance.set_defaults(func=self.show_balance)

        topup = wallet_subparsers.add_parser('topup', help='Set an asset balance directly')
        topup.add_argument('asset_id')
        topup.add_argument('balance')
        topup.set_defaults(func=self.top_up)

        address = wallet_subparsers.add_parser('address', help='Show the deposit address for an asset')
        address.add_argument('asset_id')
        address.set_defaults(func=self.show_address)

        # Transaction commands
        tx_parser = subparsers.add_parser('tx', help='Transaction operations')
        tx_subparsers = tx_parser.add_subparsers()

        send_tx = tx_subparsers.add_parser('send', help='Send an asset')
        send_tx.add_argument('asset_id')
        send_tx.add_argument('amount')
        target = send_tx.add_mutually_exclusive_group(required=True)
        target.add_argument('--address', help='External address')
        target.add_argument('--wallet', help='Id of another wallet in the store')
        send_tx.set_defaults(func=self.send_transaction)

        receive_tx = tx_subparsers.add_parser('receive', help='Simulate an incoming transfer')
        receive_tx.add_argument('asset_id')
        receive_tx.add_argument('amount')
        receive_tx.set_defaults(func=self.receive_transaction)

        swap_tx = tx_subparsers.add_parser('swap', help='Swap between two held assets')
        swap_tx.add_argument('from_asset_id')
        swap_tx.add_argument('to_asset_id')
        swap_tx.add_argument('amount')
        swap_tx.add_argument('--to-amount', help='Override the quoted amount')
        swap_tx.set_defaults(func=self.swap_transaction)

        buy_tx = tx_subparsers.add_parser('buy', help='Buy a listed token with the settlement asset')
        buy_tx.add_argument('token_id')
        buy_tx.add_argument('amount', help='Settlement asset amount to spend')
        buy_tx.set_defaults(func=self.buy_token)

        history = tx_subparsers.add_parser('history', help='Show ledger of the active wallet')
        history.add_argument('--asset', help='Only rows touching this asset')
        history.set_defaults(func=self.show_history)

        # Market commands
        market_parser = subparsers.add_parser('market', help='Market data')
        market_subparsers = market_parser.add_subparsers()

        prices = market_subparsers.add_parser('prices', help='Refresh prices of the active wallet')
        prices.add_argument('--force', action='store_true', help='Ignore the cool-down')
        prices.set_defaults(func=self.refresh_prices)

        listing = market_subparsers.add_parser('list', help='Top tokens by market cap')
        listing.add_argument('--page', type=int, default=1)
        listing.set_defaults(func=self.list_market)

        rate = market_subparsers.add_parser('rate', help='USD fiat rate')
        rate.set_defaults(func=self.show_rate)

        # Preferences
        prefs = subparsers.add_parser('prefs', help='Show or change preferences')
        prefs.add_argument('--language', choices=['en', 'ru'])
        prefs.add_argument('--theme', choices=['light', 'dark'])
        prefs.add_argument('--currency', choices=['USD', 'RUB'])
        prefs.set_defaults(func=self.preferences)

        return parser

    def list_wallets(self, args):
        store = self.session.store
        for wallet in store.wallets:
            marker = '*' if wallet.id == store.active_wallet_id else ' '
            print(f"{marker} {wallet.id}  {wallet.name}  {total_balance_usd(wallet):.2f} $")

    def create_wallet(self, args):
        wallet = self.session.store.create_wallet(args.name)
        print(f"Created wallet {wallet.id} ({wallet.name})")

    def select_wallet(self, args):
        wallet = self.session.store.select_wallet(args.wallet_id)
        print(f"Active wallet: {wallet.name}")

    def rename_wallet(self, args):
        wallet = self.session.store.rename_wallet(args.wallet_id, args.name)
        print(f"Renamed {wallet.id} to {wallet.name}")

    def delete_wallet(self, args):
        if self.session.store.delete_wallet(args.wallet_id):
            print(f"Deleted wallet {args.wallet_id}")
        else:
            print("Error: the last wallet cannot be deleted")

    def reset_wallet(self, args):
        wallet = self.session.store.reset_active_wallet()
        print(f"Reset wallet {wallet.name}")

    def show_balance(self, args):
        session = self.session
        wallet = session.store.active_wallet
        currency = session.store.preferences.currency
        for asset in sort_assets(wallet.assets, args.sort):
            value = convert_usd(asset.value_usd, currency, session.fiat_rate)
            print(f"{asset.symbol:<6} {asset.network:<10} {asset.balance:>18}  {value:.2f} {currency}")
        total = convert_usd(total_balance_usd(wallet), currency, session.fiat_rate)
        print(f"Total: {total:.2f} {currency}")

    def top_up(self, args):
        store = self.session.store
        asset = store.set_balance(store.active_wallet_id, args.asset_id, args.balance)
        print(f"{asset.symbol} balance set to {asset.balance}")

    def show_address(self, args):
        asset = self.session.store.active_wallet.get_asset(args.asset_id)
        if asset is None:
            print(f"Error: no asset {args.asset_id}")
            return
        print(receive_address(asset))

    def send_transaction(self, args):
        tx = self.session.send(args.asset_id, args.amount, address=args.address, to_wallet_id=args.wallet)
        print(f"Transaction sent: {tx.id} {tx.hash}")

    def receive_transaction(self, args):
        tx = self.session.receive(args.asset_id, args.amount)
        print(f"Transaction received: {tx.id}")

    def swap_transaction(self, args):
        tx = self.session.swap(args.from_asset_id, args.to_asset_id, args.amount, args.to_amount)
        print(f"Swapped {tx.amount} {tx.asset_id} for {tx.to_amount} {tx.to_asset_id}")

    def buy_token(self, args):
        tx = asyncio.run(self.session.buy(args.token_id, args.amount))
        print(f"Bought {tx.to_amount} {tx.to_asset_id} for {tx.amount} {tx.asset_id}")

    def show_history(self, args):
        wallet = self.session.store.active_wallet
        rows = asset_history(wallet, args.asset) if args.asset else wallet.transactions
        if not rows:
            print("No transactions")
            return
        for day, transactions in group_by_date(rows).items():
            print(day.isoformat())
            for tx in transactions:
                target = f" -> {tx.to_amount} {tx.to_asset_id}" if tx.to_asset_id else ""
                counterparty = f" ({tx.address})" if tx.address else ""
                print(f"  {tx.type.value:<8} {tx.amount} {tx.asset_id}{target}{counterparty} [{tx.status.value}]")

    def refresh_prices(self, args):
        updated = asyncio.run(self.session.synchronizer.refresh(force=args.force))
        print("Prices updated" if updated else "Prices unchanged")

    def list_market(self, args):
        tokens = asyncio.run(self.session.client.fetch_market_listing_or_fallback(page=args.page))
        for token in tokens:
            print(f"{token.symbol.upper():<6} {token.name:<20} {token.current_price} $ ({token.price_change_percentage_24h}%)")

    def show_rate(self, args):
        rate = asyncio.run(self.session.synchronizer.refresh_fiat_rate())
        print(f"1 USD = {rate} {self.session.synchronizer.fiat_currency}")

    def preferences(self, args):
        store = self.session.store
        if args.language:
            store.set_language(args.language)
        if args.theme:
            store.set_theme(args.theme)
        if args.currency:
            store.set_currency(args.currency)
        prefs = store.preferences
        print(f"language={prefs.language} theme={prefs.theme} currency={prefs.currency}")

def main():
    cli = CLI()
    sys.exit(cli.main(sys.argv[1:]))

if __name__ == "__main__":
    main()
