# main.py
import asyncio
import logging

from walletsim.config.settings import Settings
from walletsim.monitoring.logging_config import LogConfig
from walletsim.session import WalletSession

async def run():
    settings = Settings()
    level = str(settings.get("monitoring.log_level", "INFO")).upper()
    LogConfig(
        log_dir=settings.get("monitoring.log_dir", "logs"),
        console_level=getattr(logging, level, logging.INFO)
    ).setup_logging()

    # Keep prices and the fiat rate fresh until interrupted
    session = WalletSession.from_settings(settings)
    try:
        async with session:
            wallet = session.store.active_wallet
            print(f"walletsim running. Active wallet: {wallet.name} ({wallet.id})")
            await asyncio.Event().wait()
    finally:
        session.close()

def main():
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass

if __name__ == "__main__":
    main()
