# tests/test_monitoring.py
import logging
import os
import shutil
import tempfile
import pytest
from prometheus_client import CollectorRegistry

from walletsim.config.settings import Settings
from walletsim.monitoring.logging_config import LogConfig
from walletsim.monitoring.metrics import MetricsCollector
from walletsim.utils.logger import get_logger, setup_logging

class TestMonitoring:
    @pytest.fixture
    def temp_dir(self):
        tmp_dir = tempfile.mkdtemp()
        yield tmp_dir
        shutil.rmtree(tmp_dir)

    @pytest.fixture
    def package_logger(self):
        logger = logging.getLogger("walletsim")
        handlers, level = list(logger.handlers), logger.level
        yield logger
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            if handler not in handlers:
                handler.close()
        for handler in handlers:
            logger.addHandler(handler)
        logger.setLevel(level)

    def test_metrics_collector(self):
        metrics = MetricsCollector(registry=CollectorRegistry())
        metrics.record_transaction("swap")
        metrics.record_transaction("swap")
        metrics.record_rejection("InvalidAmountError")
        metrics.record_refresh("ok")
        metrics.observe_fetch_latency(0.25)
        metrics.set_wallet_count(3)

        assert metrics.sample("walletsim_transactions_committed_total", type="swap") == 2
        assert metrics.sample("walletsim_transactions_rejected_total", reason="InvalidAmountError") == 1
        assert metrics.sample("walletsim_price_refreshes_total", outcome="ok") == 1
        assert metrics.sample("walletsim_price_fetch_seconds_count") == 1
        assert metrics.sample("walletsim_wallets") == 3
        assert metrics.sample("walletsim_price_refreshes_total", outcome="failed") == 0

    def test_log_config_writes_file(self, temp_dir, package_logger):
        log_dir = os.path.join(temp_dir, "logs")
        config = LogConfig(log_dir=log_dir, console_level=logging.ERROR)
        logger = config.setup_logging()
        assert logger is package_logger
        assert len(logger.handlers) == 2

        logging.getLogger("walletsim.wallet.store").info("created wallet")
        for handler in logger.handlers:
            handler.flush()
        with open(config.log_file) as f:
            assert "created wallet" in f.read()

    def test_setup_logging_is_idempotent(self, package_logger):
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
        logger = setup_logging(logging.DEBUG)
        assert logger.level == logging.DEBUG
        assert get_logger("walletsim") is logger
        assert len(logger.handlers) == 1

    def test_settings_defaults_and_update(self, temp_dir):
        path = os.path.join(temp_dir, "walletsim.yaml")
        settings = Settings(path)
        assert settings.get("market.fiat_currency") == "RUB"
        assert settings.get("missing.key", "fallback") == "fallback"

        settings.update("sync.price_cooldown", 5)
        settings.update("monitoring.extra.flag", True)
        reloaded = Settings(path)
        assert reloaded.get("sync.price_cooldown") == 5
        assert reloaded.get("monitoring.extra.flag") is True

    def test_settings_ignore_non_mapping_file(self, temp_dir):
        path = os.path.join(temp_dir, "broken.yaml")
        with open(path, "w") as f:
            f.write("- just\n- a list\n")
        assert Settings(path).get("sync.tick_interval") == 60
