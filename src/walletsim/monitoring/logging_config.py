# File: src/walletsim/monitoring/logging_config.py

import logging
import logging.handlers
import os
from datetime import datetime

class LogConfig:
    def __init__(
        self,
        log_dir: str = "logs",
        max_size: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5,
        console_level: int = logging.INFO
    ):
        self.log_dir = log_dir
        self.max_size = max_size
        self.backup_count = backup_count
        self.console_level = console_level

        if not os.path.exists(log_dir):
            os.makedirs(log_dir)

    @property
    def log_file(self) -> str:
        return os.path.join(
            self.log_dir,
            f'walletsim_{datetime.now().strftime("%Y%m%d")}.log'
        )

    def setup_logging(self):
        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        console_formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s'
        )

        file_handler = logging.handlers.RotatingFileHandler(
            self.log_file,
            maxBytes=self.max_size,
            backupCount=self.backup_count
        )
        file_handler.setFormatter(file_formatter)
        file_handler.setLevel(logging.DEBUG)

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(console_formatter)
        console_handler.setLevel(self.console_level)

        # Only the package logger, so embedding applications keep their own root config
        package_logger = logging.getLogger("walletsim")
        package_logger.setLevel(logging.DEBUG)
        for handler in list(package_logger.handlers):
            package_logger.removeHandler(handler)
            handler.close()
        package_logger.addHandler(file_handler)
        package_logger.addHandler(console_handler)
        return package_logger
