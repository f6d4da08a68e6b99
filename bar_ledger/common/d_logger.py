import os
import sys
import logging
import logging.config
import yaml
from bar_ledger.common.singleton import Singleton
from bar_ledger.config import Config

CONFIG_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'log_config.yaml')


class Logs(metaclass=Singleton):
    """Configures the "main" and "db" loggers once per process from log_config.yaml"""

    def __init__(self):
        config = self._load_config(CONFIG_FILE)
        logging.config.dictConfig(config)

        self.err_logger = logging.getLogger("main")
        sys.excepthook = self.handle_exception

    @staticmethod
    def _load_config(path: str) -> dict:
        with open(path, 'rt') as f:
            config = yaml.safe_load(f)

        logs_dir = os.path.abspath(Config.LOG_DIR)
        os.makedirs(logs_dir, exist_ok=True)

        for handler in config['handlers'].values():
            if 'filename' in handler:
                handler['filename'] = os.path.join(logs_dir, os.path.basename(handler['filename']))
        config['handlers']['console']['level'] = Config.CONSOLE_LOG_LEVEL
        return config

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(name)

    def handle_exception(self, exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        self.err_logger.error("Unexpected exception",
                              exc_info=(exc_type, exc_value, exc_traceback))
