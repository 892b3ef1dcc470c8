import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - [%(levelname)-7s] - %(message)s"

log = logging.getLogger("siggil")


@dataclass(frozen=True)
class Settings:
    """Настройки процесса из переменных окружения"""

    database_url: Optional[str] = None
    database_name: Optional[str] = None
    storage_dir: str = ".siggil"
    log_level: str = "INFO"
    fetch_timeout: float = 10.0
    payment_delay: float = 2.0

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            database_url=env.get("DATABASE_URL") or None,
            database_name=env.get("DATABASE_NAME") or None,
            storage_dir=env.get("SIGGIL_STORAGE_DIR", ".siggil"),
            log_level=env.get("SIGGIL_LOG_LEVEL", "INFO").upper(),
            fetch_timeout=float(env.get("SIGGIL_FETCH_TIMEOUT", "10")),
            payment_delay=float(env.get("SIGGIL_PAYMENT_DELAY", "2")),
        )

    @property
    def backend_configured(self) -> bool:
        return bool(self.database_url and self.database_name)


def setup_logging(level: str = "INFO") -> None:
    """Настраивает логгер пакета; повторный вызов меняет только уровень."""
    log.setLevel(level)
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
    log.debug("logging configured at %s", level)
