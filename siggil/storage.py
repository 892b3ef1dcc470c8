import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

log = logging.getLogger(__name__)

CART_KEY = "siggil_cart"
FAVORITES_KEY = "siggil_favorites"
USER_KEY = "siggil_user"
ADMIN_KEY = "siggil_admin"
PREMIUM_REQUESTS_KEY = "siggil_premium_requests"
PREMIUM_ACCESS_KEY = "siggil_premium_access"
PREMIUM_REQUEST_ID_KEY = "siggil_premium_request_id"
PREMIUM_CODE_ENTERED_KEY = "siggil_premium_code_entered"

PREMIUM_SESSION_KEYS = (
    PREMIUM_ACCESS_KEY,
    PREMIUM_REQUEST_ID_KEY,
    PREMIUM_CODE_ENTERED_KEY,
)


class KeyValueStorage(ABC):
    """
    Локальное хранилище снимков состояния сессии.
    Значения сериализуются в JSON; один писатель, один читатель.
    """

    @abstractmethod
    def get_raw(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def set_raw(self, key: str, value: str) -> None: ...

    @abstractmethod
    def remove(self, key: str) -> None: ...

    def load(self, key: str, default: Any = None) -> Any:
        """Читает снимок; повреждённое значение удаляется и возвращается default"""
        raw = self.get_raw(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            log.error("corrupt snapshot under %s, discarding", key)
            self.remove(key)
            return default

    def save(self, key: str, value: Any) -> None:
        self.set_raw(key, json.dumps(value, ensure_ascii=False))


class MemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_raw(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_raw(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self):
        return tuple(self._data)


class JsonFileStorage(KeyValueStorage):
    """Один файл <key>.json на ключ в каталоге directory"""

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def get_raw(self, key: str) -> Optional[str]:
        try:
            with open(self._path(key), "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def set_raw(self, key: str, value: str) -> None:
        tmp = self._path(key) + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(value)
        os.replace(tmp, self._path(key))

    def remove(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass
