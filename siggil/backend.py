import asyncio
import copy
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import PyMongoError

from .config import Settings
from .errors import BackendError

log = logging.getLogger(__name__)

Row = Dict[str, Any]
Filters = Mapping[str, Any]
OrderBy = Sequence[Tuple[str, bool]]  # (поле, по возрастанию)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _stamp(row: Mapping[str, Any]) -> Row:
    """Проставляет id и метки времени, которые обычно выставляет сама БД"""
    ts = now_iso()
    stamped = dict(row)
    stamped.setdefault("id", str(uuid.uuid4()))
    stamped.setdefault("created_at", ts)
    stamped.setdefault("updated_at", ts)
    return stamped


class TableBackend(ABC):
    """
    Удалённое табличное хранилище: выборка с фильтром и сортировкой,
    вставка, обновление и удаление по фильтру.
    Любой сбой поднимается как BackendError.
    """

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: OrderBy = (),
        limit: Optional[int] = None,
    ) -> List[Row]: ...

    @abstractmethod
    async def insert(self, table: str, row: Mapping[str, Any]) -> Row: ...

    @abstractmethod
    async def update(
        self, table: str, filters: Filters, changes: Mapping[str, Any]
    ) -> List[Row]: ...

    @abstractmethod
    async def delete(self, table: str, filters: Filters) -> int: ...

    def close(self) -> None:
        pass


class MemoryBackend(TableBackend):
    """Backend в памяти процесса (тесты, локальная разработка)"""

    def __init__(self, tables: Optional[Mapping[str, List[Row]]] = None):
        self.tables: Dict[str, List[Row]] = {
            name: [_stamp(r) for r in rows] for name, rows in (tables or {}).items()
        }
        self.offline = False

    def _check(self, table: str) -> List[Row]:
        if self.offline:
            raise BackendError("backend unreachable", table)
        return self.tables.setdefault(table, [])

    @staticmethod
    def _matches(row: Row, filters: Optional[Filters]) -> bool:
        return all(row.get(k) == v for k, v in (filters or {}).items())

    async def select(self, table, filters=None, order_by=(), limit=None):
        rows = [copy.deepcopy(r) for r in self._check(table) if self._matches(r, filters)]
        # устойчивая сортировка по ключам в обратном порядке
        for field, ascending in reversed(tuple(order_by)):
            rows.sort(
                key=lambda r: (r.get(field) is None, r.get(field)),
                reverse=not ascending,
            )
        return rows[:limit] if limit is not None else rows

    async def insert(self, table, row):
        stamped = _stamp(row)
        self._check(table).append(stamped)
        return copy.deepcopy(stamped)

    async def update(self, table, filters, changes):
        updated = []
        for row in self._check(table):
            if self._matches(row, filters):
                row.update(copy.deepcopy(dict(changes)))
                updated.append(copy.deepcopy(row))
        return updated

    async def delete(self, table, filters):
        rows = self._check(table)
        kept = [r for r in rows if not self._matches(r, filters)]
        self.tables[table] = kept
        return len(rows) - len(kept)


class MongoBackend(TableBackend):
    """Таблицы как коллекции MongoDB; собственный строковый id вместо _id"""

    def __init__(self, url: str, name: str, client: Optional[MongoClient] = None):
        self._client = client or MongoClient(url, serverSelectionTimeoutMS=5000)
        self._db = self._client[name]

    async def _run(self, table: str, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except PyMongoError as e:
            raise BackendError(str(e), table) from e

    def _select_sync(self, table, filters, order_by, limit):
        cursor = self._db[table].find(dict(filters or {}), {"_id": 0})
        if order_by:
            cursor = cursor.sort(
                [(f, ASCENDING if asc else DESCENDING) for f, asc in order_by]
            )
        if limit is not None:
            cursor = cursor.limit(limit)
        return list(cursor)

    def _insert_sync(self, table, row):
        self._db[table].insert_one(dict(row))
        return row

    def _update_sync(self, table, filters, changes):
        ids = [d["id"] for d in self._db[table].find(dict(filters), {"id": 1})]
        if not ids:
            return []
        self._db[table].update_many({"id": {"$in": ids}}, {"$set": dict(changes)})
        return list(self._db[table].find({"id": {"$in": ids}}, {"_id": 0}))

    def _delete_sync(self, table, filters):
        return self._db[table].delete_many(dict(filters)).deleted_count

    async def select(self, table, filters=None, order_by=(), limit=None):
        return await self._run(table, self._select_sync, table, filters, order_by, limit)

    async def insert(self, table, row):
        return await self._run(table, self._insert_sync, table, _stamp(row))

    async def update(self, table, filters, changes):
        return await self._run(table, self._update_sync, table, filters, changes)

    async def delete(self, table, filters):
        return await self._run(table, self._delete_sync, table, filters)

    def close(self) -> None:
        self._client.close()


class UnavailableBackend(TableBackend):
    """Backend без конфигурации: все операции завершаются BackendError"""

    def __init__(self, reason: str = "DATABASE_URL / DATABASE_NAME not set"):
        self.reason = reason

    async def select(self, table, filters=None, order_by=(), limit=None):
        raise BackendError(self.reason, table)

    async def insert(self, table, row):
        raise BackendError(self.reason, table)

    async def update(self, table, filters, changes):
        raise BackendError(self.reason, table)

    async def delete(self, table, filters):
        raise BackendError(self.reason, table)


def create_backend(settings: Settings) -> TableBackend:
    if not settings.backend_configured:
        log.warning("remote backend not configured, running degraded")
        return UnavailableBackend()
    log.info("connecting to database %s", settings.database_name)
    return MongoBackend(settings.database_url, settings.database_name)
