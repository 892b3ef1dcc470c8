import logging
import uuid
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .backend import Filters, OrderBy, TableBackend, now_iso
from .domain import ORDER_STATUSES, Category, Order, PremiumRequest, Product, User
from .errors import BackendError
from .ftypes import Maybe
from .schemas import (
    CategoryCreate,
    CategoryUpdate,
    OrderCreate,
    PremiumRequestCreate,
    ProductCreate,
    ProductUpdate,
    UserCreate,
)
from .transforms import (
    popularity_scores,
    row_to_category,
    row_to_order,
    row_to_premium_request,
    row_to_product,
    row_to_user,
)
from .validation import digits_only

log = logging.getLogger(__name__)

NEWEST_FIRST: OrderBy = (("created_at", False),)
ACTIVE_PRODUCTS_LIMIT = 50
NEW_PRODUCTS_LIMIT = 10


class TableService:
    """
    Базовый фасад над одной таблицей.
    Ошибки backend'а логируются и превращаются в Maybe.nothing() / False.
    """

    table: str = ""

    def __init__(self, backend: TableBackend):
        self.backend = backend

    async def _select(
        self,
        filters: Optional[Filters] = None,
        order_by: OrderBy = (),
        limit: Optional[int] = None,
        table: Optional[str] = None,
    ) -> Maybe[List[Dict[str, Any]]]:
        try:
            return Maybe.some(
                await self.backend.select(table or self.table, filters, order_by, limit)
            )
        except BackendError as e:
            log.error("select from %s failed: %s", table or self.table, e)
            return Maybe.nothing()

    async def _first(self, filters: Filters) -> Maybe[Dict[str, Any]]:
        return (await self._select(filters, limit=1)).bind(
            lambda rows: Maybe.some(rows[0]) if rows else Maybe.nothing()
        )

    async def _insert(self, row: Mapping[str, Any]) -> Maybe[Dict[str, Any]]:
        try:
            return Maybe.some(await self.backend.insert(self.table, row))
        except BackendError as e:
            log.error("insert into %s failed: %s", self.table, e)
            return Maybe.nothing()

    async def _update(self, filters: Filters, changes: Mapping[str, Any]) -> bool:
        try:
            rows = await self.backend.update(
                self.table, filters, {**changes, "updated_at": now_iso()}
            )
        except BackendError as e:
            log.error("update of %s failed: %s", self.table, e)
            return False
        if not rows:
            log.warning("update of %s matched nothing: %s", self.table, dict(filters))
        return bool(rows)

    async def _delete(self, filters: Filters) -> bool:
        try:
            deleted = await self.backend.delete(self.table, filters)
        except BackendError as e:
            log.error("delete from %s failed: %s", self.table, e)
            return False
        return deleted > 0


def storefront_products(rows: List[Dict[str, Any]]) -> Tuple[Product, ...]:
    """Строки в товары витрины: премиальные скрыты"""
    return tuple(p for p in map(row_to_product, rows) if not p.is_premium)


class ProductService(TableService):
    """Товары; ключ - product_id"""

    table = "products"

    async def list_active(
        self, limit: int = ACTIVE_PRODUCTS_LIMIT
    ) -> Maybe[Tuple[Product, ...]]:
        """Активные товары витрины, новые первыми"""
        rows = await self._select({"is_active": True}, NEWEST_FIRST, limit)
        return rows.map(storefront_products)

    async def list_all(self) -> Maybe[Tuple[Product, ...]]:
        rows = await self._select(order_by=NEWEST_FIRST)
        return rows.map(lambda rs: tuple(map(row_to_product, rs)))

    async def list_new(self, limit: int = NEW_PRODUCTS_LIMIT) -> Maybe[Tuple[Product, ...]]:
        rows = await self._select({"is_new": True, "is_active": True}, NEWEST_FIRST, limit)
        return rows.map(storefront_products)

    async def list_by_category(
        self, category: str, limit: int = ACTIVE_PRODUCTS_LIMIT
    ) -> Maybe[Tuple[Product, ...]]:
        rows = await self._select(
            {"is_active": True, "category": category}, NEWEST_FIRST, limit
        )
        return rows.map(storefront_products)

    async def list_premium(self) -> Maybe[Tuple[Product, ...]]:
        """Активные премиальные товары, только для участников программы"""
        rows = await self._select({"is_active": True, "is_premium": True}, NEWEST_FIRST)
        return rows.map(lambda rs: tuple(map(row_to_product, rs)))

    async def popular(self, limit: int = 8) -> Maybe[Tuple[Product, ...]]:
        """Самые заказываемые активные товары"""
        products = await self.list_active()
        orders = await self._select(table=OrderService.table)
        if products.is_none() or orders.is_none():
            return Maybe.nothing()
        scores = popularity_scores(map(row_to_order, orders.value))
        ranked = sorted(products.value, key=lambda p: scores.get(p.id, 0), reverse=True)
        return Maybe.some(tuple(ranked[:limit]))

    async def get(self, product_id: str) -> Maybe[Product]:
        return (await self._first({"product_id": product_id})).map(row_to_product)

    async def create(self, payload: ProductCreate) -> Maybe[Product]:
        product_id = f"PROD-{uuid.uuid4().hex[:10].upper()}"
        row = await self._insert({"product_id": product_id, **payload.model_dump()})
        return row.map(row_to_product)

    async def update(self, product_id: str, payload: ProductUpdate) -> bool:
        changes = payload.model_dump(exclude_none=True)
        if not changes:
            log.warning("no changes for product %s", product_id)
            return False
        return await self._update({"product_id": product_id}, changes)

    async def set_active(self, product_id: str, active: bool) -> bool:
        return await self._update({"product_id": product_id}, {"is_active": active})

    async def delete(self, product_id: str) -> bool:
        return await self._delete({"product_id": product_id})


class CategoryService(TableService):
    table = "categories"

    async def list_all(self, active_only: bool = False) -> Maybe[Tuple[Category, ...]]:
        """Категории по sort_order, при равенстве - по имени; с числом активных товаров"""
        rows = await self._select(
            {"is_active": True} if active_only else None,
            (("sort_order", True), ("name", True)),
        )
        products = await self._select({"is_active": True}, table=ProductService.table)
        counts: Dict[str, int] = {}
        for row in products.get_or_else([]):
            counts[row.get("category")] = counts.get(row.get("category"), 0) + 1
        return rows.map(
            lambda rs: tuple(row_to_category(r, counts.get(r.get("name"), 0)) for r in rs)
        )

    async def find_by_name(self, name: str) -> Maybe[Category]:
        return (await self._first({"name": name.strip()})).map(row_to_category)

    async def create(self, payload: CategoryCreate) -> Maybe[Category]:
        row = await self._insert({**payload.model_dump(), "name": payload.name.strip()})
        return row.map(row_to_category)

    async def update(self, category_id: str, payload: CategoryUpdate) -> bool:
        changes = payload.model_dump(exclude_none=True)
        if "name" in changes:
            changes["name"] = changes["name"].strip()
        if not changes:
            return False
        return await self._update({"id": category_id}, changes)

    async def set_active(self, category_id: str, active: bool) -> bool:
        return await self._update({"id": category_id}, {"is_active": active})

    async def set_sort_order(self, category_id: str, sort_order: int) -> bool:
        return await self._update({"id": category_id}, {"sort_order": sort_order})

    async def delete(self, category_id: str) -> bool:
        return await self._delete({"id": category_id})


class OrderService(TableService):
    """Заказы; ключ - order_id"""

    table = "orders"

    async def create(self, payload: OrderCreate) -> Maybe[Order]:
        data = payload.model_dump()
        row = await self._insert({**data, "phone": digits_only(payload.user_info.phone)})
        return row.map(row_to_order)

    async def list_all(self) -> Maybe[Tuple[Order, ...]]:
        rows = await self._select(order_by=NEWEST_FIRST)
        return rows.map(lambda rs: tuple(map(row_to_order, rs)))

    async def list_for_phone(self, phone: str) -> Maybe[Tuple[Order, ...]]:
        rows = await self._select({"phone": digits_only(phone)}, NEWEST_FIRST)
        return rows.map(lambda rs: tuple(map(row_to_order, rs)))

    async def list_for_user(self, user_id: str) -> Maybe[Tuple[Order, ...]]:
        rows = await self._select({"user_id": user_id}, NEWEST_FIRST)
        return rows.map(lambda rs: tuple(map(row_to_order, rs)))

    async def get(self, order_id: str) -> Maybe[Order]:
        """Номер заказа сравнивается без пробелов по краям и в верхнем регистре"""
        return (await self._first({"order_id": order_id.strip().upper()})).map(row_to_order)

    async def update_status(self, order_id: str, status: str) -> bool:
        if status not in ORDER_STATUSES:
            log.error("unknown order status %r", status)
            return False
        return await self._update({"order_id": order_id}, {"status": status})

    async def delete(self, order_id: str) -> bool:
        return await self._delete({"order_id": order_id})


class PremiumService(TableService):
    table = "premium_requests"

    async def submit(self, payload: PremiumRequestCreate) -> Maybe[PremiumRequest]:
        row = await self._insert({**payload.model_dump(), "status": "pending"})
        return row.map(row_to_premium_request)

    async def list_all(self) -> Maybe[Tuple[PremiumRequest, ...]]:
        rows = await self._select(order_by=NEWEST_FIRST)
        return rows.map(lambda rs: tuple(map(row_to_premium_request, rs)))

    async def find_by_code(self, code: str) -> Maybe[PremiumRequest]:
        return (await self._first({"code": code})).map(row_to_premium_request)

    async def approve(self, request_id: str, code: str) -> bool:
        return await self._update(
            {"id": request_id}, {"status": "approved", "code": code, "code_used": False}
        )

    async def reject(self, request_id: str) -> bool:
        return await self._update({"id": request_id}, {"status": "rejected"})

    async def mark_code_used(self, request_id: str) -> bool:
        return await self._update({"id": request_id}, {"code_used": True})


class UserService(TableService):
    table = "users"

    """Покупатели; телефон хранится только цифрами"""

    async def find_by_phone(self, phone: str) -> Maybe[User]:
        return (await self._first({"phone": digits_only(phone)})).map(row_to_user)

    async def create(self, payload: UserCreate) -> Maybe[User]:
        row = {**payload.model_dump(), "phone": digits_only(payload.phone)}
        return (await self._insert(row)).map(row_to_user)

    async def upsert(self, payload: UserCreate) -> Maybe[User]:
        """Пользователь с тем же телефоном обновляется, иначе создаётся"""
        phone = digits_only(payload.phone)
        existing = await self.find_by_phone(phone)
        if existing.is_none():
            return await self.create(payload)
        changes = {**payload.model_dump(exclude_none=True), "phone": phone}
        if not await self._update({"phone": phone}, changes):
            return Maybe.nothing()
        return await self.find_by_phone(phone)


class AdminUserService(TableService):
    table = "admin_users"

    async def find_by_phone(self, phone: str) -> Maybe[Dict[str, Any]]:
        return await self._first({"phone_number": phone})
