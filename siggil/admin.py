import logging
import secrets
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Optional, Tuple

from passlib.context import CryptContext

from Backoffice_Service.report import dashboard_stats

from .domain import (
    ORDER_STATUSES,
    AdminSession,
    Category,
    Order,
    PremiumRequest,
    Product,
)
from .errors import AuthError
from .frp import Action, EventBus, Store
from .ftypes import Either, Maybe
from .schemas import CategoryCreate, CategoryUpdate, ProductCreate, ProductUpdate
from .service import (
    AdminUserService,
    CategoryService,
    OrderService,
    PremiumService,
    ProductService,
)
from .storage import ADMIN_KEY, PREMIUM_REQUESTS_KEY, KeyValueStorage
from .transforms import premium_request_from_snapshot, snapshot
from .validation import digits_only, validate_product, validate_product_update

log = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

ACCESS_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ACCESS_CODE_LENGTH = 8
ACCESS_CODE_ATTEMPTS = 10

DUPLICATE_CATEGORY_ERROR = "Une catégorie avec ce nom existe déjà."
SAVE_ERROR = "L'enregistrement a échoué. Veuillez réessayer."
LOAD_ERROR = "Impossible de charger les données."
CODE_ERROR = "Impossible de générer un code d'accès unique."


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def generate_access_code() -> str:
    body = "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(ACCESS_CODE_LENGTH))
    return f"SIGGIL-{body}"


@dataclass(frozen=True)
class AdminState:
    session: Optional[AdminSession] = None
    orders: Tuple[Order, ...] = ()
    products: Tuple[Product, ...] = ()
    categories: Tuple[Category, ...] = ()
    premium_requests: Tuple[PremiumRequest, ...] = ()
    stats: Dict = field(default_factory=dict)
    is_loading: bool = False
    error: Optional[str] = None


# ============ Обработчики ============


def handle_login(action: Action, state: AdminState) -> AdminState:
    return replace(state, session=action.payload["session"], error=None)


def handle_logout(action: Action, state: AdminState) -> AdminState:
    return AdminState()


def handle_loading(action: Action, state: AdminState) -> AdminState:
    return replace(state, is_loading=True, error=None)


def handle_loaded(action: Action, state: AdminState) -> AdminState:
    """payload: {orders | products | categories | premium_requests: tuple}"""
    return replace(state, is_loading=False, **action.payload)


def handle_error(action: Action, state: AdminState) -> AdminState:
    return replace(state, is_loading=False, error=action.payload["error"])


def handle_stats(action: Action, state: AdminState) -> AdminState:
    return replace(state, stats=action.payload["stats"])


ADMIN_BUS = EventBus.of(
    {
        "ADMIN_LOGIN": handle_login,
        "ADMIN_LOGOUT": handle_logout,
        "ADMIN_LOADING": handle_loading,
        "ADMIN_LOADED": handle_loaded,
        "ADMIN_ERROR": handle_error,
        "STATS_UPDATED": handle_stats,
    }
)


class AdminStore(Store[AdminState]):
    """
    Back-office. Каждая запись на backend сопровождается полной
    перезагрузкой затронутого списка, локально ничего не патчится.
    """

    def __init__(
        self,
        admins: AdminUserService,
        orders: OrderService,
        products: ProductService,
        categories: CategoryService,
        premium: PremiumService,
        storage: KeyValueStorage,
    ):
        super().__init__(ADMIN_BUS, AdminState())
        self.admins = admins
        self.orders = orders
        self.products = products
        self.categories = categories
        self.premium = premium
        self.storage = storage
        self._restore_session()
        self.listen(self._persist_session)

    # ---------- сессия ----------

    def _restore_session(self) -> None:
        saved = self.storage.load(ADMIN_KEY)
        if isinstance(saved, dict) and saved.get("is_authenticated"):
            session = AdminSession(
                username=saved.get("username", ""),
                is_authenticated=True,
                session_timestamp=saved.get("session_timestamp", ""),
            )
            self.dispatch("ADMIN_LOGIN", session=session)

    def _persist_session(self, state: AdminState) -> None:
        if state.session is None:
            self.storage.remove(ADMIN_KEY)
        else:
            self.storage.save(ADMIN_KEY, snapshot(state.session))

    @property
    def is_authenticated(self) -> bool:
        return self.state.session is not None and self.state.session.is_authenticated

    async def _authenticate(self, phone: str, password: str) -> AdminSession:
        digits = digits_only(phone)
        row = (await self.admins.find_by_phone(digits)).get_or_else(None)
        if row is None or not verify_password(password, row.get("password_hash")):
            raise AuthError()
        return AdminSession(
            username=row.get("username") or digits,
            is_authenticated=True,
            session_timestamp=datetime.now(timezone.utc).isoformat(),
        )

    async def admin_login(self, phone: str, password: str) -> Either:
        try:
            session = await self._authenticate(phone, password)
        except AuthError as e:
            self.dispatch("ADMIN_ERROR", error=e.message)
            return Either.left((e.message,))
        self.dispatch("ADMIN_LOGIN", session=session)
        log.info("admin %s logged in", session.username)
        return Either.right(session)

    def admin_logout(self) -> AdminState:
        return self.dispatch("ADMIN_LOGOUT")

    # ---------- общие загрузки ----------

    async def _reload(self, name: str, request) -> Maybe[tuple]:
        self.dispatch("ADMIN_LOADING")
        result = await request
        if result.is_none():
            self.dispatch("ADMIN_ERROR", error=LOAD_ERROR)
        else:
            self.dispatch("ADMIN_LOADED", **{name: result.value})
            log.debug("admin reloaded %d %s", len(result.value), name)
        return result

    async def _after_write(self, ok: bool, reload) -> bool:
        if not ok:
            self.dispatch("ADMIN_ERROR", error=SAVE_ERROR)
            return False
        await reload()
        return True

    # ---------- заказы ----------

    async def load_orders(self) -> Tuple[Order, ...]:
        return (await self._reload("orders", self.orders.list_all())).get_or_else(())

    async def update_order_status(self, order_id: str, status: str) -> bool:
        if status not in ORDER_STATUSES:
            self.dispatch("ADMIN_ERROR", error=f"Statut invalide: {status}")
            return False
        ok = await self.orders.update_status(order_id, status)
        return await self._after_write(ok, self.load_orders)

    async def delete_order(self, order_id: str) -> bool:
        return await self._after_write(await self.orders.delete(order_id), self.load_orders)

    # ---------- премиум-заявки ----------

    async def load_premium_requests(self) -> Tuple[PremiumRequest, ...]:
        """Снимок кэшируется; при недоступном backend'е берётся кэш"""
        fetched = await self.premium.list_all()
        if fetched.is_some():
            requests = fetched.value
            self.storage.save(PREMIUM_REQUESTS_KEY, [snapshot(r) for r in requests])
        else:
            cached = self.storage.load(PREMIUM_REQUESTS_KEY, [])
            requests = tuple(premium_request_from_snapshot(r) for r in cached)
            log.warning("premium requests served from cache (%d)", len(requests))
        self.dispatch("ADMIN_LOADED", premium_requests=requests)
        return requests

    async def _unique_code(self) -> Optional[str]:
        for _ in range(ACCESS_CODE_ATTEMPTS):
            code = generate_access_code()
            if (await self.premium.find_by_code(code)).is_none():
                return code
        return None

    async def approve_premium_request(self, request_id: str) -> Maybe[str]:
        code = await self._unique_code()
        if code is None:
            self.dispatch("ADMIN_ERROR", error=CODE_ERROR)
            return Maybe.nothing()
        ok = await self.premium.approve(request_id, code)
        if not await self._after_write(ok, self.load_premium_requests):
            return Maybe.nothing()
        log.info("premium request %s approved", request_id)
        return Maybe.some(code)

    async def reject_premium_request(self, request_id: str) -> bool:
        ok = await self.premium.reject(request_id)
        return await self._after_write(ok, self.load_premium_requests)

    # ---------- товары ----------

    async def load_products(self) -> Tuple[Product, ...]:
        return (await self._reload("products", self.products.list_all())).get_or_else(())

    def _category_names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.state.categories)

    async def add_product(self, payload: ProductCreate) -> Either:
        checked = validate_product(payload, self._category_names())
        if checked.is_left:
            self.dispatch("ADMIN_ERROR", error=", ".join(checked.value))
            return checked
        created = await self.products.create(payload)
        await self._after_write(created.is_some(), self.load_products)
        return created.to_either((SAVE_ERROR,))

    async def update_product(self, product_id: str, payload: ProductUpdate) -> bool:
        checked = validate_product_update(payload, self._category_names())
        if checked.is_left:
            self.dispatch("ADMIN_ERROR", error=", ".join(checked.value))
            return False
        ok = await self.products.update(product_id, payload)
        return await self._after_write(ok, self.load_products)

    async def delete_product(self, product_id: str) -> bool:
        ok = await self.products.delete(product_id)
        return await self._after_write(ok, self.load_products)

    async def toggle_product_active(self, product_id: str) -> bool:
        current = (await self.products.get(product_id)).get_or_else(None)
        if current is None:
            self.dispatch("ADMIN_ERROR", error=SAVE_ERROR)
            return False
        ok = await self.products.set_active(product_id, not current.is_active)
        return await self._after_write(ok, self.load_products)

    # ---------- категории ----------

    async def load_categories(self) -> Tuple[Category, ...]:
        return (await self._reload("categories", self.categories.list_all())).get_or_else(())

    async def _name_taken(self, name: str, exclude_id: Optional[str] = None) -> bool:
        found = await self.categories.find_by_name(name)
        return found.is_some() and found.value.id != exclude_id

    async def create_category(self, payload: CategoryCreate) -> Either:
        if await self._name_taken(payload.name):
            self.dispatch("ADMIN_ERROR", error=DUPLICATE_CATEGORY_ERROR)
            return Either.left((DUPLICATE_CATEGORY_ERROR,))
        created = await self.categories.create(payload)
        await self._after_write(created.is_some(), self.load_categories)
        return created.to_either((SAVE_ERROR,))

    async def update_category(self, category_id: str, payload: CategoryUpdate) -> Either:
        if payload.name is not None and await self._name_taken(payload.name, category_id):
            self.dispatch("ADMIN_ERROR", error=DUPLICATE_CATEGORY_ERROR)
            return Either.left((DUPLICATE_CATEGORY_ERROR,))
        ok = await self.categories.update(category_id, payload)
        if not await self._after_write(ok, self.load_categories):
            return Either.left((SAVE_ERROR,))
        return Either.right(category_id)

    async def delete_category(self, category_id: str) -> bool:
        ok = await self.categories.delete(category_id)
        return await self._after_write(ok, self.load_categories)

    async def toggle_category_active(self, category_id: str) -> bool:
        current = next((c for c in self.state.categories if c.id == category_id), None)
        if current is None:
            await self.load_categories()
            current = next((c for c in self.state.categories if c.id == category_id), None)
        if current is None:
            self.dispatch("ADMIN_ERROR", error=SAVE_ERROR)
            return False
        ok = await self.categories.set_active(category_id, not current.is_active)
        return await self._after_write(ok, self.load_categories)

    async def reorder_category(self, category_id: str, sort_order: int) -> bool:
        ok = await self.categories.set_sort_order(category_id, sort_order)
        return await self._after_write(ok, self.load_categories)

    # ---------- статистика ----------

    def update_stats(self) -> dict:
        """Пересчёт агрегатов по загруженным заказам и товарам"""
        stats = dashboard_stats(self.state.orders, self.state.products)
        self.dispatch("STATS_UPDATED", stats=stats)
        return stats
