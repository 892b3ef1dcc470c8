import logging
from typing import Optional

from .admin import AdminStore
from .auth import AuthStore
from .backend import TableBackend, create_backend
from .cart import CartStore
from .catalog import ProductStore
from .config import Settings, setup_logging
from .favorites import FavoritesStore
from .orders import OrderHistoryStore
from .payment import PaymentStore, SettlementGateway, SimulatedSettlement
from .premium import PremiumAccessStore
from .service import (
    AdminUserService,
    CategoryService,
    OrderService,
    PremiumService,
    ProductService,
    UserService,
)
from .storage import JsonFileStorage, KeyValueStorage

log = logging.getLogger(__name__)


class ShopSession:
    """
    Состояние одной сессии магазина: все хранилища, связанные с одним
    backend'ом и одним локальным хранилищем. Создаётся явно и закрывается close().
    """

    def __init__(
        self,
        backend: TableBackend,
        storage: KeyValueStorage,
        gateway: Optional[SettlementGateway] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or Settings()
        self.backend = backend
        self.storage = storage

        self.product_service = ProductService(backend)
        self.category_service = CategoryService(backend)
        self.order_service = OrderService(backend)
        self.premium_service = PremiumService(backend)
        self.user_service = UserService(backend)
        self.admin_user_service = AdminUserService(backend)

        self.cart = CartStore(storage)
        self.favorites = FavoritesStore(storage)
        self.catalog = ProductStore(self.product_service, self.order_service)
        self.orders = OrderHistoryStore(self.order_service)
        self.auth = AuthStore(self.user_service, storage)
        self.premium = PremiumAccessStore(self.premium_service, storage)
        self.payment = PaymentStore(
            self.order_service.create,
            gateway or SimulatedSettlement(self.settings.payment_delay),
            on_success=self.premium.consume_access,
        )
        self.admin = AdminStore(
            self.admin_user_service,
            self.order_service,
            self.product_service,
            self.category_service,
            self.premium_service,
            storage,
        )

    def close(self) -> None:
        self.backend.close()
        log.info("session closed")


def open_session(settings: Optional[Settings] = None) -> ShopSession:
    """Собирает сессию из переменных окружения"""
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)
    return ShopSession(
        backend=create_backend(settings),
        storage=JsonFileStorage(settings.storage_dir),
        settings=settings,
    )
