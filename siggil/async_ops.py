import asyncio
import logging
from typing import Awaitable, Dict, Tuple, TypeVar

from Backoffice_Service.report import comprehensive_report

from .domain import Category, Product
from .ftypes import Maybe
from .service import CategoryService, ProductService

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 10.0
FEATURED_LIMIT = 8


# ============ Данные витрины на случай недоступного backend'а ============

SAMPLE_CATEGORIES: Tuple[Category, ...] = (
    Category(id="1", name="Vêtements", color="#3B82F6", sort_order=1),
    Category(id="2", name="Chaussures", color="#10B981", sort_order=2),
    Category(id="3", name="Accessoires", color="#F59E0B", sort_order=3),
    Category(id="4", name="Sport", color="#EF4444", sort_order=4),
    Category(id="5", name="Électronique", color="#8B5CF6", sort_order=5),
    Category(id="6", name="Maison", color="#06B6D4", sort_order=6),
)

SAMPLE_PRODUCTS: Tuple[Product, ...] = (
    Product(
        id="prod1", name="T-shirt SIGGIL Premium", category="Vêtements",
        price=5000, original_price=6000, stock=10, sizes=("S", "M", "L"),
        colors=("noir", "blanc"), is_new=True,
    ),
    Product(
        id="prod2", name="Casquette SIGGIL", category="Accessoires",
        price=3000, stock=20, sizes=("One Size",), colors=("noir",),
    ),
    Product(
        id="prod3", name="Sneakers SIGGIL Sport", category="Chaussures",
        price=15000, original_price=18000, stock=8, sizes=("M", "L"),
        colors=("blanc",), is_new=True,
    ),
    Product(
        id="prod4", name="Sac SIGGIL Urban", category="Accessoires",
        price=8000, stock=15, sizes=("One Size",), colors=("noir", "gris"),
    ),
)


# ============ Гонка с таймаутом ============


async def race_with_fallback(
    request: Awaitable[Maybe[T]], fallback: T, timeout: float = DEFAULT_TIMEOUT
) -> Tuple[T, bool]:
    """
    Ждёт запрос не дольше timeout секунд.
    Таймаут или пустой результат -> (fallback, True), иначе (value, False)
    """
    try:
        result = await asyncio.wait_for(request, timeout)
    except asyncio.TimeoutError:
        log.warning("request timed out after %.1fs, using sample data", timeout)
        return fallback, True
    if result.is_none():
        log.warning("request failed, using sample data")
        return fallback, True
    return result.value, False


async def load_home_categories(
    categories: CategoryService, timeout: float = DEFAULT_TIMEOUT
) -> Tuple[Tuple[Category, ...], bool]:
    """Активные категории главной страницы"""
    return await race_with_fallback(
        categories.list_all(active_only=True), SAMPLE_CATEGORIES, timeout
    )


async def load_featured_products(
    products: ProductService, timeout: float = DEFAULT_TIMEOUT
) -> Tuple[Tuple[Product, ...], bool]:
    """Популярные товары главной страницы"""
    return await race_with_fallback(
        products.popular(FEATURED_LIMIT), SAMPLE_PRODUCTS, timeout
    )


# ============ Параллельная загрузка back-office ============


async def refresh_admin_dashboard(admin) -> Dict:
    """
    Загружает заказы, товары, категории и премиум-заявки параллельно,
    затем пересчитывает статистику
    """
    orders, products, categories, _ = await asyncio.gather(
        admin.load_orders(),
        admin.load_products(),
        admin.load_categories(),
        admin.load_premium_requests(),
    )
    stats = admin.update_stats()
    log.info(
        "dashboard refreshed: %d orders, %d products", len(orders), len(products)
    )
    return {
        **comprehensive_report(orders, products, categories),
        "dashboard": stats,
    }


# ============ Синхронная обёртка для UI ============


def run_sync(coro: Awaitable[T]) -> T:
    """Синхронная обёртка для использования в Streamlit"""
    return asyncio.run(coro)
