import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple

from .domain import ALL_CATEGORIES, Product, ProductFilters
from .frp import Action, EventBus, Store
from .ftypes import Maybe
from .lazy import TYPEAHEAD_LIMIT, iter_search_matches, take
from .service import OrderService, ProductService
from .transforms import apply_filters, by_category, popularity_scores

log = logging.getLogger(__name__)

LOAD_ERROR = "Impossible de charger les produits. Veuillez réessayer."


@dataclass(frozen=True)
class CatalogState:
    products: Tuple[Product, ...] = ()
    new_products: Tuple[Product, ...] = ()
    premium_products: Tuple[Product, ...] = ()
    filters: ProductFilters = ProductFilters()
    popularity: Dict[str, int] = field(default_factory=dict)
    is_loading: bool = False
    error: Optional[str] = None


# ============ Обработчики ============


def handle_load_start(action: Action, state: CatalogState) -> CatalogState:
    return replace(state, is_loading=True, error=None)


def handle_load_failure(action: Action, state: CatalogState) -> CatalogState:
    # список товаров не трогаем
    return replace(state, is_loading=False, error=action.payload["error"])


def handle_products_loaded(action: Action, state: CatalogState) -> CatalogState:
    return replace(state, products=action.payload["products"], is_loading=False, error=None)


def handle_products_merged(action: Action, state: CatalogState) -> CatalogState:
    known = {p.id for p in state.products}
    extra = tuple(p for p in action.payload["products"] if p.id not in known)
    return replace(state, products=state.products + extra, is_loading=False, error=None)


def handle_new_loaded(action: Action, state: CatalogState) -> CatalogState:
    return replace(state, new_products=action.payload["products"])


def handle_premium_loaded(action: Action, state: CatalogState) -> CatalogState:
    return replace(state, premium_products=action.payload["products"])


def handle_popularity_loaded(action: Action, state: CatalogState) -> CatalogState:
    return replace(state, popularity=dict(action.payload["scores"]))


def handle_set_filters(action: Action, state: CatalogState) -> CatalogState:
    return replace(state, filters=replace(state.filters, **action.payload))


def handle_reset_filters(action: Action, state: CatalogState) -> CatalogState:
    return replace(state, filters=ProductFilters())


CATALOG_BUS = EventBus.of(
    {
        "LOAD_START": handle_load_start,
        "LOAD_FAILURE": handle_load_failure,
        "PRODUCTS_LOADED": handle_products_loaded,
        "PRODUCTS_MERGED": handle_products_merged,
        "NEW_PRODUCTS_LOADED": handle_new_loaded,
        "PREMIUM_LOADED": handle_premium_loaded,
        "POPULARITY_LOADED": handle_popularity_loaded,
        "SET_FILTERS": handle_set_filters,
        "RESET_FILTERS": handle_reset_filters,
    }
)


class ProductStore(Store[CatalogState]):
    """
    Каталог витрины: полный список активных товаров и производное
    отфильтрованное/отсортированное представление.
    """

    def __init__(self, products: ProductService, orders: Optional[OrderService] = None):
        super().__init__(CATALOG_BUS, CatalogState())
        self.service = products
        self.orders = orders

    # ---------- загрузка ----------

    async def _load(self, request, action: str = "PRODUCTS_LOADED") -> Maybe[Tuple[Product, ...]]:
        self.dispatch("LOAD_START")
        result = await request
        if result.is_none():
            log.error("product load failed")
            self.dispatch("LOAD_FAILURE", error=LOAD_ERROR)
        else:
            self.dispatch(action, products=result.value)
            log.info("loaded %d products", len(result.value))
        return result

    async def load_products(self) -> Maybe[Tuple[Product, ...]]:
        """Все активные товары; при ошибке - error, список не меняется"""
        return await self._load(self.service.list_active())

    async def load_new_products(self) -> Tuple[Product, ...]:
        products = (await self.service.list_new()).get_or_else(())
        self.dispatch("NEW_PRODUCTS_LOADED", products=products)
        return products

    async def load_premium_products(self, has_access: bool) -> Tuple[Product, ...]:
        """Премиальные товары загружаются только при действующем премиум-доступе"""
        if not has_access:
            self.dispatch("PREMIUM_LOADED", products=())
            return ()
        products = (await self.service.list_premium()).get_or_else(())
        self.dispatch("PREMIUM_LOADED", products=products)
        log.info("loaded %d premium products", len(products))
        return products

    async def load_popularity(self) -> Dict[str, int]:
        """Очки популярности для сортировки "popularity" """
        if self.orders is None:
            return self.state.popularity
        orders = (await self.orders.list_all()).get_or_else(())
        scores = popularity_scores(orders)
        self.dispatch("POPULARITY_LOADED", scores=scores)
        return scores

    # ---------- фильтры ----------

    async def filter_by_category(self, category: str) -> Tuple[Product, ...]:
        """
        "all" перезагружает полный список.
        Иначе фильтрует локально; если локально пусто - запрашивает backend.
        """
        self.dispatch("SET_FILTERS", category=category or ALL_CATEGORIES)
        if category in (None, "", ALL_CATEGORIES):
            await self.load_products()
            return self.filtered
        local = tuple(filter(by_category(category), self.state.products))
        if not local:
            await self._load(self.service.list_by_category(category), "PRODUCTS_MERGED")
        return self.filtered

    def set_filters(self, **changes) -> ProductFilters:
        return self.dispatch("SET_FILTERS", **changes).filters

    def clear_filters(self) -> ProductFilters:
        """Снимает фильтры, сохраняя выбранную сортировку"""
        current = self.state.filters
        return self.set_filters(
            **{
                **vars(ProductFilters()),
                "sort_by": current.sort_by,
                "sort_order": current.sort_order,
            }
        )

    def reset_filters(self) -> ProductFilters:
        return self.dispatch("RESET_FILTERS").filters

    # ---------- производные представления ----------

    @property
    def products(self) -> Tuple[Product, ...]:
        return self.state.products

    @property
    def filtered(self) -> Tuple[Product, ...]:
        return apply_filters(self.state.products, self.state.filters, self.state.popularity)

    @property
    def error(self) -> Optional[str]:
        return self.state.error

    def search_products(self, term: str, limit: Optional[int] = None) -> Tuple[Product, ...]:
        """
        Поиск по названию, категории и описанию без учёта регистра.
        Пустая строка возвращает весь список.
        """
        matches = iter_search_matches(self.state.products, term)
        return take(matches, limit) if limit is not None else tuple(matches)

    def typeahead(self, term: str) -> Tuple[Product, ...]:
        return self.search_products(term, TYPEAHEAD_LIMIT)

    def get_product_by_id(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.state.products if p.id == product_id), None)

    def available_sizes(self) -> Tuple[str, ...]:
        return tuple(sorted({s for p in self.filtered for s in p.sizes}))

    def available_colors(self) -> Tuple[str, ...]:
        return tuple(sorted({c for p in self.filtered for c in p.colors}))

    def available_categories(self) -> Tuple[str, ...]:
        return tuple(sorted({p.category for p in self.state.products}))

    def price_range(self) -> Tuple[int, int]:
        prices = [p.price for p in self.filtered]
        return (min(prices), max(prices)) if prices else (0, 0)
