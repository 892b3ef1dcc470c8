import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import pytest
from siggil.backend import MemoryBackend
from siggil.catalog import LOAD_ERROR, ProductStore
from siggil.domain import ALL_CATEGORIES, Product, ProductFilters
from siggil.service import OrderService, ProductService
from siggil.transforms import apply_filters, sort_products


def product_row(pid, name, category, price, created_at, **extra):
    return {
        "product_id": pid,
        "name": name,
        "category": category,
        "price": price,
        "stock": extra.pop("stock", 20),
        "sizes": extra.pop("sizes", ["M", "L"]),
        "colors": extra.pop("colors", ["noir"]),
        "is_active": extra.pop("is_active", True),
        "created_at": created_at,
        **extra,
    }


@pytest.fixture
def backend():
    return MemoryBackend(
        {
            "products": [
                product_row("P1", "T-shirt Noir", "T-shirts", 5000, "2025-01-01",
                            description="Coton bio"),
                product_row("P2", "Veste Denim", "Vestes", 25000, "2025-01-03",
                            sizes=["L", "XL"], colors=["bleu"], is_new=True),
                product_row("P3", "Air Street", "Chaussures", 15000, "2025-01-02",
                            sizes=["42"], colors=["blanc"]),
                product_row("P4", "Cargo", "Pantalons", 12000, "2025-01-04",
                            is_active=False),
                product_row("P5", "Edition Privée", "T-shirts", 40000, "2025-01-05",
                            is_premium=True),
            ],
            "orders": [
                {
                    "order_id": "SIGGIL-A",
                    "status": "paid",
                    "total": 30000,
                    "items": [{"product_id": "P3", "quantity": 2, "price": 15000}],
                },
                {
                    "order_id": "SIGGIL-B",
                    "status": "cancelled",
                    "total": 50000,
                    "items": [{"product_id": "P1", "quantity": 10, "price": 5000}],
                },
            ],
        }
    )


@pytest.fixture
def store(backend):
    return ProductStore(ProductService(backend), OrderService(backend))


@pytest.mark.asyncio
async def test_load_products_active_newest_first(store):
    """Только активные и не премиальные товары, новые первыми"""
    await store.load_products()

    assert [p.id for p in store.products] == ["P2", "P3", "P1"]
    assert store.error is None


@pytest.mark.asyncio
async def test_load_failure_keeps_list(store, backend):
    await store.load_products()
    backend.offline = True

    result = await store.load_products()

    assert result.is_none()
    assert store.error == LOAD_ERROR
    assert len(store.products) == 3
    assert store.state.is_loading is False


@pytest.mark.asyncio
async def test_all_category_equals_no_filter(store):
    await store.load_products()
    unfiltered = store.filtered

    result = await store.filter_by_category(ALL_CATEGORIES)

    assert set(p.id for p in result) == set(p.id for p in unfiltered)


@pytest.mark.asyncio
async def test_filter_by_category_local(store):
    await store.load_products()
    result = await store.filter_by_category("Vestes")

    assert [p.id for p in result] == ["P2"]


@pytest.mark.asyncio
async def test_filter_by_category_falls_back_to_backend(store, backend):
    """Пустой локальный результат -> запрос к backend'у"""
    await store.load_products()
    await backend.insert(
        "products",
        product_row("P9", "Bonnet", "Accessoires", 4000, "2024-12-01"),
    )

    result = await store.filter_by_category("Accessoires")

    assert [p.id for p in result] == ["P9"]
    assert len(store.products) == 4


@pytest.mark.asyncio
async def test_search_products(store):
    await store.load_products()

    assert store.search_products("") == store.products
    assert store.search_products("   ") == store.products
    assert store.search_products("zzz-no-match") == ()
    assert [p.id for p in store.search_products("DENIM")] == ["P2"]
    # по категории и по описанию
    assert [p.id for p in store.search_products("chaussures")] == ["P3"]
    assert [p.id for p in store.search_products("coton")] == ["P1"]


@pytest.mark.asyncio
async def test_typeahead_capped_at_eight(backend):
    for i in range(12):
        await backend.insert(
            "products", product_row(f"X{i}", f"Hoodie {i}", "Vestes", 9000, f"2025-02-{i + 1:02d}")
        )
    store = ProductStore(ProductService(backend))
    await store.load_products()

    assert len(store.typeahead("hoodie")) == 8
    assert len(store.search_products("hoodie")) == 12


@pytest.mark.asyncio
async def test_get_product_by_id(store):
    await store.load_products()

    assert store.get_product_by_id("P3").name == "Air Street"
    assert store.get_product_by_id("nope") is None


@pytest.mark.asyncio
async def test_sort_by_popularity(store):
    await store.load_products()
    await store.load_popularity()
    store.set_filters(sort_by="popularity", sort_order="desc")

    # отменённый заказ P1 не учитывается
    assert store.filtered[0].id == "P3"


@pytest.mark.asyncio
async def test_filters_reset_and_clear(store):
    await store.load_products()
    store.set_filters(category="Vestes", sort_by="price", sort_order="desc")

    store.clear_filters()
    assert store.state.filters.category == ALL_CATEGORIES
    assert store.state.filters.sort_by == "price"

    store.reset_filters()
    assert store.state.filters == ProductFilters()


@pytest.mark.asyncio
async def test_derived_facets(store):
    await store.load_products()

    assert store.available_categories() == ("Chaussures", "T-shirts", "Vestes")
    assert "XL" in store.available_sizes()
    assert store.price_range() == (5000, 25000)


@pytest.mark.asyncio
async def test_load_new_products(store):
    new = await store.load_new_products()
    assert [p.id for p in new] == ["P2"]


def make(pid, name, price, created):
    return Product(id=pid, name=name, category="T-shirts", price=price, stock=1,
                   sizes=("M",), colors=("noir",), created_at=created)


def test_sort_is_stable_both_directions():
    """Равные ключи сохраняют исходный порядок при любом направлении"""
    items = (make("a", "A", 100, "1"), make("b", "B", 100, "2"), make("c", "C", 50, "3"))

    asc = sort_products(items, "price", "asc")
    desc = sort_products(items, "price", "desc")

    assert [p.id for p in asc] == ["c", "a", "b"]
    assert [p.id for p in desc] == ["a", "b", "c"]
    assert [p.id for p in items] == ["a", "b", "c"]


def test_apply_filters_price_and_name_sort():
    items = (make("a", "zeta", 100, "1"), make("b", "Alpha", 300, "2"), make("c", "beta", 500, "3"))
    filters = ProductFilters(min_price=200, max_price=600)

    assert [p.id for p in apply_filters(items, filters)] == ["b", "c"]


@pytest.mark.asyncio
async def test_backend_fallback_hides_premium(backend):
    """Премиальные товары не попадают на витрину и через запрос по категории"""
    await backend.insert(
        "products",
        product_row("VIP", "Veste Signature", "Accessoires", 90000, "2025-01-06",
                    is_premium=True, is_new=True),
    )
    store = ProductStore(ProductService(backend))
    await store.load_products()

    assert await store.filter_by_category("Accessoires") == ()
    assert all(not p.is_premium for p in store.products)


@pytest.mark.asyncio
async def test_new_products_hide_premium(backend):
    await backend.insert(
        "products",
        product_row("VIP", "Veste Signature", "Vestes", 90000, "2025-01-06",
                    is_premium=True, is_new=True),
    )
    store = ProductStore(ProductService(backend))

    assert [p.id for p in await store.load_new_products()] == ["P2"]


@pytest.mark.asyncio
async def test_premium_products_require_access(store):
    assert await store.load_premium_products(False) == ()
    assert store.state.premium_products == ()

    premium = await store.load_premium_products(True)
    assert [p.id for p in premium] == ["P5"]
    assert store.state.premium_products == premium
    # закрытый каталог не смешивается с витриной
    await store.load_products()
    assert store.get_product_by_id("P5") is None
