import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import asyncio
import pytest
from siggil.async_ops import (
    SAMPLE_CATEGORIES,
    SAMPLE_PRODUCTS,
    load_featured_products,
    load_home_categories,
    race_with_fallback,
    refresh_admin_dashboard,
)
from siggil.backend import MemoryBackend
from siggil.ftypes import Maybe
from siggil.service import CategoryService, ProductService
from siggil.session import ShopSession
from siggil.storage import MemoryStorage


async def slow(value, delay):
    await asyncio.sleep(delay)
    return Maybe.some(value)


@pytest.mark.asyncio
async def test_race_returns_real_value():
    value, fallback = await race_with_fallback(slow("real", 0), "sample", timeout=1)
    assert (value, fallback) == ("real", False)


@pytest.mark.asyncio
async def test_race_timeout_uses_fallback():
    """Запрос дольше таймаута -> данные по умолчанию"""
    value, fallback = await race_with_fallback(slow("real", 1), "sample", timeout=0.01)
    assert (value, fallback) == ("sample", True)


@pytest.mark.asyncio
async def test_home_categories_offline_fallback():
    backend = MemoryBackend()
    backend.offline = True

    categories, fallback = await load_home_categories(CategoryService(backend), timeout=1)

    assert fallback
    assert categories == SAMPLE_CATEGORIES


@pytest.mark.asyncio
async def test_home_data_from_backend():
    backend = MemoryBackend(
        {
            "categories": [{"name": "Vestes", "is_active": True}],
            "products": [{"product_id": "P1", "name": "Veste", "category": "Vestes",
                          "price": 1000, "is_active": True}],
        }
    )

    categories, cat_fallback = await load_home_categories(CategoryService(backend), 1)
    products, prod_fallback = await load_featured_products(ProductService(backend), 1)

    assert not cat_fallback and not prod_fallback
    assert [c.name for c in categories] == ["Vestes"]
    assert categories[0].product_count == 1
    assert [p.id for p in products] == ["P1"]
    assert products != SAMPLE_PRODUCTS


@pytest.mark.asyncio
async def test_refresh_admin_dashboard():
    backend = MemoryBackend(
        {
            "orders": [{"order_id": "SIGGIL-1", "total": 500, "status": "delivered",
                        "user_info": {"phone": "771"}}],
            "products": [{"product_id": "P1", "name": "Veste", "category": "Vestes",
                          "price": 500, "stock": 2, "is_active": True}],
            "categories": [{"name": "Vestes", "is_active": True}],
        }
    )
    session = ShopSession(backend, MemoryStorage())

    report = await refresh_admin_dashboard(session.admin)

    assert report["dashboard"]["total_revenue"] == 500
    assert report["dashboard"]["low_stock_products"] == 1
    assert report["categories"][0]["product_count"] == 1
    assert session.admin.state.stats == report["dashboard"]
