import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import pytest
from siggil.backend import MemoryBackend
from siggil.domain import User
from siggil.orders import ORDER_NOT_FOUND_ERROR, ORDERS_ERROR, OrderHistoryStore
from siggil.schemas import BuyerInfoPayload, OrderCreate, OrderLinePayload
from siggil.service import OrderService


def order_row(order_id, phone, created_at, user_id=None, status="pending"):
    return {
        "order_id": order_id,
        "user_id": user_id,
        "phone": phone,
        "user_info": {"first_name": "Awa", "last_name": "Diop", "phone": phone},
        "total": 10000,
        "status": status,
        "created_at": created_at,
    }


@pytest.fixture
def backend():
    return MemoryBackend(
        {
            "orders": [
                order_row("SIGGIL-A", "771234567", "2025-01-01"),
                order_row("SIGGIL-B", "700000000", "2025-01-03", user_id="U1"),
                order_row("SIGGIL-C", "771234567", "2025-01-02", user_id="U1",
                          status="shipped"),
                order_row("SIGGIL-D", "760000000", "2025-01-04"),
            ]
        }
    )


@pytest.fixture
def history(backend):
    return OrderHistoryStore(OrderService(backend))


@pytest.fixture
def user():
    return User(id="U1", first_name="Awa", last_name="Diop", phone="77 123 45 67")


@pytest.mark.asyncio
async def test_user_orders_by_id_or_phone(history, user):
    """Заказы по user_id и по телефону, без повторов, новые первыми"""
    orders = await history.load_user_orders(user)

    assert [o.id for o in orders] == ["SIGGIL-B", "SIGGIL-C", "SIGGIL-A"]
    assert history.state.orders == orders
    assert history.state.error is None


@pytest.mark.asyncio
async def test_user_orders_offline_keeps_list(history, backend, user):
    await history.load_user_orders(user)
    backend.offline = True

    await history.load_user_orders(user)

    assert history.state.error == ORDERS_ERROR
    assert len(history.state.orders) == 3
    assert history.state.is_loading is False


@pytest.mark.asyncio
async def test_track_order(history):
    found = await history.track_order("  siggil-c ")

    assert found.is_some()
    assert history.state.tracked.status == "shipped"

    missing = await history.track_order("SIGGIL-NOPE")
    assert missing.is_none()
    assert history.state.error == ORDER_NOT_FOUND_ERROR


@pytest.mark.asyncio
async def test_placed_order_is_found_by_formatted_phone(backend, user):
    await OrderService(backend).create(
        OrderCreate(
            order_id="SIGGIL-E",
            user_info=BuyerInfoPayload(
                first_name="Awa", last_name="Diop", phone="+221 77 123 45 67",
                address="Rue 10, Médina",
            ),
            items=[OrderLinePayload(product_id="P1", name="T-shirt", price=5000,
                                    quantity=2, size="M", color="noir")],
            total=10000,
            payment_method="free",
            city="Dakar",
            address="Rue 10, Médina",
        )
    )

    mine = await OrderService(backend).list_for_phone("221771234567")
    assert [o.id for o in mine.value] == ["SIGGIL-E"]
