import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import pytest
from siggil.backend import MemoryBackend
from siggil.domain import BuyerInfo, CartLine
from siggil.errors import PaymentError
from siggil.ftypes import Maybe
from siggil.payment import (
    NO_METHOD_ERROR,
    ORDER_FAILED_ERROR,
    TOTAL_MISMATCH_ERROR,
    PaymentStore,
    SettlementGateway,
    SimulatedSettlement,
)
from siggil.service import OrderService


class RecordingCreator:
    """Подмена сохранения заказа: запоминает вызовы"""

    def __init__(self, result="created"):
        self.calls = []
        self.result = result

    async def __call__(self, payload):
        self.calls.append(payload)
        return self.result


class RecordingGateway(SettlementGateway):
    def __init__(self):
        self.seen_states = []

    async def settle(self, method, amount, phone):
        self.seen_states.append((method, amount, phone))


@pytest.fixture
def buyer():
    return BuyerInfo(
        first_name="Awa", last_name="Diop", phone="771234567",
        address="Rue 10, Médina", city="Dakar",
    )


@pytest.fixture
def lines():
    return (CartLine("P1", "T-shirt", 5000, "M", "noir", quantity=2),)


def make_store(creator, gateway=None):
    return PaymentStore(creator, gateway or SimulatedSettlement(0))


@pytest.mark.asyncio
async def test_free_method_success_end_to_end(buyer, lines):
    creator = RecordingCreator()
    store = make_store(creator)
    store.select_payment_method("free")

    state = await store.process_payment(10000, "771234567", buyer, lines, buyer.address, "Dakar")

    assert state.status == "success"
    assert state.order_id and state.order_id.startswith("SIGGIL-")
    assert state.error is None
    assert len(creator.calls) == 1
    payload = creator.calls[0]
    assert payload.total == 10000
    assert payload.payment_method == "free"
    assert payload.order_id == state.order_id
    assert payload.user_info.phone == "771234567"
    assert payload.items[0].quantity == 2


@pytest.mark.asyncio
async def test_no_method_never_processes(buyer, lines):
    """Без выбранного способа оплаты в processing не переходим"""
    creator = RecordingCreator()
    gateway = RecordingGateway()
    store = make_store(creator, gateway)
    seen = []
    store.listen(lambda s: seen.append(s.status))

    state = await store.process_payment(10000, "771234567", buyer, lines, "adresse", "Dakar")

    assert state.status == "failed"
    assert state.error == NO_METHOD_ERROR
    assert "processing" not in seen
    assert gateway.seen_states == []
    assert creator.calls == []


@pytest.mark.asyncio
async def test_short_phone_fails_without_order(buyer, lines):
    creator = RecordingCreator()
    store = make_store(creator)
    store.select_payment_method("wave")

    state = await store.process_payment(10000, "77 12", buyer, lines, "adresse", "Dakar")

    assert state.status == "failed"
    assert state.error == PaymentError().message
    assert state.order_id is None
    assert creator.calls == []


@pytest.mark.parametrize("result", [None, Maybe.nothing()])
@pytest.mark.asyncio
async def test_empty_order_record_is_failure(buyer, lines, result):
    """Пустой ответ при записи заказа - отказ, даже если платёж прошёл"""
    creator = RecordingCreator(result)
    store = make_store(creator)
    store.select_payment_method("orange")

    state = await store.process_payment(10000, "771234567", buyer, lines, "adresse", "Dakar")

    assert state.status == "failed"
    assert state.error == ORDER_FAILED_ERROR
    assert len(creator.calls) == 1


@pytest.mark.asyncio
async def test_creator_exception_surfaces_message(buyer, lines):
    async def boom(payload):
        raise RuntimeError("réseau indisponible")

    store = make_store(boom)
    store.select_payment_method("free")

    state = await store.process_payment(10000, "771234567", buyer, lines, "adresse", "Dakar")

    assert state.status == "failed"
    assert state.error == "réseau indisponible"


@pytest.mark.asyncio
async def test_total_mismatch_rejected(buyer, lines):
    creator = RecordingCreator()
    store = make_store(creator)
    store.select_payment_method("free")

    state = await store.process_payment(9000, "771234567", buyer, lines, "adresse", "Dakar")

    assert state.status == "failed"
    assert state.error == TOTAL_MISMATCH_ERROR
    assert creator.calls == []


@pytest.mark.asyncio
async def test_order_written_to_backend(buyer, lines):
    backend = MemoryBackend()
    orders = OrderService(backend)
    store = make_store(orders.create)
    store.select_payment_method("free")

    state = await store.process_payment(10000, "771234567", buyer, lines, buyer.address, "Dakar")

    saved = (await orders.get(state.order_id)).get_or_else(None)
    assert saved is not None
    assert saved.total == 10000
    assert saved.status == "pending"
    assert saved.buyer.first_name == "Awa"


@pytest.mark.asyncio
async def test_offline_backend_fails_payment(buyer, lines):
    backend = MemoryBackend()
    backend.offline = True
    store = make_store(OrderService(backend).create)
    store.select_payment_method("free")

    state = await store.process_payment(10000, "771234567", buyer, lines, "adresse", "Dakar")

    assert state.status == "failed"


def test_select_method_clears_error_and_reset():
    store = make_store(RecordingCreator())
    store.dispatch("PAYMENT_REJECTED", error="x")

    state = store.select_payment_method("wave")
    assert state.error is None
    assert state.selected_method == "wave"

    assert store.reset_payment().status == "idle"
    assert store.state.selected_method is None


def test_select_method_refused_while_processing():
    store = make_store(RecordingCreator())
    store.select_payment_method("wave")
    store.dispatch("PAYMENT_START", order_id="SIGGIL-X")

    store.select_payment_method("orange")

    assert store.state.selected_method == "wave"
    assert store.state.status == "processing"


@pytest.mark.asyncio
async def test_success_hook_called(buyer, lines):
    seen = []

    async def hook(order_id):
        seen.append(order_id)

    store = PaymentStore(RecordingCreator(), SimulatedSettlement(0), on_success=hook)
    store.select_payment_method("free")
    state = await store.process_payment(10000, "771234567", buyer, lines, "adresse", "Dakar")

    assert seen == [state.order_id]


@pytest.mark.asyncio
async def test_failing_hook_keeps_success(buyer, lines):
    """Ошибка хука после записи заказа не выходит наружу"""

    async def hook(order_id):
        raise RuntimeError("premium backend down")

    creator = RecordingCreator()
    store = PaymentStore(creator, SimulatedSettlement(0), on_success=hook)
    store.select_payment_method("free")
    state = await store.process_payment(10000, "771234567", buyer, lines, "adresse", "Dakar")

    assert state.status == "success"
    assert state.error is None
    assert len(creator.calls) == 1
