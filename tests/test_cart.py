import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import json
import pytest
from siggil.cart import CartStore, CartState, merge_line, with_totals
from siggil.domain import CartLine
from siggil.storage import CART_KEY, MemoryStorage


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def cart(storage):
    return CartStore(storage)


@pytest.fixture
def tee():
    return CartLine(product_id="P1", name="T-shirt", price=5000, size="M", color="noir")


def test_add_same_variant_merges(cart, tee):
    """Одна и та же тройка (товар, размер, цвет) даёт одну строку"""
    cart.add_item(tee)
    cart.add_item(tee, 3)
    cart.add_item(tee, 2)

    assert len(cart.lines) == 1
    assert cart.lines[0].quantity == 6


def test_different_variants_stay_separate(cart, tee):
    cart.add_item(tee)
    cart.add_item(CartLine("P1", "T-shirt", 5000, "L", "noir"))
    cart.add_item(CartLine("P1", "T-shirt", 5000, "M", "blanc"))

    assert len(cart.lines) == 3
    assert cart.item_count == 3


def test_end_to_end_add_twice_then_remove(cart, tee):
    cart.add_item(tee)
    cart.add_item(tee)

    assert len(cart.lines) == 1
    assert cart.lines[0].quantity == 2
    assert cart.total == 10000

    cart.remove_item("P1", "M", "noir")

    assert cart.lines == ()
    assert cart.total == 0


def test_remove_only_exact_variant(cart, tee):
    """Удаление по полному ключу не трогает другие варианты товара"""
    cart.add_item(tee)
    cart.add_item(CartLine("P1", "T-shirt", 5000, "L", "noir"))

    cart.remove_item("P1", "M", "noir")

    assert [line.size for line in cart.lines] == ["L"]


def test_update_quantity_sets_exact_value(cart, tee):
    cart.add_item(tee, 4)
    cart.update_quantity("P1", "M", "noir", 2)

    assert cart.lines[0].quantity == 2
    assert cart.total == 10000


@pytest.mark.parametrize("qty", [0, -1, -10])
def test_update_quantity_non_positive_removes(cart, tee, qty):
    cart.add_item(tee)
    cart.update_quantity("P1", "M", "noir", qty)

    assert cart.lines == ()
    assert cart.item_count == 0


def test_total_never_stale(cart, tee):
    """total всегда равен сумме price * quantity"""
    cart.add_item(tee, 2)
    cart.add_item(CartLine("P2", "Casquette", 3000, "One Size", "noir"), 3)
    cart.update_quantity("P2", "One Size", "noir", 1)

    expected = sum(line.price * line.quantity for line in cart.lines)
    assert cart.total == expected == 13000
    assert cart.item_count == 3


def test_clear_cart(cart, tee):
    cart.add_item(tee, 5)
    state = cart.clear_cart()

    assert state == CartState()
    assert cart.lines == ()
    assert cart.total == 0
    assert cart.item_count == 0


def test_price_captured_at_add_time(cart, tee):
    """Цена строки не меняется при повторном добавлении с другой ценой"""
    cart.add_item(tee)
    cart.add_item(CartLine("P1", "T-shirt", 9999, "M", "noir"))

    assert cart.lines[0].price == 5000
    assert cart.total == 10000


def test_zero_quantity_add_ignored(cart, tee):
    cart.add_item(tee, 0)
    assert cart.lines == ()


def test_cart_persisted_and_restored(storage, cart, tee):
    cart.add_item(tee, 2)

    saved = json.loads(storage.get_raw(CART_KEY))
    assert saved[0]["product_id"] == "P1"
    assert saved[0]["quantity"] == 2

    restored = CartStore(storage)
    assert restored.lines == cart.lines
    assert restored.total == 10000


def test_corrupt_snapshot_discarded():
    storage = MemoryStorage({CART_KEY: "{not json"})
    cart = CartStore(storage)

    assert cart.lines == ()
    assert storage.get_raw(CART_KEY) is None


def test_merge_line_is_pure(tee):
    lines = (tee,)
    merged = merge_line(lines, tee, 2)

    assert lines[0].quantity == 1
    assert merged[0].quantity == 3
    assert with_totals(merged).total == 15000
