import logging
from dataclasses import dataclass, replace
from functools import reduce
from typing import Tuple

from .domain import CartLine
from .frp import Action, EventBus, Store
from .storage import CART_KEY, KeyValueStorage
from .transforms import cart_line_from_snapshot, snapshot

log = logging.getLogger(__name__)

LineKey = Tuple[str, str, str]  # (product_id, size, color)


@dataclass(frozen=True)
class CartState:
    lines: Tuple[CartLine, ...] = ()
    total: int = 0
    item_count: int = 0


# ============ Чистые функции корзины ============


def with_totals(lines: Tuple[CartLine, ...]) -> CartState:
    """Пересчитывает total и item_count по строкам"""
    total = reduce(lambda acc, line: acc + line.subtotal, lines, 0)
    count = reduce(lambda acc, line: acc + line.quantity, lines, 0)
    return CartState(lines=lines, total=total, item_count=count)


def merge_line(lines: Tuple[CartLine, ...], line: CartLine, quantity: int) -> Tuple[CartLine, ...]:
    """Та же тройка (товар, размер, цвет) увеличивает количество, иначе новая строка"""
    if any(existing.key == line.key for existing in lines):
        return tuple(
            replace(existing, quantity=existing.quantity + quantity)
            if existing.key == line.key
            else existing
            for existing in lines
        )
    return lines + (replace(line, quantity=quantity),)


# ============ Обработчики ============


def handle_hydrate(action: Action, state: CartState) -> CartState:
    return with_totals(tuple(action.payload["lines"]))


def handle_add_item(action: Action, state: CartState) -> CartState:
    return with_totals(
        merge_line(state.lines, action.payload["line"], action.payload["quantity"])
    )


def handle_remove_item(action: Action, state: CartState) -> CartState:
    key = action.payload["key"]
    return with_totals(tuple(line for line in state.lines if line.key != key))


def handle_update_quantity(action: Action, state: CartState) -> CartState:
    key, quantity = action.payload["key"], action.payload["quantity"]
    if quantity <= 0:
        return handle_remove_item(action, state)
    return with_totals(
        tuple(
            replace(line, quantity=quantity) if line.key == key else line
            for line in state.lines
        )
    )


def handle_clear(action: Action, state: CartState) -> CartState:
    return CartState()


CART_BUS = EventBus.of(
    {
        "HYDRATE": handle_hydrate,
        "ADD_ITEM": handle_add_item,
        "REMOVE_ITEM": handle_remove_item,
        "UPDATE_QUANTITY": handle_update_quantity,
        "CLEAR_CART": handle_clear,
    }
)


class CartStore(Store[CartState]):
    """
    Корзина сессии. Ключ строки - (product_id, size, color).
    Каждое изменение сохраняется в локальное хранилище целиком.
    """

    def __init__(self, storage: KeyValueStorage):
        super().__init__(CART_BUS, CartState())
        self.storage = storage
        self._restore()
        self.listen(self._persist)

    def _restore(self) -> None:
        raw = self.storage.load(CART_KEY, [])
        try:
            lines = tuple(cart_line_from_snapshot(item) for item in raw)
        except (KeyError, TypeError, ValueError) as e:
            log.error("cart snapshot unreadable, starting empty: %s", e)
            self.storage.remove(CART_KEY)
            lines = ()
        self.dispatch("HYDRATE", lines=lines)
        log.debug("cart restored with %d lines", len(lines))

    def _persist(self, state: CartState) -> None:
        self.storage.save(CART_KEY, [snapshot(line) for line in state.lines])

    def add_item(self, line: CartLine, quantity: int = 1) -> CartState:
        if quantity <= 0:
            log.warning("ignoring add of %s with quantity %d", line.product_id, quantity)
            return self.state
        return self.dispatch("ADD_ITEM", line=line, quantity=quantity)

    def remove_item(self, product_id: str, size: str, color: str) -> CartState:
        return self.dispatch("REMOVE_ITEM", key=(product_id, size, color))

    def update_quantity(self, product_id: str, size: str, color: str, quantity: int) -> CartState:
        return self.dispatch(
            "UPDATE_QUANTITY", key=(product_id, size, color), quantity=quantity
        )

    def clear_cart(self) -> CartState:
        return self.dispatch("CLEAR_CART")

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return self.state.lines

    @property
    def total(self) -> int:
        return self.state.total

    @property
    def item_count(self) -> int:
        return self.state.item_count
