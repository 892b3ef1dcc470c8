import logging
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from .domain import Order, User
from .frp import Action, EventBus, Store
from .ftypes import Maybe
from .service import OrderService

log = logging.getLogger(__name__)

ORDERS_ERROR = "Impossible de charger vos commandes."
ORDER_NOT_FOUND_ERROR = "Aucune commande trouvée avec ce numéro."


@dataclass(frozen=True)
class OrderHistoryState:
    orders: Tuple[Order, ...] = ()
    tracked: Optional[Order] = None
    is_loading: bool = False
    error: Optional[str] = None


def handle_start(action: Action, state: OrderHistoryState) -> OrderHistoryState:
    return replace(state, is_loading=True, error=None)


def handle_orders_loaded(action: Action, state: OrderHistoryState) -> OrderHistoryState:
    return replace(state, orders=action.payload["orders"], is_loading=False)


def handle_tracked(action: Action, state: OrderHistoryState) -> OrderHistoryState:
    return replace(state, tracked=action.payload["order"], is_loading=False)


def handle_failure(action: Action, state: OrderHistoryState) -> OrderHistoryState:
    return replace(state, is_loading=False, error=action.payload["error"])


ORDERS_BUS = EventBus.of(
    {
        "ORDERS_START": handle_start,
        "ORDERS_LOADED": handle_orders_loaded,
        "ORDER_TRACKED": handle_tracked,
        "ORDERS_FAILURE": handle_failure,
    }
)


class OrderHistoryStore(Store[OrderHistoryState]):
    """Заказы покупателя и отслеживание заказа по номеру"""

    def __init__(self, orders: OrderService):
        super().__init__(ORDERS_BUS, OrderHistoryState())
        self.service = orders

    async def load_user_orders(self, user: User) -> Tuple[Order, ...]:
        """
        Заказы, привязанные к user_id или оформленные на его телефон,
        без повторов, новые первыми.
        """
        self.dispatch("ORDERS_START")
        by_phone = await self.service.list_for_phone(user.phone)
        by_user = (
            await self.service.list_for_user(user.id) if user.id else Maybe.some(())
        )
        if by_phone.is_none() or by_user.is_none():
            self.dispatch("ORDERS_FAILURE", error=ORDERS_ERROR)
            return self.state.orders

        unique = {o.id: o for o in by_user.value + by_phone.value}
        orders = tuple(sorted(unique.values(), key=lambda o: o.created_at or "", reverse=True))
        self.dispatch("ORDERS_LOADED", orders=orders)
        log.info("loaded %d orders for customer %s", len(orders), user.id)
        return orders

    async def track_order(self, order_id: str) -> Maybe[Order]:
        self.dispatch("ORDERS_START")
        found = await self.service.get(order_id)
        if found.is_none():
            self.dispatch("ORDERS_FAILURE", error=ORDER_NOT_FOUND_ERROR)
        else:
            self.dispatch("ORDER_TRACKED", order=found.value)
        return found
