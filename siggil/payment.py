import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from functools import reduce
from typing import Awaitable, Callable, Optional, Sequence

from .domain import PAYMENT_METHODS, BuyerInfo, CartLine
from .errors import PaymentError, ValidationError
from .frp import Action, EventBus, Store
from .ftypes import Maybe
from .schemas import BuyerInfoPayload, OrderCreate, OrderLinePayload
from .transforms import order_line_from_cart, snapshot
from .validation import digits_only

log = logging.getLogger(__name__)

NO_METHOD_ERROR = "Veuillez sélectionner un moyen de paiement."
TOTAL_MISMATCH_ERROR = "Le montant ne correspond pas au contenu du panier."
EMPTY_CART_ERROR = "Votre panier est vide."
ORDER_FAILED_ERROR = "La commande n'a pas pu être enregistrée. Veuillez réessayer."

OrderCreator = Callable[[OrderCreate], Awaitable]


def new_order_id() -> str:
    return f"SIGGIL-{uuid.uuid4().hex[:16].upper()}"


# ============ Шлюзы оплаты ============


class SettlementGateway(ABC):
    """Проведение платежа; отказ - PaymentError"""

    @abstractmethod
    async def settle(self, method: str, amount: int, phone: str) -> None: ...


class SimulatedSettlement(SettlementGateway):
    """Имитация: платёж проходит, если в номере не меньше 8 цифр"""

    def __init__(self, delay: float = 0.0):
        self.delay = delay

    async def settle(self, method: str, amount: int, phone: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if len(digits_only(phone)) < 8:
            raise PaymentError()


# ============ Состояние ============


@dataclass(frozen=True)
class PaymentState:
    selected_method: Optional[str] = None
    is_loading: bool = False
    error: Optional[str] = None
    status: str = "idle"  # см. PAYMENT_STATUSES
    order_id: Optional[str] = None


def handle_select(action: Action, state: PaymentState) -> PaymentState:
    if state.status == "processing":
        return state
    return replace(state, selected_method=action.payload["method"], error=None)


def handle_rejected(action: Action, state: PaymentState) -> PaymentState:
    """Отказ до начала обработки: в processing не переходим"""
    return replace(state, error=action.payload["error"], status="failed", is_loading=False)


def handle_start(action: Action, state: PaymentState) -> PaymentState:
    return replace(
        state,
        status="processing",
        is_loading=True,
        error=None,
        order_id=action.payload["order_id"],
    )


def handle_success(action: Action, state: PaymentState) -> PaymentState:
    return replace(state, status="success", is_loading=False, error=None)


def handle_failure(action: Action, state: PaymentState) -> PaymentState:
    return replace(
        state, status="failed", is_loading=False, error=action.payload["error"], order_id=None
    )


def handle_reset(action: Action, state: PaymentState) -> PaymentState:
    return PaymentState()


def handle_clear_error(action: Action, state: PaymentState) -> PaymentState:
    return replace(state, error=None)


PAYMENT_BUS = EventBus.of(
    {
        "SELECT_METHOD": handle_select,
        "PAYMENT_REJECTED": handle_rejected,
        "PAYMENT_START": handle_start,
        "PAYMENT_SUCCESS": handle_success,
        "PAYMENT_FAILURE": handle_failure,
        "RESET_PAYMENT": handle_reset,
        "CLEAR_ERROR": handle_clear_error,
    }
)


def lines_total(lines: Sequence[CartLine]) -> int:
    return reduce(lambda acc, line: acc + line.subtotal, lines, 0)


class PaymentStore(Store[PaymentState]):
    """
    Машина состояний оплаты: idle -> processing -> success | failed.
    create_order - сохранение заказа (обычно OrderService.create);
    пустой результат считается отказом даже после успешного платежа.
    on_success - необязательный хук после записанного заказа.
    """

    def __init__(
        self,
        create_order: OrderCreator,
        gateway: Optional[SettlementGateway] = None,
        on_success: Optional[Callable[[str], Awaitable]] = None,
    ):
        super().__init__(PAYMENT_BUS, PaymentState())
        self.create_order = create_order
        self.gateway = gateway or SimulatedSettlement()
        self.on_success = on_success

    @property
    def methods(self):
        return PAYMENT_METHODS

    def select_payment_method(self, method: str) -> PaymentState:
        if method not in {m.id for m in PAYMENT_METHODS}:
            log.warning("unknown payment method %r", method)
            return self.state
        if self.state.status == "processing":
            log.warning("payment method change refused while processing")
        return self.dispatch("SELECT_METHOD", method=method)

    def _check_preconditions(self, amount: int, lines: Sequence[CartLine]) -> str:
        """Проверки до processing; возвращает выбранный способ оплаты"""
        method = self.state.selected_method
        if method is None:
            raise ValidationError((NO_METHOD_ERROR,))
        if not lines:
            raise ValidationError((EMPTY_CART_ERROR,))
        if lines_total(lines) != amount:
            raise ValidationError((TOTAL_MISMATCH_ERROR,))
        return method

    async def process_payment(
        self,
        amount: int,
        phone: str,
        buyer: BuyerInfo,
        lines: Sequence[CartLine],
        address: str,
        city: str,
        user_id: Optional[str] = None,
    ) -> PaymentState:
        try:
            method = self._check_preconditions(amount, lines)
        except ValidationError as e:
            log.info("payment rejected before processing: %s", e.message)
            return self.dispatch("PAYMENT_REJECTED", error=e.message)

        order_id = new_order_id()
        self.dispatch("PAYMENT_START", order_id=order_id)
        log.info("processing payment %s: %d XOF via %s", order_id, amount, method)
        try:
            await self.gateway.settle(method, amount, phone)
            payload = OrderCreate(
                order_id=order_id,
                user_id=user_id,
                user_info=BuyerInfoPayload(**snapshot(buyer)),
                items=[
                    OrderLinePayload(**snapshot(order_line_from_cart(line))) for line in lines
                ],
                total=amount,
                status="pending",
                payment_method=method,
                city=city,
                address=address,
            )
            created = Maybe.of(await self.create_order(payload))
            if created.is_none():
                raise PaymentError(ORDER_FAILED_ERROR)
        except PaymentError as e:
            log.error("payment %s failed: %s", order_id, e.message)
            return self.dispatch("PAYMENT_FAILURE", error=e.message)
        except Exception as e:
            log.exception("payment %s aborted", order_id)
            return self.dispatch("PAYMENT_FAILURE", error=str(e) or ORDER_FAILED_ERROR)

        state = self.dispatch("PAYMENT_SUCCESS")
        log.info("payment %s succeeded", order_id)
        if self.on_success is not None:
            # заказ уже записан: сбой хука не отменяет успешную оплату
            try:
                await self.on_success(order_id)
            except Exception:
                log.exception("post-payment hook failed for %s", order_id)
        return state

    def reset_payment(self) -> PaymentState:
        return self.dispatch("RESET_PAYMENT")

    def clear_error(self) -> PaymentState:
        return self.dispatch("CLEAR_ERROR")
