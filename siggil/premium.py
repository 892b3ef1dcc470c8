import logging
from dataclasses import dataclass
from typing import Optional

from .frp import Action, EventBus, Store
from .ftypes import Either
from .schemas import PremiumRequestCreate
from .service import PremiumService
from .storage import (
    PREMIUM_ACCESS_KEY,
    PREMIUM_CODE_ENTERED_KEY,
    PREMIUM_REQUEST_ID_KEY,
    PREMIUM_SESSION_KEYS,
    KeyValueStorage,
)
from .validation import digits_only

log = logging.getLogger(__name__)

INVALID_CODE_ERROR = "Code d'accès invalide."
USED_CODE_ERROR = "Ce code a déjà été utilisé."
WRONG_PHONE_ERROR = "Ce code n'est pas associé à ce numéro."
SUBMIT_ERROR = "Impossible d'envoyer la demande. Veuillez réessayer."


def normalize_code(code: str) -> str:
    return "".join((code or "").split()).upper()


@dataclass(frozen=True)
class PremiumAccessState:
    has_access: bool = False
    request_id: Optional[str] = None
    code: Optional[str] = None
    error: Optional[str] = None


def handle_granted(action: Action, state: PremiumAccessState) -> PremiumAccessState:
    return PremiumAccessState(
        has_access=True, request_id=action.payload["request_id"], code=action.payload["code"]
    )


def handle_denied(action: Action, state: PremiumAccessState) -> PremiumAccessState:
    return PremiumAccessState(error=action.payload["error"])


def handle_revoked(action: Action, state: PremiumAccessState) -> PremiumAccessState:
    return PremiumAccessState()


PREMIUM_BUS = EventBus.of(
    {
        "ACCESS_GRANTED": handle_granted,
        "ACCESS_DENIED": handle_denied,
        "ACCESS_REVOKED": handle_revoked,
    }
)


class PremiumAccessStore(Store[PremiumAccessState]):
    """
    Премиум-доступ покупателя по одноразовому коду.
    Код действует, пока по нему не оформлен заказ.
    """

    def __init__(self, requests: PremiumService, storage: KeyValueStorage):
        super().__init__(PREMIUM_BUS, PremiumAccessState())
        self.requests = requests
        self.storage = storage
        if storage.load(PREMIUM_ACCESS_KEY) is True:
            self.dispatch(
                "ACCESS_GRANTED",
                request_id=storage.load(PREMIUM_REQUEST_ID_KEY),
                code=storage.load(PREMIUM_CODE_ENTERED_KEY),
            )
        self.listen(self._persist)

    def _persist(self, state: PremiumAccessState) -> None:
        if not state.has_access:
            for key in PREMIUM_SESSION_KEYS:
                self.storage.remove(key)
            return
        self.storage.save(PREMIUM_ACCESS_KEY, True)
        self.storage.save(PREMIUM_REQUEST_ID_KEY, state.request_id)
        self.storage.save(PREMIUM_CODE_ENTERED_KEY, state.code)

    @property
    def has_access(self) -> bool:
        return self.state.has_access

    async def submit_request(self, payload: PremiumRequestCreate) -> Either:
        created = await self.requests.submit(payload)
        return created.to_either((SUBMIT_ERROR,))

    async def verify_premium_code(self, code: str, phone: str) -> Either:
        """Код должен быть одобрен, не использован и принадлежать этому номеру"""
        normalized = normalize_code(code)
        found = await self.requests.find_by_code(normalized)

        def deny(error: str) -> Either:
            log.info("premium code refused: %s", error)
            self.dispatch("ACCESS_DENIED", error=error)
            return Either.left((error,))

        if found.is_none() or found.value.status != "approved":
            return deny(INVALID_CODE_ERROR)
        request = found.value
        if request.code_used:
            return deny(USED_CODE_ERROR)
        if digits_only(request.phone) != digits_only(phone):
            return deny(WRONG_PHONE_ERROR)

        self.dispatch("ACCESS_GRANTED", request_id=request.id, code=normalized)
        return Either.right(request)

    async def consume_access(self, order_id: str = "") -> bool:
        """После заказа с премиум-доступом код помечается использованным"""
        if not self.state.has_access:
            return False
        request_id = self.state.request_id
        marked = bool(request_id) and await self.requests.mark_code_used(request_id)
        if not marked:
            log.error("could not mark premium code used for request %s", request_id)
        self.dispatch("ACCESS_REVOKED")
        log.info("premium access consumed by order %s", order_id)
        return marked
