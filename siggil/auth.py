import logging
from dataclasses import dataclass, replace
from typing import Optional

from .domain import User
from .frp import Action, EventBus, Store
from .ftypes import Either
from .schemas import UserCreate
from .service import UserService
from .storage import USER_KEY, KeyValueStorage
from .transforms import snapshot, user_from_snapshot
from .validation import digits_only, validate_name

log = logging.getLogger(__name__)

UNKNOWN_USER_ERROR = "Aucun compte trouvé pour ce numéro."
REGISTER_ERROR = "Impossible de créer le compte. Veuillez réessayer."


@dataclass(frozen=True)
class AuthState:
    user: Optional[User] = None
    is_loading: bool = False
    error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None


def handle_start(action: Action, state: AuthState) -> AuthState:
    return replace(state, is_loading=True, error=None)


def handle_login(action: Action, state: AuthState) -> AuthState:
    return AuthState(user=action.payload["user"])


def handle_failure(action: Action, state: AuthState) -> AuthState:
    return replace(state, is_loading=False, error=action.payload["error"])


def handle_logout(action: Action, state: AuthState) -> AuthState:
    return AuthState()


AUTH_BUS = EventBus.of(
    {
        "AUTH_START": handle_start,
        "LOGIN_SUCCESS": handle_login,
        "AUTH_FAILURE": handle_failure,
        "LOGOUT": handle_logout,
    }
)


def validate_registration(payload: UserCreate) -> Either:
    errors = []
    if not validate_name(payload.first_name):
        errors.append("Prénom invalide")
    if not validate_name(payload.last_name):
        errors.append("Nom invalide")
    if len(digits_only(payload.phone)) < 8:
        errors.append("Numéro de téléphone invalide")
    return Either.from_errors(errors, payload)


class AuthStore(Store[AuthState]):
    """Сессия покупателя: вход по номеру телефона, без пароля"""

    def __init__(self, users: UserService, storage: KeyValueStorage):
        super().__init__(AUTH_BUS, AuthState())
        self.users = users
        self.storage = storage
        saved = storage.load(USER_KEY)
        if isinstance(saved, dict) and saved.get("phone"):
            self.dispatch("LOGIN_SUCCESS", user=user_from_snapshot(saved))
        self.listen(self._persist)

    def _persist(self, state: AuthState) -> None:
        if state.user is None:
            self.storage.remove(USER_KEY)
        else:
            self.storage.save(USER_KEY, snapshot(state.user))

    @property
    def user(self) -> Optional[User]:
        return self.state.user

    async def register(self, payload: UserCreate) -> Either:
        checked = validate_registration(payload)
        if checked.is_left:
            self.dispatch("AUTH_FAILURE", error=", ".join(checked.value))
            return checked
        self.dispatch("AUTH_START")
        user = await self.users.upsert(payload)
        if user.is_none():
            self.dispatch("AUTH_FAILURE", error=REGISTER_ERROR)
            return Either.left((REGISTER_ERROR,))
        self.dispatch("LOGIN_SUCCESS", user=user.value)
        log.info("customer %s registered", user.value.id)
        return Either.right(user.value)

    async def login(self, phone: str) -> Either:
        self.dispatch("AUTH_START")
        user = await self.users.find_by_phone(digits_only(phone))
        if user.is_none():
            self.dispatch("AUTH_FAILURE", error=UNKNOWN_USER_ERROR)
            return Either.left((UNKNOWN_USER_ERROR,))
        self.dispatch("LOGIN_SUCCESS", user=user.value)
        return Either.right(user.value)

    def logout(self) -> AuthState:
        return self.dispatch("LOGOUT")
