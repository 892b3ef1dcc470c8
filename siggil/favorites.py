import logging
from dataclasses import dataclass
from typing import Tuple

from .frp import Action, EventBus, Store
from .storage import FAVORITES_KEY, KeyValueStorage

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FavoritesState:
    product_ids: Tuple[str, ...] = ()


def handle_hydrate(action: Action, state: FavoritesState) -> FavoritesState:
    # порядок сохраняется, дубликаты отбрасываются
    return FavoritesState(tuple(dict.fromkeys(action.payload["product_ids"])))


def handle_add(action: Action, state: FavoritesState) -> FavoritesState:
    pid = action.payload["product_id"]
    if pid in state.product_ids:
        return state
    return FavoritesState(state.product_ids + (pid,))


def handle_remove(action: Action, state: FavoritesState) -> FavoritesState:
    pid = action.payload["product_id"]
    return FavoritesState(tuple(p for p in state.product_ids if p != pid))


def handle_toggle(action: Action, state: FavoritesState) -> FavoritesState:
    if action.payload["product_id"] in state.product_ids:
        return handle_remove(action, state)
    return handle_add(action, state)


FAVORITES_BUS = EventBus.of(
    {
        "HYDRATE": handle_hydrate,
        "ADD_FAVORITE": handle_add,
        "REMOVE_FAVORITE": handle_remove,
        "TOGGLE_FAVORITE": handle_toggle,
    }
)


class FavoritesStore(Store[FavoritesState]):
    """Множество избранных product_id, сохраняется в локальном хранилище"""

    def __init__(self, storage: KeyValueStorage):
        super().__init__(FAVORITES_BUS, FavoritesState())
        self.storage = storage
        raw = storage.load(FAVORITES_KEY, [])
        if not isinstance(raw, list) or not all(isinstance(p, str) for p in raw):
            log.error("favorites snapshot malformed, discarding")
            storage.remove(FAVORITES_KEY)
            raw = []
        self.dispatch("HYDRATE", product_ids=raw)
        self.listen(lambda s: storage.save(FAVORITES_KEY, list(s.product_ids)))

    def add(self, product_id: str) -> FavoritesState:
        return self.dispatch("ADD_FAVORITE", product_id=product_id)

    def remove(self, product_id: str) -> FavoritesState:
        return self.dispatch("REMOVE_FAVORITE", product_id=product_id)

    def toggle(self, product_id: str) -> FavoritesState:
        return self.dispatch("TOGGLE_FAVORITE", product_id=product_id)

    def is_favorite(self, product_id: str) -> bool:
        return product_id in self.state.product_ids

    def count(self) -> int:
        return len(self.state.product_ids)
