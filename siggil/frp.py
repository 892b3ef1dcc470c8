from dataclasses import dataclass, field
from functools import reduce
from typing import Any, Callable, Dict, Generic, List, Tuple, TypeVar
import logging
import uuid
from datetime import datetime

log = logging.getLogger(__name__)

S = TypeVar("S")

Handler = Callable[["Action", Any], Any]


@dataclass(frozen=True)
class Action:
    id: str
    ts: str
    name: str
    payload: Dict = field(default_factory=dict)


def create_action(name: str, payload: Dict = None) -> Action:
    """Создаёт действие с автоматической меткой времени"""
    return Action(
        id=str(uuid.uuid4()),
        ts=datetime.now().isoformat(),
        name=name,
        payload=dict(payload or {}),
    )


@dataclass(frozen=True)
class EventBus:
    """
    Иммутабельная шина обработчиков (reducer)
    Обработчики - чистые функции: (Action, State) -> State
    """

    subscribers: Tuple[Tuple[str, Handler], ...] = ()

    def subscribe(self, action_name: str, handler: Handler) -> "EventBus":
        """Возвращает новую шину с добавленным обработчиком"""
        return EventBus(subscribers=self.subscribers + ((action_name, handler),))

    def publish(self, action: Action, state: S) -> S:
        """
        Применяет все обработчики действия по очереди (fold)
        Неизвестное действие возвращает состояние без изменений
        """
        matching = tuple(h for name, h in self.subscribers if name == action.name)
        return reduce(lambda current, handler: handler(action, current), matching, state)

    @classmethod
    def of(cls, handlers: Dict[str, Handler]) -> "EventBus":
        return reduce(lambda bus, item: bus.subscribe(*item), handlers.items(), cls())


def apply_actions(bus: EventBus, actions: Tuple[Action, ...], state: S) -> S:
    """Чистая функция: (actions, initial_state) -> final_state"""
    return reduce(lambda s, a: bus.publish(a, s), actions, state)


class Store(Generic[S]):
    """
    Держатель состояния одной сессии.
    Все изменения идут через dispatch; слушатели вызываются после каждого
    действия (например, сохранение снимка в локальное хранилище).
    """

    def __init__(self, bus: EventBus, state: S):
        self._bus = bus
        self._state = state
        self._listeners: List[Callable[[S], None]] = []

    @property
    def state(self) -> S:
        return self._state

    def listen(self, listener: Callable[[S], None]) -> None:
        self._listeners.append(listener)

    def dispatch(self, name: str, **payload) -> S:
        action = create_action(name, payload)
        self._state = self._bus.publish(action, self._state)
        log.debug("%s: %s", type(self).__name__, name)
        for listener in self._listeners:
            listener(self._state)
        return self._state
