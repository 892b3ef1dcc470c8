import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from siggil.compose import all_of, compose, pipe
from siggil.frp import EventBus, Store, apply_actions, create_action
from siggil.ftypes import Either, Maybe


def test_eventbus_immutability():
    """EventBus должен быть иммутабельным"""
    bus1 = EventBus()
    bus2 = bus1.subscribe("TEST", lambda a, s: s)

    assert bus1.subscribers == ()
    assert len(bus2.subscribers) == 1


def test_unknown_action_keeps_state():
    bus = EventBus.of({"INC": lambda a, s: s + a.payload["by"]})

    assert bus.publish(create_action("DEC", {"by": 1}), 5) == 5
    assert apply_actions(bus, (create_action("INC", {"by": 2}),) * 3, 0) == 6


def test_store_notifies_listeners():
    store = Store(EventBus.of({"SET": lambda a, s: a.payload["value"]}), 0)
    seen = []
    store.listen(seen.append)

    store.dispatch("SET", value=3)
    store.dispatch("NOOP")

    assert store.state == 3
    assert seen == [3, 3]


def test_maybe():
    assert Maybe.some(2).map(lambda x: x * 2).get_or_else(0) == 4
    assert Maybe.nothing().map(lambda x: x * 2).get_or_else(0) == 0
    assert Maybe.of(Maybe.nothing()).is_none()
    assert Maybe.of(None).is_none()
    assert Maybe.nothing().to_either("err").is_left


def test_either():
    assert Either.from_errors([], 1).is_right
    left = Either.from_errors(["a", "b"], 1)
    assert left.value == ("a", "b")
    assert left.map(lambda x: x + 1) is left
    assert Either.right(2).fold(lambda e: 0, lambda v: v * 10) == 20


def test_compose_pipe():
    inc = lambda x: x + 1
    dbl = lambda x: x * 2

    assert compose(inc, dbl)(3) == 7
    assert pipe(inc, dbl)(3) == 8
    assert all_of()(None) is True
