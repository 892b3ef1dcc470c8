from functools import reduce
from typing import Callable, TypeVar

T = TypeVar("T")

Predicate = Callable[[T], bool]


def compose(*funcs):
    """compose(f, g, h)(x) == f(g(h(x)))"""
    return reduce(lambda f, g: lambda x: f(g(x)), funcs)


def pipe(*funcs):
    """pipe(f, g, h)(x) == h(g(f(x)))"""
    return reduce(lambda f, g: lambda x: g(f(x)), funcs)


def all_of(*predicates: Predicate) -> Predicate:
    """Предикат, истинный когда истинны все; без аргументов - всегда True"""
    return lambda item: all(p(item) for p in predicates)
