from itertools import islice
from typing import Iterable, Iterator, Tuple, TypeVar
from collections import defaultdict
from .domain import Order, Product
from .transforms import by_search_term

T = TypeVar("T")

TYPEAHEAD_LIMIT = 8


## ленивый поиск: товары, подходящие под строку, в исходном порядке
def iter_search_matches(products: Iterable[Product], term: str) -> Iterator[Product]:
    matches = by_search_term(term)
    for product in products:
        if matches(product):
            yield product


## первые n элементов без материализации остального
def take(items: Iterable[T], n: int) -> Tuple[T, ...]:
    return tuple(islice(items, n))


## заказы с указанным статусом
def iter_orders_by_status(orders: Iterable[Order], status: str) -> Iterator[Order]:
    for order in orders:
        if order.status == status:
            yield order


## топ-к покупателей по сумме заказов; покупатель = номер телефона
def lazy_top_customers(orders: Iterable[Order], k: int) -> Iterator[tuple[str, int]]:
    totals = defaultdict(int)
    for order in orders:
        if order.status == "cancelled":
            continue
        totals[order.buyer.phone] += order.total

    for phone, total in sorted(totals.items(), key=lambda x: x[1], reverse=True)[:k]:
        yield (phone, total)
