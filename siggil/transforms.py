from dataclasses import asdict
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from .compose import all_of, pipe
from .domain import (
    ALL_CATEGORIES,
    BuyerInfo,
    CartLine,
    Category,
    Order,
    OrderLine,
    PremiumRequest,
    Product,
    ProductFilters,
    User,
)


# ============ Строки backend'а -> доменные объекты ============


def _int_or_none(value) -> Optional[int]:
    return int(value) if value not in (None, "") else None


def row_to_product(row: Mapping[str, Any]) -> Product:
    return Product(
        id=str(row.get("product_id") or row.get("id")),
        name=row.get("name") or "",
        category=row.get("category") or "",
        price=int(row.get("price") or 0),
        stock=int(row.get("stock") or 0),
        sizes=tuple(row.get("sizes") or ()),
        colors=tuple(row.get("colors") or ()),
        is_new=bool(row.get("is_new")),
        is_active=row.get("is_active") is not False,
        is_premium=bool(row.get("is_premium")),
        original_price=_int_or_none(row.get("original_price")),
        description=row.get("description") or None,
        image_url=row.get("image_url") or None,
        created_at=row.get("created_at") or "",
        updated_at=row.get("updated_at") or "",
    )


def row_to_category(row: Mapping[str, Any], product_count: int = 0) -> Category:
    return Category(
        id=str(row.get("id")),
        name=row.get("name") or "",
        description=row.get("description") or "",
        color=row.get("color") or "#3B82F6",
        sort_order=int(row.get("sort_order") or 0),
        is_active=row.get("is_active") is not False,
        image=row.get("image") or None,
        product_count=product_count,
        created_at=row.get("created_at") or "",
    )


def _buyer_from(info: Mapping[str, Any]) -> BuyerInfo:
    return BuyerInfo(
        first_name=info.get("first_name") or "Anonyme",
        last_name=info.get("last_name") or "Utilisateur",
        phone=info.get("phone") or "",
        address=info.get("address") or "Adresse non spécifiée",
        city=info.get("city") or "Dakar",
    )


def row_to_order(row: Mapping[str, Any]) -> Order:
    buyer = _buyer_from(row.get("user_info") or {})
    items = tuple(
        OrderLine(
            product_id=str(i.get("product_id")),
            name=i.get("name") or "",
            price=int(i.get("price") or 0),
            quantity=int(i.get("quantity") or 1),
            size=i.get("size") or "",
            color=i.get("color") or "",
        )
        for i in row.get("items") or ()
    )
    return Order(
        id=str(row.get("order_id") or row.get("id")),
        buyer=buyer,
        items=items,
        total=int(row.get("total") or 0),
        status=row.get("status") or "pending",
        payment_method=row.get("payment_method") or "free",
        city=row.get("city") or buyer.city,
        address=row.get("address") or buyer.address,
        user_id=row.get("user_id"),
        tracking_info=row.get("tracking_info"),
        created_at=row.get("created_at") or "",
        updated_at=row.get("updated_at") or "",
    )


def row_to_premium_request(row: Mapping[str, Any]) -> PremiumRequest:
    return PremiumRequest(
        id=str(row.get("id")),
        name=row.get("name") or "",
        phone=row.get("phone") or "",
        status=row.get("status") or "pending",
        instagram=row.get("instagram") or "",
        tiktok=row.get("tiktok") or "",
        likes=int(row.get("likes") or 0),
        comments=tuple(row.get("comments") or ()),
        images=tuple(row.get("images") or ()),
        code=row.get("code") or None,
        code_used=bool(row.get("code_used")),
        created_at=row.get("created_at") or "",
    )


def row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        id=str(row.get("id")),
        first_name=row.get("first_name") or "",
        last_name=row.get("last_name") or "",
        phone=row.get("phone") or "",
        address=row.get("address") or "",
        city=row.get("city") or "Dakar",
    )


# ============ Снимки для локального хранилища ============


def snapshot(obj) -> Dict[str, Any]:
    """dataclass -> dict, пригодный для JSON (кортежи становятся списками)"""
    return asdict(obj)


def cart_line_from_snapshot(data: Mapping[str, Any]) -> CartLine:
    return CartLine(
        product_id=str(data["product_id"]),
        name=data.get("name", ""),
        price=int(data.get("price", 0)),
        size=data.get("size", ""),
        color=data.get("color", ""),
        quantity=int(data.get("quantity", 1)),
        original_price=_int_or_none(data.get("original_price")),
        image=data.get("image"),
    )


def premium_request_from_snapshot(data: Mapping[str, Any]) -> PremiumRequest:
    return row_to_premium_request(data)


def user_from_snapshot(data: Mapping[str, Any]) -> User:
    return row_to_user(data)


def order_line_from_cart(line: CartLine) -> OrderLine:
    return OrderLine(
        product_id=line.product_id,
        name=line.name,
        price=line.price,
        quantity=line.quantity,
        size=line.size,
        color=line.color,
    )


# ============ Замыкания-фильтры ============


def by_category(category: str) -> Callable[[Product], bool]:
    """Фильтр по категории; "all" пропускает всё"""
    if category in (None, "", ALL_CATEGORIES):
        return lambda p: True
    return lambda p: p.category == category


def by_size(size: str) -> Callable[[Product], bool]:
    if size in (None, "", "all"):
        return lambda p: True
    return lambda p: size in p.sizes


def by_color(color: str) -> Callable[[Product], bool]:
    if color in (None, "", "all"):
        return lambda p: True
    wanted = color.lower()
    return lambda p: wanted in (c.lower() for c in p.colors)


def by_price_range(min_price: int, max_price: int) -> Callable[[Product], bool]:
    """Фильтр по диапазону цен (границы включены)"""
    return lambda p: min_price <= p.price <= max_price


def by_search_term(term: str) -> Callable[[Product], bool]:
    """Подстрока без учёта регистра в названии, категории или описании"""
    needle = (term or "").strip().lower()
    if not needle:
        return lambda p: True
    return lambda p: (
        needle in p.name.lower()
        or needle in p.category.lower()
        or needle in (p.description or "").lower()
    )


# ============ Популярность ============


def popularity_scores(orders: Iterable[Order]) -> Dict[str, int]:
    """Количество заказанных единиц по товару; отменённые заказы не считаются"""
    scores: Dict[str, int] = {}
    for order in orders:
        if order.status == "cancelled":
            continue
        for item in order.items:
            scores[item.product_id] = scores.get(item.product_id, 0) + item.quantity
    return scores


# ============ Сортировка ============


def sort_products(
    products: Iterable[Product],
    sort_by: str = "name",
    sort_order: str = "asc",
    popularity: Optional[Mapping[str, int]] = None,
) -> Tuple[Product, ...]:
    """
    Устойчивая сортировка: равные ключи сохраняют исходный порядок
    в обоих направлениях.
    """
    scores = popularity or {}
    keys = {
        "name": lambda p: p.name.casefold(),
        "price": lambda p: p.price,
        "date": lambda p: p.created_at,
        "popularity": lambda p: scores.get(p.id, 0),
    }
    key = keys.get(sort_by)
    if key is None:
        return tuple(products)
    return tuple(sorted(products, key=key, reverse=sort_order == "desc"))


def product_predicate(filters: ProductFilters) -> Callable[[Product], bool]:
    return all_of(
        by_category(filters.category),
        by_size(filters.size),
        by_color(filters.color),
        by_price_range(filters.min_price, filters.max_price),
        by_search_term(filters.search),
    )


def apply_filters(
    products: Iterable[Product],
    filters: ProductFilters,
    popularity: Optional[Mapping[str, int]] = None,
) -> Tuple[Product, ...]:
    """Производное представление каталога: фильтры, затем сортировка"""
    pipeline = pipe(
        lambda items: filter(product_predicate(filters), items),
        lambda items: sort_products(
            items, filters.sort_by, filters.sort_order, popularity
        ),
    )
    return pipeline(products)
