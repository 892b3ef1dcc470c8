from typing import Tuple, Dict, List, Iterable
from functools import reduce
from siggil.domain import REVENUE_STATUSES, ORDER_STATUSES, Category, Order, Product
from siggil.lazy import lazy_top_customers

LOW_STOCK_THRESHOLD = 10


def _is_revenue(order: Order) -> bool:
    return order.status in REVENUE_STATUSES


def _sum_totals(orders: Iterable[Order]) -> int:
    return reduce(lambda acc, o: acc + o.total, orders, 0)


# ============ Сводка для панели администратора ============


def total_revenue(orders: Tuple[Order, ...]) -> int:
    """Выручка: только paid / shipped / delivered; pending и cancelled не считаются"""
    return _sum_totals(filter(_is_revenue, orders))


def customers_by_city(orders: Tuple[Order, ...]) -> Dict[str, int]:
    """
    Число разных покупателей по городу доставки
    Покупатель = номер телефона
    """

    def accumulate_city(acc: Dict[str, frozenset], order: Order) -> Dict[str, frozenset]:
        city = order.city or "Inconnue"
        return {**acc, city: acc.get(city, frozenset()) | {order.buyer.phone}}

    phones_by_city = reduce(accumulate_city, orders, {})
    return {city: len(phones) for city, phones in phones_by_city.items()}


def dashboard_stats(orders: Tuple[Order, ...], products: Tuple[Product, ...]) -> dict:
    """
    Агрегаты панели: пересчитываются целиком по текущим спискам
    """
    customers = frozenset(o.buyer.phone for o in orders)
    return {
        "total_orders": len(orders),
        "total_revenue": total_revenue(orders),
        "total_customers": len(customers),
        "customers_by_city": customers_by_city(orders),
        "total_products": len(products),
        "low_stock_products": sum(1 for p in products if p.stock < LOW_STOCK_THRESHOLD),
        "pending_orders": sum(1 for o in orders if o.status == "pending"),
    }


# ============ Отчёты по продажам ============


def sales_by_status(orders: Tuple[Order, ...]) -> Dict[str, dict]:
    """Количество и сумма заказов по каждому статусу (все пять статусов присутствуют)"""

    def accumulate_status(acc: dict, order: Order) -> dict:
        current = acc.get(order.status, {"count": 0, "total": 0})
        return {
            **acc,
            order.status: {
                "count": current["count"] + 1,
                "total": current["total"] + order.total,
            },
        }

    empty = {status: {"count": 0, "total": 0} for status in ORDER_STATUSES}
    return reduce(accumulate_status, orders, empty)


def average_order_value(orders: Tuple[Order, ...]) -> float:
    revenue_orders = tuple(filter(_is_revenue, orders))
    if not revenue_orders:
        return 0.0
    return _sum_totals(revenue_orders) / len(revenue_orders)


# ============ Отчёты по товарам ============


def popular_products(
    orders: Tuple[Order, ...], products: Tuple[Product, ...], k: int = 10
) -> List[dict]:
    """
    Рейтинг товаров по заказанному количеству (отменённые заказы не считаются)
    """

    def accumulate_product(acc: dict, order: Order) -> dict:
        if order.status == "cancelled":
            return acc

        def add_item(inner_acc: dict, item) -> dict:
            qty, count, revenue = inner_acc.get(item.product_id, (0, 0, 0))
            return {
                **inner_acc,
                item.product_id: (
                    qty + item.quantity,
                    count + 1,
                    revenue + item.price * item.quantity,
                ),
            }

        return reduce(add_item, order.items, acc)

    stats = reduce(accumulate_product, orders, {})
    names = {p.id: p.name for p in products}
    ranked = sorted(stats.items(), key=lambda kv: kv[1][0], reverse=True)[:k]

    return [
        {
            "product_id": pid,
            "name": names.get(pid, "Produit supprimé"),
            "quantity_ordered": qty,
            "order_count": count,
            "revenue": revenue,
        }
        for pid, (qty, count, revenue) in ranked
    ]


def product_stats(products: Tuple[Product, ...]) -> dict:
    """Сводка по каталогу"""
    by_category = reduce(
        lambda acc, p: {**acc, p.category: acc.get(p.category, 0) + 1}, products, {}
    )
    total_price = reduce(lambda acc, p: acc + p.price, products, 0)

    return {
        "total_products": len(products),
        "by_category": by_category,
        "average_price": total_price / len(products) if products else 0.0,
        "total_stock": reduce(lambda acc, p: acc + p.stock, products, 0),
        "new_products": sum(1 for p in products if p.is_new),
        "active_products": sum(1 for p in products if p.is_active),
    }


def category_stats(
    categories: Tuple[Category, ...], products: Tuple[Product, ...]
) -> List[dict]:
    """
    По каждой категории: число товаров, активных товаров и суммарный остаток
    """

    def for_category(category: Category) -> dict:
        own = tuple(p for p in products if p.category == category.name)
        return {
            "id": category.id,
            "name": category.name,
            "is_active": category.is_active,
            "product_count": len(own),
            "active_products": sum(1 for p in own if p.is_active),
            "total_stock": reduce(lambda acc, p: acc + p.stock, own, 0),
        }

    return [for_category(c) for c in categories]


# ============ Отчёты по покупателям ============


def top_customers_report(orders: Tuple[Order, ...], k: int = 10) -> List[dict]:
    """
    Топ-K покупателей по сумме заказов (покупатель = телефон)
    """

    def count_orders(acc: dict, order: Order) -> dict:
        if order.status == "cancelled":
            return acc
        return {**acc, order.buyer.phone: acc.get(order.buyer.phone, 0) + 1}

    order_counts = reduce(count_orders, orders, {})
    names = {
        o.buyer.phone: f"{o.buyer.first_name} {o.buyer.last_name}".strip() for o in orders
    }

    return [
        {
            "phone": phone,
            "name": names.get(phone, ""),
            "total_spent": total,
            "order_count": order_counts.get(phone, 0),
            "avg_order": (
                total // order_counts[phone] if order_counts.get(phone, 0) > 0 else 0
            ),
        }
        for phone, total in lazy_top_customers(orders, k)
    ]


# ============ Композитный отчёт ============


def comprehensive_report(
    orders: Tuple[Order, ...],
    products: Tuple[Product, ...],
    categories: Tuple[Category, ...] = (),
) -> dict:
    """
    Полный отчёт back-office (композиция всех метрик)
    """
    return {
        "dashboard": dashboard_stats(orders, products),
        "sales_by_status": sales_by_status(orders),
        "average_order_value": average_order_value(orders),
        "popular_products": popular_products(orders, products, k=5),
        "products": product_stats(products),
        "categories": category_stats(categories, products),
        "top_customers": top_customers_report(orders, k=5),
    }
