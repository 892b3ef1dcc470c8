from dataclasses import dataclass
from typing import Optional, Tuple


ORDER_STATUSES = ("pending", "paid", "shipped", "delivered", "cancelled")
REVENUE_STATUSES = ("paid", "shipped", "delivered")
PREMIUM_STATUSES = ("pending", "approved", "rejected")
PAYMENT_STATUSES = ("idle", "processing", "success", "failed")

ALL_CATEGORIES = "all"


@dataclass(frozen=True)
class Product:
    id: str  # product_id, бизнес-ключ вида PROD-...
    name: str
    category: str
    price: int  # франки КФА, без дробной части
    stock: int
    sizes: Tuple[str, ...]
    colors: Tuple[str, ...]
    is_new: bool = False
    is_active: bool = True
    is_premium: bool = False
    original_price: Optional[int] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    description: str = ""
    color: str = "#3B82F6"
    sort_order: int = 0
    is_active: bool = True
    image: Optional[str] = None
    product_count: int = 0
    created_at: str = ""


@dataclass(frozen=True)
class CartLine:
    """Строка корзины. Цена фиксируется в момент добавления."""

    product_id: str
    name: str
    price: int
    size: str
    color: str
    quantity: int = 1
    original_price: Optional[int] = None
    image: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.product_id, self.size, self.color)

    @property
    def subtotal(self) -> int:
        return self.price * self.quantity


@dataclass(frozen=True)
class BuyerInfo:
    first_name: str
    last_name: str
    phone: str
    address: str
    city: str = "Dakar"


@dataclass(frozen=True)
class OrderLine:
    product_id: str
    name: str
    price: int
    quantity: int
    size: str
    color: str


@dataclass(frozen=True)
class Order:
    id: str  # order_id вида SIGGIL-...
    buyer: BuyerInfo
    items: Tuple[OrderLine, ...]
    total: int
    status: str  # см. ORDER_STATUSES
    payment_method: str  # "wave" | "orange" | "free"
    city: str
    address: str
    user_id: Optional[str] = None
    tracking_info: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class PremiumRequest:
    id: str
    name: str
    phone: str
    status: str = "pending"  # см. PREMIUM_STATUSES
    instagram: str = ""
    tiktok: str = ""
    likes: int = 0
    comments: Tuple[str, ...] = ()
    images: Tuple[str, ...] = ()
    code: Optional[str] = None
    code_used: bool = False
    created_at: str = ""


@dataclass(frozen=True)
class User:
    id: str
    first_name: str
    last_name: str
    phone: str
    address: str = ""
    city: str = "Dakar"


@dataclass(frozen=True)
class AdminSession:
    username: str
    is_authenticated: bool
    session_timestamp: str


@dataclass(frozen=True)
class PaymentMethod:
    id: str
    name: str
    description: str


PAYMENT_METHODS: Tuple[PaymentMethod, ...] = (
    PaymentMethod("wave", "Wave", "Paiement rapide et sécurisé avec Wave"),
    PaymentMethod("orange", "Orange Money", "Paiement mobile avec Orange Money"),
    PaymentMethod(
        "free", "Paiement à la livraison", "Payez à la réception de votre commande"
    ),
)


@dataclass(frozen=True)
class ProductFilters:
    category: str = ALL_CATEGORIES
    size: str = "all"
    color: str = "all"
    min_price: int = 0
    max_price: int = 1_000_000
    search: str = ""
    sort_by: str = "name"  # "name" | "price" | "date" | "popularity"
    sort_order: str = "asc"  # "asc" | "desc"
