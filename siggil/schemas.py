"""
Схемы данных для записи в удалённый backend.

Create-схемы содержат полный набор полей, Update-схемы частичные:
каждое поле необязательно, None означает "не менять".
Каждая схема соответствует одной таблице.
"""
from typing import List, Optional

from pydantic import BaseModel, Field


class ProductCreate(BaseModel):
    """
    Товар
    Таблица: "products"
    """
    name: str = Field(..., description="Название товара")
    category: str = Field(..., description="Название категории, например 'T-shirts'")
    price: int = Field(..., ge=0, description="Цена в XOF")
    stock: int = Field(0, ge=0, description="Остаток на складе")
    sizes: List[str] = Field(default_factory=list, description="Доступные размеры")
    colors: List[str] = Field(default_factory=list, description="Доступные цвета")
    original_price: Optional[int] = Field(None, ge=0, description="Цена до скидки")
    description: Optional[str] = Field(None, description="Описание товара")
    image_url: Optional[str] = Field(None, description="Публичный URL изображения")
    is_new: bool = Field(False, description="Показывается среди новинок")
    is_active: bool = Field(True, description="Виден на витрине")
    is_premium: bool = Field(False, description="Только для премиум-участников")


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    sizes: Optional[List[str]] = None
    colors: Optional[List[str]] = None
    original_price: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_new: Optional[bool] = None
    is_active: Optional[bool] = None
    is_premium: Optional[bool] = None


class CategoryCreate(BaseModel):
    """
    Категория
    Таблица: "categories"
    """
    name: str = Field(..., min_length=1, description="Уникальное название категории")
    description: Optional[str] = None
    color: str = Field("#3B82F6", description="Цвет метки")
    sort_order: int = Field(0, description="Позиция в списке, при равенстве - по названию")
    image: Optional[str] = Field(None, description="URL изображения или data URI")
    is_active: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    sort_order: Optional[int] = None
    image: Optional[str] = None
    is_active: Optional[bool] = None


class BuyerInfoPayload(BaseModel):
    first_name: str
    last_name: str
    phone: str
    address: str
    city: str = "Dakar"


class OrderLinePayload(BaseModel):
    product_id: str
    name: str
    price: int = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    size: str
    color: str


class OrderCreate(BaseModel):
    """
    Заказ
    Таблица: "orders"
    """
    order_id: str
    user_id: Optional[str] = None
    user_info: BuyerInfoPayload
    items: List[OrderLinePayload]
    total: int = Field(..., ge=0)
    status: str = Field("pending", description="pending | paid | shipped | delivered | cancelled")
    payment_method: str = Field(..., description="wave | orange | free")
    city: str
    address: str


class UserCreate(BaseModel):
    """
    Покупатель
    Таблица: "users"
    """
    first_name: str
    last_name: str
    phone: str
    address: Optional[str] = None
    city: Optional[str] = None


class PremiumRequestCreate(BaseModel):
    """
    Заявка на премиум-доступ
    Таблица: "premium_requests"
    """
    name: str
    phone: str
    instagram: str = ""
    tiktok: str = ""
    likes: int = Field(0, ge=0)
    comments: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
