import re
from typing import Iterable, Optional, Sequence, Tuple

from .ftypes import Either
from .schemas import BuyerInfoPayload, ProductCreate, ProductUpdate

# Операторы: 77, 76, 78, 70, 75 (мобильные) и 3x (фиксированные)
_SENEGAL_PHONE = re.compile(r"^(77|76|78|70|75|33|30|34|35|36|37|38|39)\d{7}$")
_NAME = re.compile(r"^[a-zA-ZÀ-ÿ\s'-]{2,50}$")

MAX_PRICE = 1_000_000
MAX_QUANTITY = 1000

DEFAULT_CATEGORIES = ("T-shirts", "Vestes", "Pantalons", "Chaussures", "Accessoires")
VALID_SIZES = ("XS", "S", "M", "L", "XL", "XXL", "One Size")
VALID_COLORS = (
    "noir", "blanc", "rouge", "bleu", "vert", "jaune",
    "orange", "rose", "violet", "gris", "marron", "beige",
)


def digits_only(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


def validate_phone_number(phone: str) -> bool:
    """Сенегальский номер, допускается префикс 221"""
    digits = digits_only(phone)
    if digits.startswith("221") and len(digits) == 12:
        digits = digits[3:]
    return bool(_SENEGAL_PHONE.match(digits))


def validate_price(price: int) -> bool:
    return 0 < price <= MAX_PRICE


def validate_quantity(quantity: int) -> bool:
    return 0 < quantity <= MAX_QUANTITY


def validate_required(value: Optional[str]) -> bool:
    return bool(value and value.strip())


def validate_min_length(value: str, min_length: int) -> bool:
    return len((value or "").strip()) >= min_length


def validate_name(name: str) -> bool:
    return bool(_NAME.match((name or "").strip()))


def validate_address(address: str) -> bool:
    return validate_min_length(address, 10)


def validate_description(description: str) -> bool:
    return 10 <= len(description.strip()) <= 1000


def validate_category(category: str, allowed: Iterable[str] = DEFAULT_CATEGORIES) -> bool:
    return category in tuple(allowed)


def validate_size(size: str) -> bool:
    return size in VALID_SIZES


def validate_color(color: str) -> bool:
    return color.lower() in VALID_COLORS


def validate_product(
    product: ProductCreate, categories: Sequence[str] = DEFAULT_CATEGORIES
) -> Either[Tuple[str, ...], ProductCreate]:
    """
    Полная проверка товара перед созданием.
    categories - актуальный список категорий магазина (по умолчанию - базовый).
    """
    errors = []

    if not validate_required(product.name):
        errors.append("Le nom du produit est requis")
    elif not validate_min_length(product.name, 3):
        errors.append("Le nom du produit doit contenir au moins 3 caractères")

    if not validate_category(product.category, categories or DEFAULT_CATEGORIES):
        errors.append("Catégorie invalide")

    if not validate_price(product.price):
        errors.append("Prix invalide")

    if not validate_quantity(product.stock):
        errors.append("Stock invalide")

    if product.description and not validate_description(product.description):
        errors.append("Description invalide (10-1000 caractères)")

    if not product.sizes:
        errors.append("Au moins une taille doit être sélectionnée")

    errors.extend(f"Taille invalide: {s}" for s in product.sizes if not validate_size(s))
    errors.extend(f"Couleur invalide: {c}" for c in product.colors if not validate_color(c))

    return Either.from_errors(errors, product)


def validate_product_update(
    changes: ProductUpdate, categories: Sequence[str] = DEFAULT_CATEGORIES
) -> Either[Tuple[str, ...], ProductUpdate]:
    """Частичное обновление: проверяются только переданные поля"""
    errors = []

    if changes.name is not None and not validate_min_length(changes.name, 3):
        errors.append("Le nom du produit doit contenir au moins 3 caractères")
    if changes.category is not None and not validate_category(
        changes.category, categories or DEFAULT_CATEGORIES
    ):
        errors.append("Catégorie invalide")
    if changes.price is not None and not validate_price(changes.price):
        errors.append("Prix invalide")
    if changes.stock is not None and not validate_quantity(changes.stock):
        errors.append("Stock invalide")
    if changes.description and not validate_description(changes.description):
        errors.append("Description invalide (10-1000 caractères)")
    if changes.sizes is not None:
        if not changes.sizes:
            errors.append("Au moins une taille doit être sélectionnée")
        errors.extend(f"Taille invalide: {s}" for s in changes.sizes if not validate_size(s))
    if changes.colors is not None:
        errors.extend(f"Couleur invalide: {c}" for c in changes.colors if not validate_color(c))

    return Either.from_errors(errors, changes)


def validate_checkout(buyer: BuyerInfoPayload) -> Either[Tuple[str, ...], BuyerInfoPayload]:
    """Проверка формы оформления заказа"""
    errors = []

    if not validate_name(buyer.first_name):
        errors.append("Prénom invalide")
    if not validate_name(buyer.last_name):
        errors.append("Nom invalide")
    if not validate_phone_number(buyer.phone):
        errors.append("Numéro de téléphone invalide")
    if not validate_address(buyer.address):
        errors.append("Adresse invalide (minimum 10 caractères)")
    if not validate_required(buyer.city):
        errors.append("Ville requise")

    return Either.from_errors(errors, buyer)
