import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import pytest
from siggil.schemas import BuyerInfoPayload, ProductCreate, ProductUpdate
from siggil.validation import (
    validate_address,
    validate_checkout,
    validate_color,
    validate_name,
    validate_phone_number,
    validate_price,
    validate_product,
    validate_product_update,
    validate_quantity,
    validate_size,
)


@pytest.mark.parametrize(
    "phone,ok",
    [
        ("771234567", True),
        ("77 123 45 67", True),
        ("+221 77 123 45 67", True),
        ("338201234", True),
        ("991234567", False),
        ("77123", False),
        ("", False),
    ],
)
def test_phone_number(phone, ok):
    assert validate_phone_number(phone) is ok


def test_scalar_validators():
    assert validate_price(5000)
    assert not validate_price(0)
    assert not validate_price(1_000_001)
    assert validate_quantity(1)
    assert not validate_quantity(0)
    assert validate_name("Aïssatou")
    assert not validate_name("A")
    assert validate_address("Rue 10, Médina")
    assert not validate_address("Rue 10")
    assert validate_size("XL")
    assert not validate_size("XXXL")
    assert validate_color("Noir")
    assert not validate_color("fuchsia")


def test_validate_product_collects_all_errors():
    product = ProductCreate(
        name="T", category="Robes", price=0, stock=0, sizes=[], colors=["fuchsia"]
    )
    result = validate_product(product)

    assert result.is_left
    errors = result.value
    assert "Catégorie invalide" in errors
    assert "Prix invalide" in errors
    assert "Au moins une taille doit être sélectionnée" in errors
    assert "Couleur invalide: fuchsia" in errors


def test_validate_product_ok_with_custom_categories():
    product = ProductCreate(
        name="Bob SIGGIL", category="Chapeaux", price=4000, stock=3,
        sizes=["One Size"], colors=["noir"],
    )
    assert validate_product(product, ("Chapeaux",)).is_right
    assert validate_product(product).is_left


def test_validate_checkout():
    good = BuyerInfoPayload(
        first_name="Awa", last_name="Diop", phone="771234567",
        address="Rue 10, Médina", city="Dakar",
    )
    assert validate_checkout(good).is_right

    bad = BuyerInfoPayload(first_name="A", last_name="Diop", phone="12", address="x", city=" ")
    result = validate_checkout(bad)
    assert result.is_left
    assert len(result.value) == 4


def test_validate_product_update_checks_given_fields():
    assert validate_product_update(ProductUpdate()).is_right
    assert validate_product_update(ProductUpdate(price=6000, stock=4)).is_right

    result = validate_product_update(ProductUpdate(category="Robes", price=0, sizes=[]))
    assert result.is_left
    assert set(result.value) == {
        "Catégorie invalide",
        "Prix invalide",
        "Au moins une taille doit être sélectionnée",
    }
    assert validate_product_update(ProductUpdate(category="Chapeaux"), ("Chapeaux",)).is_right
