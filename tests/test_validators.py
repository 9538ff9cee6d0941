"""
Unit Tests: Form validation and product rules
"""

from datetime import date
from decimal import Decimal

import pytest

from partshop.common.errors import ValidationError
from partshop.common.services.catalog_service import quantity_cap, validate_product
from partshop.common.utils.validators import FormValidator


def valid_product(**overrides):
    payload = {
        "name": "Alternator",
        "description": "Remanufactured 130A alternator",
        "price": "189.00",
        "make": "Ford",
        "model": "F-150",
        "year": "2012",
        "condition": "refurbished",
        "stock": "4",
        "category_id": "cat-1",
    }
    payload.update(overrides)
    return payload


class TestFormValidator:
    def test_collects_every_failure(self):
        v = FormValidator({"email": "nope", "name": "x"})
        v.require_email()
        v.require_text("name", 2, "Name too short")
        with pytest.raises(ValidationError) as exc:
            v.raise_if_errors()
        assert exc.value.errors == {"email": "Invalid email address", "name": "Name too short"}

    def test_email_is_lowercased(self):
        assert FormValidator({"email": " Jo@Parts.Test "}).require_email() == "jo@parts.test"

    def test_optional_text_blank_is_none(self):
        v = FormValidator({"phone": ""})
        assert v.optional_text("phone", 10, "Phone too short") is None
        assert v.errors == {}

    def test_decimal_quantized_to_cents(self):
        assert FormValidator({"price": "10.129"}).require_decimal("price", Decimal("0.01"), "bad") == Decimal("10.13")


class TestProductRules:
    def test_valid_payload_is_cleaned(self):
        data = validate_product(valid_product())
        assert data["slug"] == "alternator"
        assert data["year"] == 2012
        assert data["stock"] == 4
        assert data["price"] == Decimal("189.00")

    @pytest.mark.parametrize(
        "field,value",
        [
            ("name", "ab"),
            ("description", "short"),
            ("price", "0"),
            ("price", "abc"),
            ("make", ""),
            ("year", "1899"),
            ("year", str(date.today().year + 2)),
            ("condition", "broken"),
            ("stock", "-1"),
            ("category_id", ""),
        ],
    )
    def test_rejects_out_of_range_fields(self, field, value):
        with pytest.raises(ValidationError) as exc:
            validate_product(valid_product(**{field: value}))
        assert field in exc.value.errors

    def test_next_model_year_is_allowed(self):
        data = validate_product(valid_product(year=date.today().year + 1))
        assert data["year"] == date.today().year + 1


class TestQuantityCap:
    @pytest.mark.parametrize("stock,cap", [(0, 0), (3, 3), (10, 10), (25, 10), (None, 0)])
    def test_cap_is_min_of_ten_and_stock(self, stock, cap):
        assert quantity_cap(stock) == cap
