import math

import pytest

from syncworker.normalization import (
    normalize_category,
    normalize_record,
    normalize_variants,
    parse_price,
    parse_stock,
    serialize_attributes,
    serialize_variants,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("M", ["M"]),
        ('["S", "M", "L"]', ["S", "M", "L"]),
        ("[not json", ["[not json"]),
        (["S", "M"], ["S", "M"]),
        ({"a": "S", "b": "M"}, ["S", "M"]),
        (None, []),
        ("", []),
        (42, []),
    ],
)
def test_normalize_variants(raw, expected):
    assert normalize_variants(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Red, Blue", "Red, Blue"),
        (["Red", "Blue"], "Red, Blue"),
        ({"primary": "Red", "secondary": "Blue"}, "Red, Blue"),
        (None, ""),
        (7, "7"),
    ],
)
def test_normalize_category(raw, expected):
    assert normalize_category(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (19.99, 19.99),
        (20, 20.0),
        ("19,99 €", 19.99),
        ("1.234,56 €", 1234.56),
        ("1.299 €", 1299.0),
        ("1,299 €", 1299.0),
        ("12.500.000", 12500000.0),
        ("0.299", 0.299),
        ("$1,234.56", 1234.56),
        ("CHF 1'299.00", 1299.0),
        ("1 299,00 €", 1299.0),
        ("Sale price $19.99 Regular price $24.99", 19.99),
        ("0.5", 0.5),
    ],
)
def test_parse_price_accepts_common_formats(raw, expected):
    assert parse_price(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", [None, True, "free", "", float("nan"), math.inf, object()])
def test_parse_price_rejects_non_numbers(raw):
    assert parse_price(raw) is None


def test_parse_stock_handles_text_and_floats():
    assert parse_stock("12 in stock") == 12
    assert parse_stock(3.0) == 3
    assert parse_stock("none left") is None


def test_serialize_attributes_and_variants():
    assert serialize_attributes({"material": "cotton"}) == '{"material": "cotton"}'
    assert serialize_attributes('{"raw": true}') == '{"raw": true}'
    assert serialize_attributes(None) == "{}"
    assert serialize_variants(["S", "M"]) == '["S", "M"]'
    assert serialize_variants(None) == "[]"


def test_normalize_record_accepts_camel_case_and_marks_absent_fields():
    record = normalize_record(
        {
            "externalId": " sku-1 ",
            "name": "Linen Shirt",
            "price": "39,90",
            "imageUrl": "https://cdn.example.com/shirt.jpg",
            "variants": '["S", "M"]',
            "category": ["White", "Sand"],
        }
    )

    assert record.external_id == "sku-1"
    assert record.price == pytest.approx(39.9)
    assert record.image_url == "https://cdn.example.com/shirt.jpg"
    assert record.variants == ["S", "M"]
    assert record.category == "White, Sand"
    assert record.description is None
    assert record.stock is None
    assert record.attributes is None
    assert record.missing_fields() == ["description", "productUrl"]


def test_normalize_record_blank_identity_becomes_none():
    record = normalize_record({"externalId": "  ", "name": "", "price": None})
    assert record.external_id is None
    assert record.name is None
    assert record.price is None
