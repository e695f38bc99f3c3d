"""schema.org JSON-LD parsing shared by every page extractor."""

from __future__ import annotations

import json
import re
from typing import Any

from bs4 import BeautifulSoup

from syncworker.extractors.dom import absolute_url, clean_text, stable_external_id
from syncworker.extractors.records import ExtractedProduct
from syncworker.normalization import parse_price, parse_weight

LD_JSON_TYPE = re.compile("application/ld\\+json", re.I)


def json_ld_products(soup: BeautifulSoup) -> list[dict[str, Any]]:
    products: list[dict[str, Any]] = []
    for script in soup.find_all("script", attrs={"type": LD_JSON_TYPE}):
        text = script.string or script.get_text("", strip=True)
        if not text:
            continue
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            continue
        _collect_products(payload, products)
    return products


def _collect_products(payload: Any, found: list[dict[str, Any]]) -> None:
    if isinstance(payload, list):
        for item in payload:
            _collect_products(item, found)
        return
    if not isinstance(payload, dict):
        return

    kinds = _types(payload)
    if "product" in kinds or "productgroup" in kinds:
        found.append(payload)
        return
    for key in ("@graph", "itemListElement", "item", "mainEntity", "hasPart"):
        if key in payload:
            _collect_products(payload[key], found)


def _types(payload: dict[str, Any]) -> set[str]:
    kind = payload.get("@type")
    if isinstance(kind, list):
        return {str(item).lower() for item in kind}
    return {str(kind).lower()} if kind else set()


def product_from_json_ld(payload: dict[str, Any], page_url: str) -> ExtractedProduct | None:
    name = _text(payload.get("name"))
    offers = _offers(payload)
    price = None
    for offer in offers:
        price = parse_price(offer.get("price") or offer.get("lowPrice"))
        if price is None and isinstance(offer.get("priceSpecification"), dict):
            price = parse_price(offer["priceSpecification"].get("price"))
        if price is not None:
            break
    if not name or price is None or price <= 0:
        return None

    raw_url = _text(payload.get("url"))
    if not raw_url and offers:
        raw_url = _text(offers[0].get("url"))
    product_url = absolute_url(raw_url, page_url)
    sku = _text(payload.get("sku")) or _text(payload.get("mpn"))
    explicit_id = sku or _text(payload.get("productID"))

    stock = None
    availability = " ".join(_text(offer.get("availability")) for offer in offers).lower()
    if availability:
        stock = 0 if ("outofstock" in availability or "soldout" in availability) and "instock" not in availability else 1

    variants = [
        _text(variant.get("size")) or _text(variant.get("name"))
        for variant in _as_list(payload.get("hasVariant"))
        if isinstance(variant, dict)
    ]
    size = _text(payload.get("size"))
    if size:
        variants.insert(0, size)
    colors = [value for value in (_text(item) for item in _as_list(payload.get("color"))) if value]

    dimensions = " x ".join(
        value for value in (_quantity(payload.get(key)) for key in ("width", "height", "depth")) if value
    )
    weight_text = _quantity(payload.get("weight"))

    return ExtractedProduct(
        external_id=explicit_id or stable_external_id(name, product_url, page_url),
        name=name,
        price=price,
        description=_text(payload.get("description")),
        stock=stock,
        image_url=absolute_url(_image(payload.get("image")), page_url),
        product_url=product_url,
        sku=sku,
        brand=_brand(payload.get("brand")),
        colors=colors,
        variants=[value for value in dict.fromkeys(variants) if value],
        weight=parse_weight(weight_text) if weight_text else None,
        dimensions=dimensions,
    )


def _offers(payload: dict[str, Any]) -> list[dict[str, Any]]:
    offers: list[dict[str, Any]] = []
    for offer in _as_list(payload.get("offers")):
        if not isinstance(offer, dict):
            continue
        if "offers" in offer:
            offers.extend(item for item in _as_list(offer["offers"]) if isinstance(item, dict))
        offers.append(offer)
    return offers


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, dict):
        return _text(value.get("name") or value.get("@id"))
    if isinstance(value, list):
        return _text(value[0]) if value else ""
    return clean_text(str(value))


def _brand(value: Any) -> str:
    if isinstance(value, list):
        return _brand(value[0]) if value else ""
    if isinstance(value, dict):
        return _text(value.get("name"))
    return _text(value)


def _image(value: Any) -> str:
    if isinstance(value, list):
        return _image(value[0]) if value else ""
    if isinstance(value, dict):
        return _text(value.get("url") or value.get("contentUrl"))
    return _text(value)


def _quantity(value: Any) -> str:
    if isinstance(value, dict):
        amount = _text(value.get("value"))
        unit = _text(value.get("unitText") or value.get("unitCode"))
        return f"{amount} {unit}".strip() if amount else ""
    return _text(value)
