"""Canonical forms for the loosely-typed fields vendors send us.

Every function here is total: bad input degrades to an empty or absent value
instead of raising, because partial vendor data is the normal case.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

RawValue = Union[str, list[str], dict[str, str]]

NUMBER_RE = re.compile(r"-?\d{1,3}(?:[\s'.,]\d{3})+(?:[.,]\d+)?|-?\d+(?:[.,]\d+)?")
GROUPED_DOT_RE = re.compile(r"-?[1-9]\d{0,2}(?:\.\d{3})+")

FIELD_ALIASES: dict[str, str] = {
    "externalId": "external_id",
    "imageUrl": "image_url",
    "productUrl": "product_url",
}


@dataclass
class NormalizedProduct:
    """One record ready for reconciliation.

    ``None`` on an optional field means the incoming record did not carry it,
    so an update must leave the stored value alone.
    """

    external_id: str | None
    name: str | None
    price: float | None
    description: str | None = None
    stock: int | None = None
    image_url: str | None = None
    product_url: str | None = None
    sku: str | None = None
    brand: str | None = None
    category: str | None = None
    variants: list[str] | None = None
    weight: float | None = None
    dimensions: str | None = None
    attributes: dict[str, Any] | str | None = None

    def missing_fields(self) -> list[str]:
        missing: list[str] = []
        if not self.description:
            missing.append("description")
        if not self.image_url:
            missing.append("imageUrl")
        if not self.product_url:
            missing.append("productUrl")
        return missing


def normalize_variants(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except ValueError:
                return [text]
            if isinstance(parsed, list):
                return [str(item) for item in parsed if item is not None and str(item).strip()]
        return [text]
    if isinstance(raw, (list, tuple)):
        return [str(item) for item in raw if item is not None]
    if isinstance(raw, Mapping):
        return [str(value) for value in raw.values() if value is not None]
    return []


def normalize_category(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (list, tuple)):
        return ", ".join(str(item) for item in raw if item is not None)
    if isinstance(raw, Mapping):
        return ", ".join(str(value) for value in raw.values() if value is not None)
    return str(raw)


def parse_price(raw: Any) -> float | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else None
    if not isinstance(raw, str):
        return None
    return _parse_number_text(raw)


def parse_stock(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    value = parse_price(raw)
    if value is None:
        return None
    return int(value)


def parse_weight(raw: Any) -> float | None:
    return parse_price(raw)


def serialize_variants(variants: list[str] | None) -> str:
    return json.dumps(list(variants or []), ensure_ascii=False)


def serialize_attributes(raw: Any) -> str:
    if raw is None:
        return "{}"
    if isinstance(raw, str):
        return raw
    try:
        return json.dumps(raw, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return "{}"


def normalize_record(raw: Mapping[str, Any]) -> NormalizedProduct:
    data = {FIELD_ALIASES.get(key, key): value for key, value in raw.items()}

    external_id = data.get("external_id")
    name = data.get("name")
    record = NormalizedProduct(
        external_id=str(external_id).strip() if external_id is not None and str(external_id).strip() else None,
        name=str(name).strip() if name is not None and str(name).strip() else None,
        price=parse_price(data.get("price")),
    )

    for key in ("description", "image_url", "product_url", "sku", "brand", "dimensions"):
        if data.get(key) is not None:
            setattr(record, key, str(data[key]).strip())
    if "stock" in data:
        record.stock = parse_stock(data["stock"])
    if "weight" in data:
        record.weight = parse_weight(data["weight"])
    if data.get("category") is not None:
        record.category = normalize_category(data["category"])
    if data.get("variants") is not None:
        record.variants = normalize_variants(data["variants"])
    if data.get("attributes") is not None:
        record.attributes = data["attributes"]
    return record


def _parse_number_text(text: str) -> float | None:
    match = NUMBER_RE.search(text)
    if not match:
        return None
    token = re.sub(r"[\s']", "", match.group(0)).rstrip(".,")
    if not token or token == "-":
        return None

    has_dot = "." in token
    has_comma = "," in token
    if has_dot and has_comma:
        decimal_sep = "." if token.rfind(".") > token.rfind(",") else ","
        thousands_sep = "," if decimal_sep == "." else "."
        token = token.replace(thousands_sep, "").replace(decimal_sep, ".")
    elif has_comma:
        head, _, tail = token.rpartition(",")
        if token.count(",") == 1 and 1 <= len(tail) <= 2:
            token = f"{head}.{tail}"
        else:
            token = token.replace(",", "")
    elif token.count(".") > 1 or GROUPED_DOT_RE.fullmatch(token):
        token = token.replace(".", "")

    try:
        value = float(token)
    except ValueError:
        return None
    return value if math.isfinite(value) else None
