from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any


@dataclass
class ExtractedProduct:
    external_id: str
    name: str
    price: float
    description: str = ""
    stock: int | None = None
    image_url: str = ""
    product_url: str = ""
    sku: str = ""
    brand: str = ""
    colors: list[str] = field(default_factory=list)
    variants: list[str] = field(default_factory=list)
    weight: float | None = None
    dimensions: str = ""
    attributes: dict[str, str] = field(default_factory=dict)

    def is_incomplete(self) -> bool:
        return bool(self.product_url) and (not self.description or not self.variants)

    def merge(self, other: ExtractedProduct) -> None:
        """Fill empty fields from ``other``; variants and colors are unioned."""
        for item in fields(self):
            if item.name in {"external_id", "variants", "colors", "attributes"}:
                continue
            if getattr(self, item.name) in (None, "") and getattr(other, item.name) not in (None, ""):
                setattr(self, item.name, getattr(other, item.name))
        self.variants = _union(self.variants, other.variants)
        self.colors = _union(self.colors, other.colors)
        for key, value in other.attributes.items():
            self.attributes.setdefault(key, value)

    def to_record(self) -> dict[str, Any]:
        """Wire form consumed by ``normalize_record``; empty optionals are left out."""
        record: dict[str, Any] = {
            "externalId": self.external_id,
            "name": self.name,
            "price": self.price,
        }
        optional = {
            "description": self.description,
            "imageUrl": self.image_url,
            "productUrl": self.product_url,
            "sku": self.sku,
            "brand": self.brand,
            "dimensions": self.dimensions,
        }
        record.update({key: value for key, value in optional.items() if value})
        if self.stock is not None:
            record["stock"] = self.stock
        if self.weight is not None:
            record["weight"] = self.weight
        if self.colors:
            record["category"] = list(self.colors)
        if self.variants:
            record["variants"] = list(self.variants)
        if self.attributes:
            record["attributes"] = dict(self.attributes)
        return record


def dedupe_products(products: list[ExtractedProduct], max_products: int) -> list[ExtractedProduct]:
    """Merge records sharing an externalId or productUrl, keeping first-seen order."""
    merged: list[ExtractedProduct] = []
    by_key: dict[str, ExtractedProduct] = {}
    for product in products:
        keys = [f"id:{product.external_id}"]
        if product.product_url:
            keys.append(f"url:{product.product_url}")
        existing = next((by_key[key] for key in keys if key in by_key), None)
        if existing is not None:
            existing.merge(product)
            for key in keys:
                by_key.setdefault(key, existing)
            continue
        if len(merged) >= max_products:
            continue
        merged.append(product)
        for key in keys:
            by_key[key] = product
    return merged


def _union(left: list[str], right: list[str]) -> list[str]:
    combined = list(left)
    for value in right:
        if value not in combined:
            combined.append(value)
    return combined
