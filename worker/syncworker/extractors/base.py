from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod

from bs4 import BeautifulSoup, Tag

from syncworker.extractors.dom import (
    IMAGE_ATTRS,
    OPTION_PLACEHOLDERS,
    absolute_url,
    attr_value,
    clean_text,
    first_attr,
    first_text,
    looks_like_image_name,
    node_text,
    normalize_attr_key,
    outermost,
    price_from_node,
    price_from_text,
    stable_external_id,
)
from syncworker.extractors.records import ExtractedProduct, dedupe_products
from syncworker.extractors.structured import json_ld_products, product_from_json_ld
from syncworker.normalization import parse_stock, parse_weight

logger = logging.getLogger(__name__)

OUT_OF_STOCK_RE = re.compile(r"out of stock|sold out|rupture|épuisé|indisponible|unavailable", re.I)
SENTENCE_RE = re.compile(r"(?<=[.!?])\s")
ID_ATTRS = ("data-product-id", "data-id", "data-product_id", "data-item-id")
SKIPPED_DATA_ATTRS = {"product_id", "id", "product", "src", "srcset", "lazy_src", "original"}


class PageExtractor(ABC):
    """Turns a rendered storefront page into product records.

    Subclasses tune the selector lists for their platform; ``extract`` takes
    care of per-block isolation, in-page dedup and the product cap.
    """

    name: str = "base"
    block_selectors: list[str] = []
    name_selectors: list[str] = [
        "[itemprop=name]",
        ".product-title",
        ".product-name",
        ".product__title",
        ".card__heading",
        ".title",
        "h2",
        "h3",
        "h4",
        "a[title]",
    ]
    detail_name_selectors: list[str] = ["h1", "[itemprop=name]", ".product-title", ".product_title", "meta[property='og:title']"]
    price_selectors: list[str] = [
        "[itemprop=price]",
        "[data-price]",
        ".price ins",
        ".price-item--sale",
        ".sale-price",
        ".product-price",
        ".price",
        ".amount",
        "[class*=price]",
    ]
    description_selectors: list[str] = [
        "[itemprop=description]",
        ".product-description",
        ".product__description",
        ".description",
        ".excerpt",
        "meta[name=description]",
    ]
    image_selectors: list[str] = ["img[itemprop=image]", ".product-image img", "img"]
    link_selectors: list[str] = ["a[href*='/product']", "a[itemprop=url]", "a.product-link", "a[href]"]
    sku_selectors: list[str] = ["[itemprop=sku]", ".sku", ".product-sku"]
    brand_selectors: list[str] = ["[itemprop=brand] [itemprop=name]", "[itemprop=brand]", ".brand", ".product-brand", ".vendor"]
    stock_selectors: list[str] = ["[data-stock]", ".product-stock", ".stock", "[data-product-stock]", ".inventory", ".availability"]
    size_selectors: list[str] = [
        "select[name*=size i]",
        "select[id*=size i]",
        "select[name*=taille i]",
        "[data-option-name*=size i] [data-value]",
        ".size-option",
        ".sizes li",
        ".swatch-size",
    ]
    color_selectors: list[str] = [
        "select[name*=color i]",
        "select[name*=colour i]",
        "select[name*=couleur i]",
        "[data-option-name*=color i] [data-value]",
        ".color-option",
        ".colors li",
        ".swatch-color",
        "[data-color]",
    ]
    weight_selectors: list[str] = ["[itemprop=weight]", ".product-weight", ".weight"]
    dimension_selectors: list[str] = ["[itemprop=depth]", ".product-dimensions", ".dimensions"]

    @abstractmethod
    def matches(self, url: str, soup: BeautifulSoup) -> bool:
        raise NotImplementedError

    def extract(self, soup: BeautifulSoup, page_url: str, max_products: int) -> list[ExtractedProduct]:
        products = self._parse_blocks(self.find_blocks(soup), page_url)
        return dedupe_products(products, max_products)

    def find_blocks(self, soup: BeautifulSoup) -> list[Tag]:
        if not self.block_selectors:
            return []
        return outermost(soup.select(", ".join(self.block_selectors)))

    def extract_detail(self, soup: BeautifulSoup, page_url: str) -> ExtractedProduct | None:
        """Parse a single product page; used to enrich listing records."""
        for payload in json_ld_products(soup):
            product = product_from_json_ld(payload, page_url)
            if product is not None:
                self._fill_from_block(product, soup.body or soup, page_url)
                return product
        root = soup.body or soup
        return self.parse_block(root, page_url, name_selectors=self.detail_name_selectors, product_url=page_url)

    def parse_block(
        self,
        block: Tag,
        page_url: str,
        name_selectors: list[str] | None = None,
        product_url: str | None = None,
    ) -> ExtractedProduct | None:
        name = first_text(block, name_selectors or self.name_selectors)
        if not name:
            link = block if block.name == "a" else block.select_one("a[href]")
            if link is not None:
                name = clean_text(attr_value(link, "title")) or node_text(link)
        description = first_text(block, self.description_selectors)
        if looks_like_image_name(name) and description:
            name = SENTENCE_RE.split(description, maxsplit=1)[0].rstrip(".!?")
        if not name:
            return None

        price = self.block_price(block)
        if price is None or price <= 0:
            return None

        product_url = product_url or self.block_url(block, page_url)
        sku = self.data_value(block, "data-sku") or first_text(block, self.sku_selectors)
        external_id = self.explicit_id(block) or sku or stable_external_id(name, product_url, page_url)
        product = ExtractedProduct(
            external_id=external_id,
            name=name,
            price=price,
            description=description,
            product_url=product_url,
            sku=sku,
        )
        self._fill_from_block(product, block, page_url)
        return product

    def block_price(self, block: Tag) -> float | None:
        for selector in self.price_selectors:
            node = block.select_one(selector)
            if node is None:
                continue
            price = price_from_node(node)
            if price is not None:
                return price
        return price_from_text(node_text(block))

    def block_url(self, block: Tag, page_url: str) -> str:
        if block.name == "a" and block.get("href"):
            return absolute_url(attr_value(block, "href"), page_url)
        return absolute_url(first_attr(block, self.link_selectors, ("href",)), page_url)

    def explicit_id(self, block: Tag) -> str:
        for attr in ID_ATTRS:
            value = attr_value(block, attr)
            if value:
                return value
        node = block.select_one(", ".join(f"[{attr}]" for attr in ID_ATTRS))
        if node is not None:
            for attr in ID_ATTRS:
                value = attr_value(node, attr)
                if value:
                    return value
        return ""

    def _fill_from_block(self, product: ExtractedProduct, block: Tag, page_url: str) -> None:
        if not product.description:
            product.description = first_text(block, self.description_selectors)
        if not product.image_url:
            product.image_url = absolute_url(first_attr(block, self.image_selectors, IMAGE_ATTRS), page_url)
        if not product.brand:
            product.brand = first_text(block, self.brand_selectors)
        if product.stock is None:
            product.stock = self.block_stock(block)
        product.variants = _union(product.variants, self.options(block, self.size_selectors))
        product.colors = _union(product.colors, self.options(block, self.color_selectors))
        if product.weight is None:
            weight_text = self.data_value(block, "data-weight") or first_text(block, self.weight_selectors)
            product.weight = parse_weight(weight_text) if weight_text else None
        if not product.dimensions:
            product.dimensions = self.data_value(block, "data-dimensions") or first_text(block, self.dimension_selectors)
        for key, value in self.data_attributes(block).items():
            product.attributes.setdefault(key, value)

    def data_value(self, block: Tag, attr: str) -> str:
        value = attr_value(block, attr)
        if value:
            return value
        node = block.select_one(f"[{attr}]")
        return attr_value(node, attr) if node is not None else ""

    def block_stock(self, block: Tag) -> int | None:
        raw_stock = attr_value(block, "data-stock")
        if raw_stock:
            return parse_stock(raw_stock)
        for selector in self.stock_selectors:
            node = block.select_one(selector)
            if node is None:
                continue
            raw = attr_value(node, "data-stock") or attr_value(node, "data-product-stock")
            if raw:
                return parse_stock(raw)
            text = node_text(node)
            if OUT_OF_STOCK_RE.search(text):
                return 0
            digits = re.search(r"\d+", text)
            if digits:
                return int(digits.group(0))
        return None

    def options(self, block: Tag, selectors: list[str]) -> list[str]:
        values: list[str] = []
        for selector in selectors:
            for node in block.select(selector):
                if node.name == "select":
                    candidates = [clean_text(option.get_text()) for option in node.find_all("option")]
                else:
                    candidates = [attr_value(node, "data-value") or attr_value(node, "data-color") or node_text(node)]
                for candidate in candidates:
                    if candidate.lower() in OPTION_PLACEHOLDERS or candidate.lower().startswith(("choose", "select")):
                        continue
                    if candidate not in values:
                        values.append(candidate)
            if values:
                break
        return values

    def data_attributes(self, block: Tag) -> dict[str, str]:
        attributes: dict[str, str] = {}
        for raw_key, raw_value in block.attrs.items():
            if not raw_key.startswith("data-"):
                continue
            key = normalize_attr_key(raw_key[5:])
            if not key or key in SKIPPED_DATA_ATTRS:
                continue
            value = " ".join(raw_value) if isinstance(raw_value, list) else str(raw_value)
            if value.strip():
                attributes[key] = value.strip()
        return attributes

    def _parse_blocks(self, blocks: list[Tag], page_url: str) -> list[ExtractedProduct]:
        products: list[ExtractedProduct] = []
        for index, block in enumerate(blocks):
            try:
                product = self.parse_block(block, page_url)
            except Exception as exc:
                logger.debug("Skipping block %s on %s (%s): %s", index, page_url, self.name, exc)
                continue
            if product is not None:
                products.append(product)
        return products


def _union(left: list[str], right: list[str]) -> list[str]:
    combined = list(left)
    for value in right:
        if value not in combined:
            combined.append(value)
    return combined
