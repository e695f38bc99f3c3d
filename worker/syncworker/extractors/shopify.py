from __future__ import annotations

import json
import logging
import re
from typing import Any
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from syncworker.extractors.base import PageExtractor
from syncworker.extractors.dom import absolute_url, attr_value, clean_text
from syncworker.extractors.records import ExtractedProduct, dedupe_products
from syncworker.normalization import parse_price

logger = logging.getLogger(__name__)

HANDLE_RE = re.compile(r"/products/([^/?#]+)")
TAG_RE = re.compile(r"<[^>]+>")
COLOR_OPTION_NAMES = ("color", "colour", "couleur")
SIZE_OPTION_NAMES = ("size", "taille", "pointure")


class ShopifyExtractor(PageExtractor):
    name = "shopify"
    block_selectors = [
        ".product-card",
        ".card-wrapper",
        ".grid-product",
        ".grid__item",
        ".grid-item",
        ".product-item",
        "[data-product-id]",
    ]
    name_selectors = [
        ".card__heading",
        ".product-card__title",
        ".grid-product__title",
        ".product-item__title",
        "[class*=title]",
        "[class*=name]",
        "h2",
        "h3",
    ]
    detail_name_selectors = ["h1.product-single__title", "h1.product__title", "h1.title", ".product__title", "h1"]
    price_selectors = [
        ".price-item--sale",
        ".price__sale .price-item",
        ".price-item--regular",
        ".product__price",
        ".price__current",
        ".product-single__price",
        "[class*=price]",
    ]
    description_selectors = [
        ".product-single__description",
        ".product__description",
        ".description",
        "[class*=product-description]",
    ]
    image_selectors = [".product-featured-img", ".product-single__media img", ".card__media img", "img"]
    link_selectors = ["a[href*='/products/']", "a[href]"]
    brand_selectors = [".product-vendor", ".card__vendor", ".vendor", "[itemprop=brand]"]
    size_selectors = [
        "select[name*=size i]",
        "select[data-option-name*=size i]",
        "fieldset[data-option-name*=size i] input",
        ".swatch[data-option-index='1'] [data-value]",
        ".single-option-selector",
    ]
    color_selectors = [
        "select[name*=color i]",
        "select[data-option-name*=color i]",
        "fieldset[data-option-name*=color i] input",
        ".swatch[data-option-index='0'] [data-value]",
    ]

    def matches(self, url: str, soup: BeautifulSoup) -> bool:
        host = urlparse(url).netloc.lower()
        if host.endswith("myshopify.com"):
            return True
        if soup.find("script", src=re.compile("cdn\\.shopify\\.com|shopify", re.I)) is not None:
            return True
        if soup.find("link", href=re.compile("cdn\\.shopify\\.com", re.I)) is not None:
            return True
        return any("Shopify." in (script.string or "") for script in soup.find_all("script"))

    def extract(self, soup: BeautifulSoup, page_url: str, max_products: int) -> list[ExtractedProduct]:
        products = self.from_product_json(soup, page_url)
        if products:
            logger.info("Shopify product JSON yielded %s products on %s", len(products), page_url)
        ids_by_handle: dict[str, str] = {}
        for product in products:
            handle = product_handle(product.product_url)
            if handle:
                ids_by_handle[handle] = product.external_id
        for card in self._parse_blocks(self.find_blocks(soup), page_url):
            # cards and product JSON must agree on one id per handle
            handle = product_handle(card.product_url)
            if handle in ids_by_handle:
                card.external_id = ids_by_handle[handle]
            products.append(card)
        return dedupe_products(products, max_products)

    def extract_detail(self, soup: BeautifulSoup, page_url: str) -> ExtractedProduct | None:
        products = self.from_product_json(soup, page_url)
        if products:
            product = products[0]
            product.product_url = product.product_url or page_url
            return product
        return super().extract_detail(soup, page_url)

    def block_url(self, block: Tag, page_url: str) -> str:
        """Collection-scoped links are folded onto the canonical ``/products/<handle>`` URL."""
        url = super().block_url(block, page_url)
        handle = product_handle(url)
        return absolute_url(f"/products/{handle}", url) if handle else url

    def explicit_id(self, block: Tag) -> str:
        explicit = super().explicit_id(block)
        if explicit:
            return explicit
        link = block.select_one("a[href*='/products/']")
        return product_handle(attr_value(link, "href")) if link is not None else ""

    def from_product_json(self, soup: BeautifulSoup, page_url: str) -> list[ExtractedProduct]:
        products: list[ExtractedProduct] = []
        for script in soup.find_all("script", attrs={"type": "application/json"}):
            text = script.string or script.get_text("", strip=True)
            if not text or '"variants"' not in text:
                continue
            try:
                payload = json.loads(text)
            except json.JSONDecodeError:
                continue
            candidates: list[Any] = []
            if isinstance(payload, dict) and isinstance(payload.get("products"), list):
                candidates = payload["products"]
            elif isinstance(payload, dict) and isinstance(payload.get("product"), dict):
                candidates = [payload["product"]]
            elif isinstance(payload, dict):
                candidates = [payload]
            for item in candidates:
                product = self._product_from_json(item, page_url) if isinstance(item, dict) else None
                if product is not None:
                    products.append(product)
        return products

    def _product_from_json(self, item: dict[str, Any], page_url: str) -> ExtractedProduct | None:
        name = clean_text(str(item.get("title") or ""))
        variants = [variant for variant in item.get("variants") or [] if isinstance(variant, dict)]
        price = _shopify_price(item.get("price"))
        if price is None and variants:
            price = _shopify_price(variants[0].get("price"))
        if not name or item.get("id") is None or price is None or price <= 0:
            return None

        colors: list[str] = []
        sizes: list[str] = []
        for option in item.get("options") or []:
            if not isinstance(option, dict):
                continue
            option_name = str(option.get("name") or "").lower()
            values = [str(value) for value in option.get("values") or []]
            if any(token in option_name for token in COLOR_OPTION_NAMES):
                colors.extend(values)
            elif any(token in option_name for token in SIZE_OPTION_NAMES):
                sizes.extend(values)
        if not sizes and not colors and len(variants) > 1:
            sizes = [str(variant.get("title")) for variant in variants if variant.get("title")]

        handle = item.get("handle")
        product_url = absolute_url(f"/products/{handle}", page_url) if handle else ""
        image = item.get("featured_image") or (item.get("images") or [""])[0]
        if isinstance(image, dict):
            image = image.get("src") or ""
        available = item.get("available")
        if available is None and variants:
            available = any(variant.get("available", True) for variant in variants)

        return ExtractedProduct(
            external_id=str(item["id"]),
            name=name,
            price=price,
            description=clean_text(TAG_RE.sub(" ", str(item.get("description") or item.get("body_html") or ""))),
            stock=None if available is None else (1 if available else 0),
            image_url=absolute_url(str(image), page_url),
            product_url=product_url,
            sku=str(variants[0].get("sku") or "") if variants else "",
            brand=clean_text(str(item.get("vendor") or "")),
            colors=colors,
            variants=sizes,
        )


def _shopify_price(raw: Any) -> float | None:
    """Shopify JSON carries integer cents; storefront strings are already in units."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw / 100
    return parse_price(raw)


def product_handle(url: str) -> str:
    match = HANDLE_RE.search(url or "")
    return match.group(1) if match else ""
