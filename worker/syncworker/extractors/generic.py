from __future__ import annotations

import logging
import re
from collections import defaultdict
from collections.abc import Callable

from bs4 import BeautifulSoup, Tag

from syncworker.extractors.base import PageExtractor
from syncworker.extractors.dom import has_price_text, outermost
from syncworker.extractors.records import ExtractedProduct, dedupe_products
from syncworker.extractors.structured import json_ld_products, product_from_json_ld

logger = logging.getLogger(__name__)

PRODUCT_LINK_RE = re.compile(r"/(?:products?|produits?|shop|item|p)/[^/?#]+", re.I)
ADD_TO_CART_RE = re.compile(r"add to (?:cart|bag|basket)|ajouter au panier|buy now|acheter", re.I)
MIN_REPEATS = 3
MAX_BLOCK_TEXT = 1000
PRODUCT_PAGE_SCORE = 3


class GenericExtractor(PageExtractor):
    """Best-effort heuristics for storefronts with no platform-specific extractor.

    JSON-LD and selector cards are read together; the JSON-LD records stand
    alone only when they cover at least as many products as the cards. The
    remaining strategies run in priority order and the first non-empty one wins.
    """

    name = "generic"
    block_selectors = [
        "[itemtype*='schema.org/Product']",
        ".product-card",
        ".product-item",
        ".product-tile",
        ".product-grid-item",
        ".grid-product",
        ".product",
        "[data-product-id]",
        "[data-product]",
    ]

    def matches(self, url: str, soup: BeautifulSoup) -> bool:
        return True

    def extract(self, soup: BeautifulSoup, page_url: str, max_products: int) -> list[ExtractedProduct]:
        structured = self.from_json_ld(soup, page_url)
        cards = self.from_selectors(soup, page_url)
        if structured and len(structured) >= len(cards):
            return self._finish("json-ld", structured, page_url, max_products)
        if cards:
            # a featured JSON-LD product must not hide the rest of the grid
            return self._finish("json-ld+selectors" if structured else "selectors", structured + cards, page_url, max_products)

        fallbacks: list[tuple[str, Callable[[BeautifulSoup, str], list[ExtractedProduct]]]] = [
            ("structural", self.from_structural_repetition),
            ("product-links", self.from_product_links),
            ("detail-page", self.from_detail_page),
        ]
        for label, strategy in fallbacks:
            products = strategy(soup, page_url)
            if products:
                return self._finish(label, products, page_url, max_products)
        logger.info("Generic extraction found no product blocks on %s", page_url)
        return []

    def _finish(self, label: str, products: list[ExtractedProduct], page_url: str, max_products: int) -> list[ExtractedProduct]:
        logger.info("Generic extraction on %s used %s strategy (%s products)", page_url, label, len(products))
        return dedupe_products(products, max_products)

    def from_json_ld(self, soup: BeautifulSoup, page_url: str) -> list[ExtractedProduct]:
        products: list[ExtractedProduct] = []
        for payload in json_ld_products(soup):
            product = product_from_json_ld(payload, page_url)
            if product is not None:
                products.append(product)
        return products

    def from_selectors(self, soup: BeautifulSoup, page_url: str) -> list[ExtractedProduct]:
        return self._parse_blocks(self.find_blocks(soup), page_url)

    def from_structural_repetition(self, soup: BeautifulSoup, page_url: str) -> list[ExtractedProduct]:
        return self._parse_blocks(self.repeated_blocks(soup), page_url)

    def from_product_links(self, soup: BeautifulSoup, page_url: str) -> list[ExtractedProduct]:
        parents: list[Tag] = []
        for link in soup.find_all("a", href=PRODUCT_LINK_RE):
            parent = link
            # climb until the container carries a price
            for _ in range(4):
                if has_price_text(parent) or parent.parent is None or parent.parent.name in {"body", "html"}:
                    break
                parent = parent.parent
            if parent not in parents:
                parents.append(parent)
        return self._parse_blocks(outermost(parents), page_url)

    def from_detail_page(self, soup: BeautifulSoup, page_url: str) -> list[ExtractedProduct]:
        if not self.is_product_page(soup):
            return []
        product = self.extract_detail(soup, page_url)
        return [product] if product is not None else []

    def repeated_blocks(self, soup: BeautifulSoup) -> list[Tag]:
        """Find the largest sibling group sharing a tag+class signature that looks like product cards."""
        best: list[Tag] = []
        for container in soup.find_all(True):
            groups: dict[tuple[str, tuple[str, ...]], list[Tag]] = defaultdict(list)
            for child in container.find_all(True, recursive=False):
                classes = tuple(sorted(child.get("class") or []))
                groups[(child.name, classes)].append(child)
            for members in groups.values():
                if len(members) < MIN_REPEATS or len(members) <= len(best):
                    continue
                candidates = [
                    member
                    for member in members
                    if len(member.get_text(" ", strip=True)) <= MAX_BLOCK_TEXT
                    and has_price_text(member)
                    and (member.name == "a" or member.find("a", href=True) is not None)
                ]
                if len(candidates) >= MIN_REPEATS and len(candidates) > len(best):
                    best = candidates
        return best

    def is_product_page(self, soup: BeautifulSoup) -> bool:
        score = 0
        buttons = soup.find_all(["button", "input", "a"])
        if any(ADD_TO_CART_RE.search(button.get_text(" ", strip=True) or str(button.get("value") or "")) for button in buttons):
            score += 2
        if len(soup.find_all(["h1", "h2"])) < 3:
            score += 1
        if soup.select_one(".product-image, .product__media, .woocommerce-product-gallery, [itemprop=image]") is not None:
            score += 1
        if soup.select_one("select[name*=size i], select[name*=color i], .variations, .product-form__input") is not None:
            score += 1
        return score >= PRODUCT_PAGE_SCORE
