from __future__ import annotations

import hashlib
import re
from urllib.parse import urljoin, urlparse

from bs4 import Tag

from syncworker.normalization import parse_price

WHITESPACE_RE = re.compile(r"\s+")
SLUG_RE = re.compile(r"[^a-z0-9]+")
PRICE_TEXT_RE = re.compile(
    r"(?:[$€£¥₹]|\b(?:USD|EUR|GBP|CHF|CAD|AUD|NZD)\b)\s?\d[\d\s.,]*"
    r"|\d[\d\s.,]*\s?(?:[$€£¥₹]|\b(?:USD|EUR|GBP|CHF|CAD|AUD|NZD)\b)"
)
IMAGE_NAME_RE = re.compile(r"^(?:img|dsc|p)_?\d+(?:\.(?:jpe?g|png|webp))?$|^\d+\.(?:jpe?g|png|webp)$", re.I)
OPTION_PLACEHOLDERS = {"", "--", "choose", "choisir", "select", "choose an option", "select size", "select color"}
IMAGE_ATTRS = ("data-src", "data-lazy-src", "data-original", "src", "data-srcset", "srcset", "data-zoom-image")


def clean_text(value: str | None) -> str:
    if not value:
        return ""
    return WHITESPACE_RE.sub(" ", value).strip()


def node_text(node: Tag) -> str:
    return clean_text(node.get_text(" ", strip=True))


def first_text(block: Tag, selectors: list[str]) -> str:
    for selector in selectors:
        node = block.select_one(selector)
        if node is None:
            continue
        text = clean_text(node.get("content")) or node_text(node)
        if text:
            return text
    return ""


def first_attr(block: Tag, selectors: list[str], attrs: tuple[str, ...]) -> str:
    for selector in selectors:
        node = block.select_one(selector)
        if node is None:
            continue
        for attr in attrs:
            value = attr_value(node, attr)
            if value and not value.startswith("data:"):
                return value
    return ""


def attr_value(node: Tag, attr: str) -> str:
    value = node.get(attr)
    if isinstance(value, list):
        value = " ".join(value)
    if not value:
        return ""
    text = str(value).strip()
    if attr.endswith("srcset"):
        text = text.split(",")[0].strip().split(" ")[0]
    return text


def price_from_node(node: Tag) -> float | None:
    for attr in ("content", "data-price", "data-price-amount", "data-product-price"):
        value = parse_price(attr_value(node, attr))
        if value is not None:
            return value
    sale = node.find("ins")
    if isinstance(sale, Tag):
        value = parse_price(node_text(sale))
        if value is not None:
            return value
    return parse_price(node_text(node))


def price_from_text(text: str) -> float | None:
    match = PRICE_TEXT_RE.search(text)
    if not match:
        return None
    return parse_price(match.group(0))


def has_price_text(node: Tag) -> bool:
    return PRICE_TEXT_RE.search(node.get_text(" ", strip=True)) is not None


def absolute_url(url: str | None, base_url: str) -> str:
    if not url:
        return ""
    url = url.strip()
    if url.startswith(("data:", "javascript:", "#", "mailto:")):
        return ""
    if url.startswith("//"):
        return f"https:{url}"
    return urljoin(base_url, url)


def host_of(url: str) -> str:
    host = urlparse(url).netloc.lower()
    return host[4:] if host.startswith("www.") else host


def slugify(value: str) -> str:
    return SLUG_RE.sub("-", value.lower()).strip("-")


def stable_external_id(name: str, product_url: str, page_url: str) -> str:
    host = host_of(product_url or page_url) or "unknown-domain"
    digest = hashlib.sha1(f"{clean_text(name).lower()}|{product_url}".encode("utf-8")).hexdigest()[:10]
    slug = slugify(name)[:60].strip("-") or "product"
    return f"{host}-{slug}-{digest}"


def looks_like_image_name(name: str) -> bool:
    return bool(IMAGE_NAME_RE.match(name.strip()))


def normalize_attr_key(raw_key: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", raw_key.strip().lower()).strip("_")


def outermost(nodes: list[Tag]) -> list[Tag]:
    """Drop nodes nested inside another node of the same list."""
    ids = {id(node) for node in nodes}
    kept: list[Tag] = []
    for node in nodes:
        if any(id(parent) in ids for parent in node.parents):
            continue
        kept.append(node)
    return kept
