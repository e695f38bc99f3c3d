from __future__ import annotations

import re

from bs4 import BeautifulSoup, Tag

from syncworker.extractors.base import PageExtractor

POST_ID_RE = re.compile(r"^post-(\d+)$")


class WooCommerceExtractor(PageExtractor):
    name = "woocommerce"
    block_selectors = ["li.product", ".type-product", ".products .product"]
    name_selectors = [".woocommerce-loop-product__title", ".product_title", "h2", "h3"]
    detail_name_selectors = [".product_title", "h1"]
    price_selectors = [
        ".price ins .amount",
        ".price ins",
        ".price .woocommerce-Price-amount",
        ".price .amount",
        ".woocommerce-Price-amount",
        ".price",
    ]
    description_selectors = [
        ".woocommerce-product-details__short-description",
        "#tab-description",
        ".description",
        ".woocommerce-loop-product__excerpt",
    ]
    image_selectors = [".woocommerce-product-gallery__image img", "img.wp-post-image", "img"]
    link_selectors = ["a.woocommerce-loop-product__link", "a.woocommerce-LoopProduct-link", "a[href]"]
    brand_selectors = [".product_meta .brand", ".brand"]
    size_selectors = [
        ".variations select[name*=size i]",
        ".variations select[name*=taille i]",
        ".variations select[id*=size i]",
        "select[name*=pa_size]",
    ]
    color_selectors = [
        ".variations select[name*=color i]",
        ".variations select[name*=couleur i]",
        ".variations select[id*=color i]",
        "select[name*=pa_color]",
        ".variations .attribute-swatch-container [data-value]",
    ]

    def matches(self, url: str, soup: BeautifulSoup) -> bool:
        body = soup.body
        body_classes = set(body.get("class") or []) if body is not None else set()
        if body_classes & {"woocommerce", "woocommerce-page"}:
            return True
        if soup.select_one(".woocommerce") is not None:
            return True
        return soup.find("script", src=re.compile("woocommerce", re.I)) is not None

    def explicit_id(self, block: Tag) -> str:
        explicit = super().explicit_id(block)
        if explicit:
            return explicit
        for css_class in block.get("class") or []:
            match = POST_ID_RE.match(css_class)
            if match:
                return match.group(1)
        return ""
