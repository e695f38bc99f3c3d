from __future__ import annotations

import logging

from bs4 import BeautifulSoup

from syncworker.extractors.base import PageExtractor
from syncworker.extractors.dom import host_of
from syncworker.extractors.generic import GenericExtractor
from syncworker.extractors.shopify import ShopifyExtractor
from syncworker.extractors.woocommerce import WooCommerceExtractor

logger = logging.getLogger(__name__)

CANDIDATE_SELECTOR = ".product, [data-product-id], [data-product], .product-item, .product-card, li.product"


class ExtractorRegistry:
    """Picks the extractor for a page: host overrides, then platforms, then generic."""

    def __init__(
        self,
        platform_extractors: list[PageExtractor] | None = None,
        fallback: PageExtractor | None = None,
    ) -> None:
        self.platform_extractors = platform_extractors if platform_extractors is not None else [
            ShopifyExtractor(),
            WooCommerceExtractor(),
        ]
        self.fallback = fallback or GenericExtractor()
        self._overrides: dict[str, PageExtractor] = {}

    def register(self, host: str, extractor: PageExtractor) -> None:
        self._overrides[host_of(f"//{host}") if "//" not in host else host_of(host)] = extractor

    def resolve(self, url: str, soup: BeautifulSoup) -> PageExtractor:
        override = self._overrides.get(host_of(url))
        if override is not None:
            logger.debug("Using %s override for %s", override.name, url)
            return override
        for extractor in self.platform_extractors:
            if extractor.matches(url, soup):
                logger.info("Detected %s storefront at %s", extractor.name, url)
                return extractor
        return self.fallback
