"""Turns a storefront URL into a list of extracted product records.

Rendering happens in a headless browser; parsing works on the rendered HTML
so every heuristic can run offline against saved pages.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from bs4 import BeautifulSoup

from syncworker.config import WorkerSettings, get_settings
from syncworker.errors import ExtractionError
from syncworker.extractors.base import PageExtractor
from syncworker.extractors.records import ExtractedProduct
from syncworker.extractors.registry import CANDIDATE_SELECTOR, ExtractorRegistry
from syncworker.fetchers.browser import BrowserSession

logger = logging.getLogger(__name__)


class ExtractionEngine:
    def __init__(
        self,
        registry: ExtractorRegistry | None = None,
        session_factory: Callable[[WorkerSettings], BrowserSession] = BrowserSession,
        settings: WorkerSettings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.registry = registry or ExtractorRegistry()
        self.session_factory = session_factory

    def extract_products(
        self,
        url: str,
        scroll_to_load: bool = False,
        max_products: int | None = None,
    ) -> list[ExtractedProduct]:
        limit = max_products or self.settings.default_max_products
        logger.info("Extracting products from %s (scroll=%s, max=%s)", url, scroll_to_load, limit)
        try:
            with self.session_factory(self.settings) as session:
                html = session.render(
                    url,
                    scroll_to_load=scroll_to_load,
                    candidate_selector=CANDIDATE_SELECTOR,
                    max_candidates=limit,
                )
                soup = BeautifulSoup(html, "html.parser")
                extractor = self.registry.resolve(url, soup)
                products = extractor.extract(soup, url, limit)
                self._enrich(session, extractor, products)
        except ExtractionError as exc:
            if exc.url:
                raise
            raise ExtractionError(url, exc.message) from exc
        except Exception as exc:
            raise ExtractionError(url, str(exc)) from exc

        logger.info("Extracted %s products from %s", len(products), url)
        return products

    def _enrich(self, session: BrowserSession, extractor: PageExtractor, products: list[ExtractedProduct]) -> None:
        """Visit detail pages of incomplete records; failures leave the listing data as is."""
        candidates = [product for product in products if product.is_incomplete()][: self.settings.enrich_limit]
        for index, product in enumerate(candidates, start=1):
            logger.debug("Enriching product %s/%s: %s", index, len(candidates), product.name)
            try:
                html = session.render(product.product_url)
                detail = extractor.extract_detail(BeautifulSoup(html, "html.parser"), product.product_url)
            except Exception as exc:
                logger.warning("Failed to enrich %s from %s: %s", product.external_id, product.product_url, exc)
                continue
            if detail is not None:
                product.merge(detail)


def extract_products(
    url: str,
    scroll_to_load: bool = False,
    max_products: int | None = None,
) -> list[ExtractedProduct]:
    return ExtractionEngine().extract_products(url, scroll_to_load=scroll_to_load, max_products=max_products)
