"""
Upstream product providers and the multi-provider search fan-out.

Each provider returns ranked CandidateProducts for a query. The
aggregator queries all of them in parallel, keeps whatever arrived
within the timeout, merges in provider priority order, collapses
near-duplicates and caches the result. A failing provider only removes
its own results; if every provider fails the result is an empty list.
"""

from concurrent.futures import ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Protocol

import requests
from supabase import Client

from caching.manager import CacheManager
from config.constants import CACHE_TTL, CacheKeys
from config.settings import Settings, get_settings
from core.logging import get_logger
from matching.dedupe import CandidateProduct, ProductMatcher

logger = get_logger(__name__)


class ProductProvider(Protocol):
    name: str

    def search(self, query: str, limit: int) -> List[CandidateProduct]:
        ...


class ProviderError(RuntimeError):
    """Raised for upstream provider failures."""

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status_code = status_code


# =============================================================================
# Providers
# =============================================================================

class SerperShoppingProvider:
    """Google Shopping results through the Serper API."""

    name = "serper"

    def __init__(self, api_key: str, api_url: str, timeout_seconds: float = 6.0):
        self._api_key = api_key
        self._api_url = api_url
        self._timeout = timeout_seconds

    def search(self, query: str, limit: int) -> List[CandidateProduct]:
        try:
            resp = requests.post(
                self._api_url,
                headers={"X-API-KEY": self._api_key, "Content-Type": "application/json"},
                json={"q": query, "num": limit},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise ProviderError(self.name, str(e)) from e

        if resp.status_code >= 400:
            raise ProviderError(self.name, resp.text[:200], status_code=resp.status_code)

        items = (resp.json() or {}).get("shopping") or []
        products = []
        for item in items[:limit]:
            product = CandidateProduct.from_raw(item, source=self.name)
            if product.title:
                products.append(product)
        return products


class CatalogProvider:
    """Title match over products already stored in the catalog."""

    name = "catalog"

    def __init__(self, supabase: Client):
        self._supabase = supabase

    def search(self, query: str, limit: int) -> List[CandidateProduct]:
        result = (
            self._supabase.table("product_catalog")
            .select("title, brand, category, price, image_url, url")
            .ilike("title", f"%{query.strip()}%")
            .limit(limit)
            .execute()
        )
        return [
            CandidateProduct.from_raw(row, source=self.name)
            for row in result.data or []
            if row.get("title")
        ]


# =============================================================================
# Aggregator
# =============================================================================

class ProviderAggregator:
    def __init__(
        self,
        providers: List[ProductProvider],
        matcher: Optional[ProductMatcher] = None,
        cache: Optional[CacheManager] = None,
        timeout_seconds: float = 8.0,
    ):
        self._providers = list(providers)
        self._matcher = matcher or ProductMatcher()
        self._cache = cache
        self._timeout = timeout_seconds

    @classmethod
    def from_settings(
        cls,
        supabase: Optional[Client] = None,
        cache: Optional[CacheManager] = None,
        settings: Optional[Settings] = None,
    ) -> "ProviderAggregator":
        settings = settings or get_settings()
        providers: List[ProductProvider] = []
        if settings.serper_api_key:
            providers.append(SerperShoppingProvider(
                settings.serper_api_key,
                settings.serper_api_url,
                timeout_seconds=settings.provider_timeout_seconds,
            ))
        if supabase is not None:
            providers.append(CatalogProvider(supabase))
        return cls(
            providers,
            matcher=ProductMatcher(settings.dedup_title_threshold, settings.dedup_price_threshold),
            cache=cache,
            timeout_seconds=settings.provider_fanout_timeout_seconds,
        )

    @property
    def provider_names(self) -> List[str]:
        return [p.name for p in self._providers]

    def search(self, query: str, limit: int) -> List[CandidateProduct]:
        """Deduplicated candidates for a query, at most `limit`. Never raises."""
        query = (query or "").strip()
        if not query or limit <= 0 or not self._providers:
            return []

        cache_key = CacheKeys.search_results(query, limit)
        if self._cache is not None:
            cached = self._cache.get(cache_key)
            if cached:
                return [CandidateProduct.model_validate(item) for item in cached]

        results_by_provider = self._fan_out(query, limit)
        merged: List[CandidateProduct] = []
        for provider in self._providers:
            merged.extend(results_by_provider.get(provider.name, []))

        products = self._matcher.dedupe(merged)[:limit]

        logger.info(
            "Provider search completed",
            query=query,
            providers_ok=sorted(results_by_provider),
            candidates=len(merged),
            returned=len(products),
        )

        if products and self._cache is not None:
            self._cache.set(
                cache_key,
                [p.model_dump() for p in products],
                CACHE_TTL.SEARCH_RESULTS,
            )
        return products

    def _fan_out(self, query: str, limit: int) -> Dict[str, List[CandidateProduct]]:
        results: Dict[str, List[CandidateProduct]] = {}
        executor = ThreadPoolExecutor(max_workers=min(len(self._providers), 4))
        try:
            futures = {
                executor.submit(provider.search, query, limit): provider.name
                for provider in self._providers
            }
            done, not_done = wait(futures, timeout=self._timeout)

            for future in done:
                name = futures[future]
                try:
                    results[name] = future.result()
                except Exception as e:
                    logger.warning("Product provider failed", provider=name, query=query, error=str(e))

            for future in not_done:
                future.cancel()
                logger.warning("Product provider timed out", provider=futures[future], query=query)
        finally:
            # Don't block the request on a hung provider
            executor.shutdown(wait=False, cancel_futures=True)
        return results
