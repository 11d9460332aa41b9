"""
Catalog lookups used to enrich the ranking with display fields.

The storefront catalog itself lives elsewhere; these clients only read
brand/name/price by product id. A miss or a failed call is never fatal.
"""

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Protocol
import logging
import httpx

from app.schemas.trending import CatalogEntry

logger = logging.getLogger(__name__)


class CatalogLookup(Protocol):
    async def lookup(self, product_id: str) -> Optional[CatalogEntry]:
        ...

    async def brands(self) -> List[str]:
        ...


def _entry_from_payload(payload: Dict[str, Any], product_id: Optional[str] = None) -> Optional[CatalogEntry]:
    pid = payload.get("product_id") or payload.get("productId") or payload.get("id") or product_id
    if not pid:
        return None
    price = payload.get("price")
    try:
        price = float(price) if price is not None else None
    except (TypeError, ValueError):
        price = None
    return CatalogEntry(
        product_id=str(pid),
        brand=payload.get("brand"),
        name=payload.get("name"),
        price=price,
    )


class InMemoryCatalog:
    """Catalog backed by a dict; used in tests and single-process setups."""

    def __init__(self, entries: Optional[Iterable[CatalogEntry]] = None):
        self._entries: Dict[str, CatalogEntry] = {}
        for entry in entries or []:
            self.add(entry)

    def add(self, entry: CatalogEntry) -> None:
        self._entries[entry.product_id] = entry

    async def lookup(self, product_id: str) -> Optional[CatalogEntry]:
        return self._entries.get(product_id)

    async def brands(self) -> List[str]:
        return sorted({e.brand for e in self._entries.values() if e.brand})


class HttpCatalogClient:
    """
    Reads the storefront catalog API.

    ``GET {base_url}/{product_id}`` returns one product,
    ``GET {base_url}`` returns the product list (or ``{"products": [...]}``).
    """

    def __init__(
        self,
        base_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0
    ):
        self.base_url = base_url.rstrip("/")
        self._client = http_client
        self._owns_client = http_client is None
        self.timeout = timeout

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def lookup(self, product_id: str) -> Optional[CatalogEntry]:
        try:
            response = await self._get_client().get(f"{self.base_url}/{product_id}")
        except httpx.HTTPError as e:
            logger.warning(f"Catalog lookup failed for {product_id}: {e}")
            return None

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            logger.warning(f"Catalog API error for {product_id}: {response.status_code}")
            return None

        body = response.json()
        if isinstance(body, dict) and isinstance(body.get("product"), dict):
            body = body["product"]
        if not isinstance(body, dict):
            return None
        return _entry_from_payload(body, product_id)

    async def brands(self) -> List[str]:
        try:
            response = await self._get_client().get(self.base_url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Catalog brand listing failed: {e}")
            return []

        body = response.json()
        products = body.get("products", []) if isinstance(body, dict) else body
        return sorted({p["brand"] for p in products if isinstance(p, dict) and p.get("brand")})

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
