"""
Brand detection for search interactions.

A search like "iphone 15 pro max" carries no brand; the detector maps it to
the canonical catalog brand (APPLE) so the search can be attributed.
"""

import logging
import threading
from typing import Dict, Iterable, Optional

logger = logging.getLogger(__name__)

# Common product-line names -> canonical catalog brand
DEFAULT_BRAND_ALIASES: Dict[str, str] = {
    "iphone": "APPLE",
    "ipad": "APPLE",
    "macbook": "APPLE",
    "imac": "APPLE",
    "pixel": "GOOGLE",
    "samsung": "SAMSUNG",
    "galaxy": "SAMSUNG",
    "dell": "DELL",
    "hp": "HP",
    "lenovo": "LENOVO",
    "thinkpad": "LENOVO",
    "asus": "ASUS",
    "acer": "ACER",
    "msi": "MSI",
    "razer": "RAZER",
}


class BrandDetector:
    """
    Best-effort brand lookup by substring match.

    Known catalog brands are checked first (longest name first, so
    "HP ENVY" style brands win over "HP"), then the alias table.
    """

    def __init__(
        self,
        aliases: Optional[Dict[str, str]] = None,
        known_brands: Optional[Iterable[str]] = None
    ):
        self.aliases = {k.lower(): v for k, v in (aliases if aliases is not None else DEFAULT_BRAND_ALIASES).items()}
        self._known_brands: list[str] = []
        self._lock = threading.Lock()
        if known_brands:
            self.update_known_brands(known_brands)

    def update_known_brands(self, brands: Iterable[str]) -> None:
        cleaned = {b.strip() for b in brands if b and b.strip()}
        with self._lock:
            self._known_brands = sorted(cleaned, key=len, reverse=True)
        logger.info("Brand detector loaded %d catalog brands", len(cleaned))

    @property
    def known_brands(self) -> list[str]:
        return list(self._known_brands)

    def detect(self, search_term: Optional[str]) -> Optional[str]:
        """Return the brand referenced by *search_term*, or None."""
        if not search_term or not search_term.strip():
            return None

        search_lower = search_term.lower()

        for brand in self._known_brands:
            if brand.lower() in search_lower:
                return brand

        for term, brand in self.aliases.items():
            if term in search_lower:
                return brand

        return None
