"""
Interaction ingest.

Validates raw storefront payloads and turns them into immutable
``Interaction`` events. Validation failures raise ``ValidationError`` before
any state changes; recording the event is left to the caller.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple
import logging

from app.core.exceptions import ValidationError
from app.models.interaction import InteractionType
from app.schemas.interaction import BatchItemError, Interaction, InteractionCreate
from app.services.brand_detection import BrandDetector

logger = logging.getLogger(__name__)

VALID_TYPES = {t.value for t in InteractionType}


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class InteractionService:
    """
    Service for validating interaction payloads.

    Args:
        brand_detector: Detector used to attribute brandless searches
        clock: Returns the current (UTC) time; used when a payload has no timestamp
    """

    def __init__(
        self,
        brand_detector: Optional[BrandDetector] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.brand_detector = brand_detector or BrandDetector()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def validate(self, payload: InteractionCreate) -> Interaction:
        """
        Build an Interaction from a raw payload.

        Raises:
            ValidationError: type or session_id missing, or type unknown
        """
        raw_type = _clean(payload.type)
        session_id = _clean(payload.session_id)

        if not raw_type or not session_id:
            raise ValidationError("Missing required fields: type, session_id")

        if raw_type not in VALID_TYPES:
            raise ValidationError(
                f"Invalid interaction type '{raw_type}'. Must be one of: {', '.join(sorted(VALID_TYPES))}"
            )

        interaction_type = InteractionType(raw_type)
        search_term = _clean(payload.search_term)
        brand = _clean(payload.brand)

        if interaction_type == InteractionType.SEARCH and not brand:
            brand = self.brand_detector.detect(search_term)
            if brand:
                logger.debug(f"Detected brand {brand} for search '{search_term}'")

        # Client clocks are untrusted: never later than server time
        now = self.clock()
        timestamp = min(_as_utc(payload.timestamp), now) if payload.timestamp else now

        return Interaction(
            type=interaction_type,
            product_id=_clean(payload.product_id),
            brand=brand,
            category=_clean(payload.category),
            search_term=search_term,
            session_id=session_id,
            user_id=_clean(payload.user_id),
            timestamp=timestamp,
        )

    def validate_batch(
        self,
        payloads: List[InteractionCreate]
    ) -> Tuple[List[Interaction], List[BatchItemError]]:
        """Validate every payload independently; bad items are reported, not raised."""
        accepted: List[Interaction] = []
        rejected: List[BatchItemError] = []

        for index, payload in enumerate(payloads):
            try:
                accepted.append(self.validate(payload))
            except ValidationError as e:
                rejected.append(BatchItemError(index=index, error=str(e)))

        if rejected:
            logger.info(f"Batch ingest rejected {len(rejected)} of {len(payloads)} interactions")
        return accepted, rejected
