"""
Fire badge lifecycle.

Badges are keyed by product id (a product holds at most one live badge) and
each numeric position 1..3 has at most one live badge. A badge's end_time is
fixed when it is created; staying in place never extends it. A badge ends
when its time runs out or when a different product takes its position.

"new" badges are handed out once per product. A product that already had
one does not get another after it expires.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set, Union

from pydantic import BaseModel, Field

from app.core.exceptions import NotFoundError
from app.schemas.trending import (
    FIRE_BADGE_DURATIONS,
    NEW_POSITION,
    NUMERIC_POSITIONS,
    FireBadge,
    RankedProduct,
    normalize_position,
)

logger = logging.getLogger(__name__)


class BadgeChanges(BaseModel):
    """Badges created and ended by one lifecycle operation."""
    active: List[FireBadge] = Field(default_factory=list)
    created: List[FireBadge] = Field(default_factory=list)
    expired: List[FireBadge] = Field(default_factory=list)


class _Pass:
    """Working copy of the badge table for a single operation."""

    def __init__(self, badges: Dict[str, FireBadge]):
        self.badges = {pid: b.model_copy() for pid, b in badges.items()}
        self.created: List[FireBadge] = []
        self.expired: List[FireBadge] = []

    def holder_of(self, position) -> Optional[FireBadge]:
        for badge in self.badges.values():
            if badge.position == position:
                return badge
        return None

    def expire(self, badge: FireBadge) -> None:
        badge.is_active = False
        self.badges.pop(badge.product_id, None)
        self.expired.append(badge)

    def award(self, product_id: str, position, start: datetime, end: datetime, manual: bool = False) -> FireBadge:
        badge = FireBadge(
            product_id=product_id,
            position=position,
            start_time=start,
            end_time=end,
            is_manual=manual,
        )
        self.badges[product_id] = badge
        self.created.append(badge)
        return badge

    def changes(self) -> BadgeChanges:
        return BadgeChanges(
            active=[b.model_copy() for b in self.badges.values()],
            created=[b.model_copy() for b in self.created],
            expired=[b.model_copy() for b in self.expired],
        )


class FireBadgeService:
    """Owns the live badge table and applies ranking changes to it."""

    def __init__(self, durations: Optional[Dict[Union[int, str], timedelta]] = None):
        self.durations = dict(durations or FIRE_BADGE_DURATIONS)
        self._badges: Dict[str, FireBadge] = {}
        self._new_awarded: Set[str] = set()
        self._lock = threading.Lock()

    def duration_for(self, position) -> timedelta:
        return self.durations[normalize_position(position)]

    def apply_ranking(self, entries: List[RankedProduct], now: datetime) -> BadgeChanges:
        """
        Run one lifecycle pass against a fresh ranking.

        Args:
            entries: Ranked entries, as produced by RankService
            now: Time of the pass

        Returns:
            BadgeChanges with the resulting live set plus what was created
            and ended. The new table replaces the old one in one step.
        """
        with self._lock:
            work = _Pass(self._badges)
            new_awarded = set(self._new_awarded)

            # 1. natural expiry
            for badge in list(work.badges.values()):
                if now > badge.end_time:
                    work.expire(badge)

            # 2. numeric positions
            occupants = {e.rank: e for e in entries if e.rank in NUMERIC_POSITIONS}
            for position in NUMERIC_POSITIONS:
                incumbent = work.holder_of(position)
                if incumbent is not None and incumbent.is_manual:
                    continue

                occupant = occupants.get(position)
                if incumbent is not None and occupant is not None and incumbent.product_id == occupant.product_id:
                    continue

                if incumbent is not None:
                    work.expire(incumbent)

                if occupant is None:
                    continue

                held = work.badges.get(occupant.product_id)
                if held is not None:
                    if held.is_manual:
                        continue
                    # numeric takes precedence over "new" or a stale position
                    work.expire(held)

                work.award(occupant.product_id, position, now, now + self.durations[position])

            # 3. "new" entries, once per product
            for entry in entries:
                if entry.rank != NEW_POSITION:
                    continue
                if entry.product_id in work.badges or entry.product_id in new_awarded:
                    continue
                work.award(entry.product_id, NEW_POSITION, now, now + self.durations[NEW_POSITION])
                new_awarded.add(entry.product_id)

            self._badges = work.badges
            self._new_awarded = new_awarded

        if work.created or work.expired:
            logger.info(
                "Badge pass: %d created, %d ended, %d live",
                len(work.created), len(work.expired), len(work.badges)
            )
        return work.changes()

    def create_manual(self, product_id: str, position, duration_minutes: int, now: datetime) -> BadgeChanges:
        """
        Pin *product_id* to *position* for *duration_minutes*.

        Whatever badge the product holds and whatever badge sits at the
        numeric position are ended first.
        """
        position = normalize_position(position)
        with self._lock:
            work = _Pass(self._badges)

            held = work.badges.get(product_id)
            if held is not None:
                work.expire(held)

            if position in NUMERIC_POSITIONS:
                incumbent = work.holder_of(position)
                if incumbent is not None:
                    work.expire(incumbent)

            work.award(product_id, position, now, now + timedelta(minutes=duration_minutes), manual=True)
            if position == NEW_POSITION:
                self._new_awarded.add(product_id)
            self._badges = work.badges

        logger.info("Manual badge for %s at position %s (%d min)", product_id, position, duration_minutes)
        return work.changes()

    def remove_manual(self, product_id: str) -> BadgeChanges:
        with self._lock:
            badge = self._badges.get(product_id)
            if badge is None or not badge.is_manual:
                raise NotFoundError(f"No manual badge for product {product_id}")

            work = _Pass(self._badges)
            work.expire(work.badges[product_id])
            self._badges = work.badges

        logger.info("Manual badge for %s removed", product_id)
        return work.changes()

    def get_badge(self, product_id: str, now: datetime) -> Optional[FireBadge]:
        """Live badge of a product; a timed-out badge reads as absent."""
        badge = self._badges.get(product_id)
        if badge is None or not badge.is_live(now):
            return None
        return badge.model_copy()

    def live_badges(self, now: datetime) -> List[FireBadge]:
        return [b.model_copy() for b in self._badges.values() if b.is_live(now)]

    def load(self, badges: Iterable[FireBadge], new_awarded: Iterable[str]) -> None:
        with self._lock:
            self._badges = {b.product_id: b.model_copy() for b in badges if b.is_active}
            self._new_awarded = set(new_awarded)
        logger.info("Loaded %d active badges", len(self._badges))

    def clear(self) -> None:
        with self._lock:
            self._badges = {}
            self._new_awarded = set()
