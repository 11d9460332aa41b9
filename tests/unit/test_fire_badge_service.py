"""
Unit tests for FireBadgeService.

The regression-critical rule: a product that stays in its position keeps the
badge it got, with the same end_time.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import NotFoundError
from app.schemas.trending import FireBadge, RankedProduct
from app.services.fire_badge_service import FireBadgeService

T0 = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def _ranking(*product_ids, new=()):
    """Entries ranked 1..n in the given order, followed by "new" entries."""
    entries = [
        RankedProduct(product_id=pid, score=100 - i, rank=i + 1)
        for i, pid in enumerate(product_ids)
    ]
    entries += [RankedProduct(product_id=pid, score=1, rank="new") for pid in new]
    return entries


def _by_product(badges):
    return {b.product_id: b for b in badges}


# ---------------------------------------------------------------------------
# Numeric positions
# ---------------------------------------------------------------------------
class TestNumericPositions:
    def test_top_three_get_badges_with_position_durations(self):
        service = FireBadgeService()
        changes = service.apply_ranking(_ranking("a", "b", "c", "d"), T0)

        badges = _by_product(changes.active)
        assert set(badges) == {"a", "b", "c"}
        assert badges["a"].end_time == T0 + timedelta(hours=2)
        assert badges["b"].end_time == T0 + timedelta(hours=1)
        assert badges["c"].end_time == T0 + timedelta(minutes=30)
        assert all(b.start_time == T0 for b in badges.values())

    def test_staying_in_place_does_not_reset_timer(self):
        service = FireBadgeService()
        first = _by_product(service.apply_ranking(_ranking("a"), T0).active)["a"]

        second_pass = service.apply_ranking(_ranking("a"), T0 + timedelta(hours=1))
        second = _by_product(second_pass.active)["a"]

        assert second.id == first.id
        assert second.end_time == T0 + timedelta(hours=2)
        assert second_pass.created == []

    def test_displaced_incumbent_is_replaced(self):
        service = FireBadgeService()
        service.apply_ranking(_ranking("p"), T0)

        now = T0 + timedelta(minutes=45)
        changes = service.apply_ranking(_ranking("q", "p"), now)
        badges = _by_product(changes.active)

        assert badges["q"].position == 1
        assert badges["q"].end_time == now + timedelta(hours=2)
        # p moved to 2 and got a fresh position-2 badge
        assert badges["p"].position == 2
        assert badges["p"].start_time == now
        ended = [b for b in changes.expired if b.product_id == "p"]
        assert ended and ended[0].position == 1 and ended[0].is_active is False

    def test_expired_incumbent_gets_fresh_badge(self):
        service = FireBadgeService()
        service.apply_ranking(_ranking("a", "b", "c"), T0)

        now = T0 + timedelta(minutes=31)
        changes = service.apply_ranking(_ranking("a", "b", "c"), now)
        badges = _by_product(changes.active)

        # position 3 lasts 30 minutes; the same occupant gets a new badge
        assert badges["c"].start_time == now
        assert badges["c"].end_time == now + timedelta(minutes=30)
        assert badges["a"].start_time == T0

    def test_empty_position_ends_incumbent(self):
        service = FireBadgeService()
        service.apply_ranking(_ranking("a", "b"), T0)
        changes = service.apply_ranking(_ranking("a"), T0 + timedelta(minutes=5))
        assert set(_by_product(changes.active)) == {"a"}

    def test_one_badge_per_position_and_product(self):
        service = FireBadgeService()
        service.apply_ranking(_ranking("a", "b", "c"), T0)
        changes = service.apply_ranking(_ranking("c", "a", "b"), T0 + timedelta(minutes=10))

        positions = [b.position for b in changes.active]
        products = [b.product_id for b in changes.active]
        assert sorted(positions) == [1, 2, 3]
        assert len(products) == len(set(products))


# ---------------------------------------------------------------------------
# "new" badges
# ---------------------------------------------------------------------------
class TestNewBadges:
    def test_new_entries_get_one_hour_badge(self):
        service = FireBadgeService()
        changes = service.apply_ranking(_ranking("a", new=("fresh",)), T0)
        badge = _by_product(changes.active)["fresh"]
        assert badge.position == "new"
        assert badge.end_time == T0 + timedelta(hours=1)

    def test_new_badge_not_reawarded_after_expiry(self):
        service = FireBadgeService()
        service.apply_ranking(_ranking(new=("fresh",)), T0)

        changes = service.apply_ranking(_ranking(new=("fresh",)), T0 + timedelta(minutes=61))
        assert "fresh" not in _by_product(changes.active)

    def test_new_badge_kept_while_live(self):
        service = FireBadgeService()
        first = service.apply_ranking(_ranking(new=("fresh",)), T0).active[0]
        second = service.apply_ranking(_ranking(new=("fresh",)), T0 + timedelta(minutes=30)).active[0]
        assert second.id == first.id

    def test_numeric_position_takes_precedence(self):
        service = FireBadgeService()
        service.apply_ranking(_ranking(new=("fresh",)), T0)

        changes = service.apply_ranking(_ranking("fresh"), T0 + timedelta(minutes=10))
        badges = [b for b in changes.active if b.product_id == "fresh"]
        assert len(badges) == 1
        assert badges[0].position == 1


# ---------------------------------------------------------------------------
# Manual badges
# ---------------------------------------------------------------------------
class TestManualBadges:
    def test_manual_badge_replaces_position_incumbent(self):
        service = FireBadgeService()
        service.apply_ranking(_ranking("a", "b"), T0)

        changes = service.create_manual("promo", 1, 90, T0 + timedelta(minutes=1))
        badges = _by_product(changes.active)

        assert "a" not in badges
        assert badges["promo"].is_manual is True
        assert badges["promo"].end_time == T0 + timedelta(minutes=91)

    def test_manual_badge_survives_ranking_pass(self):
        service = FireBadgeService()
        service.create_manual("promo", 1, 90, T0)

        changes = service.apply_ranking(_ranking("a", "b"), T0 + timedelta(minutes=5))
        badges = _by_product(changes.active)

        assert badges["promo"].position == 1
        assert "a" not in badges  # position 1 is pinned
        assert badges["b"].position == 2

    def test_manual_badge_ends_on_time(self):
        service = FireBadgeService()
        service.create_manual("promo", 2, 10, T0)
        changes = service.apply_ranking(_ranking("a", "b"), T0 + timedelta(minutes=11))
        assert _by_product(changes.active)["b"].position == 2
        assert "promo" not in _by_product(changes.active)

    def test_remove_manual(self):
        service = FireBadgeService()
        service.create_manual("promo", "new", 30, T0)
        changes = service.remove_manual("promo")
        assert changes.active == []
        assert changes.expired[0].product_id == "promo"

    def test_remove_unknown_manual_raises(self):
        service = FireBadgeService()
        service.apply_ranking(_ranking("a"), T0)
        with pytest.raises(NotFoundError):
            service.remove_manual("a")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
class TestReads:
    def test_time_remaining_clamps_to_zero(self):
        badge = FireBadge(product_id="a", position=1, start_time=T0, end_time=T0 + timedelta(hours=2))
        assert badge.time_remaining_ms(T0 + timedelta(hours=1)) == 3_600_000
        assert badge.time_remaining_ms(T0 + timedelta(hours=5)) == 0

    def test_lazy_expiry_on_read(self):
        service = FireBadgeService()
        service.apply_ranking(_ranking("a", "b", "c"), T0)

        later = T0 + timedelta(minutes=45)
        assert service.get_badge("c", later) is None
        assert service.get_badge("a", later) is not None
        assert {b.product_id for b in service.live_badges(later)} == {"a", "b"}

    def test_load_and_clear(self):
        service = FireBadgeService()
        badge = FireBadge(product_id="a", position=1, start_time=T0, end_time=T0 + timedelta(hours=2))
        service.load([badge], {"old-new"})

        changes = service.apply_ranking(_ranking("a", new=("old-new",)), T0 + timedelta(minutes=1))
        assert [b.id for b in changes.active] == [badge.id]

        service.clear()
        assert service.live_badges(T0) == []
