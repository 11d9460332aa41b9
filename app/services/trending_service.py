"""
Trending service.

Owns the whole trending engine for one process: ingest, the metrics
aggregator, the scoring -> ranking -> badge pipeline, the cached ranking and
the admin-controlled config. Constructed once in the FastAPI lifespan and
injected into the routers.

Recompute is single-flight: concurrent stale readers wait on one lock and
re-check freshness once they hold it. A new snapshot (entries and badges) is
built off to the side and published with one reference swap, so readers see
either the old snapshot or the new one.
"""

from __future__ import annotations
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import structlog

from app.core.cache import get_cached_snapshot, invalidate_snapshot_cache, set_cached_snapshot
from app.core.config import Settings, settings as default_settings
from app.core.exceptions import ConfigError, RankingUnavailableError
from app.schemas.brand import BrandRankingResponse
from app.schemas.interaction import (
    BatchInteractionResponse,
    Interaction,
    InteractionCreate,
    InteractionStats,
)
from app.schemas.trending import (
    CatalogEntry,
    FireBadge,
    ManualBadgeCreate,
    ProductMetrics,
    RankedProduct,
    RankingSnapshot,
    ScoringWeights,
    TrendingConfig,
    TrendingConfigResponse,
    TrendingConfigUpdate,
    TrendingItem,
    TrendingResponse,
)
from app.services.brand_detection import BrandDetector
from app.services.brand_ranking_service import BrandRankingService, normalize_brand
from app.services.catalog_service import CatalogLookup, InMemoryCatalog
from app.services.fire_badge_service import BadgeChanges, FireBadgeService
from app.services.interaction_service import InteractionService
from app.services.metrics_aggregator import MetricsAggregator
from app.services.persistence_service import PersistenceWriter
from app.services.rank_service import RankService
from app.services.scoring_service import ScoringService

logger = logging.getLogger(__name__)
log = structlog.get_logger("trending")

MAX_UPDATE_INTERVAL_MINUTES = 24 * 60
RECENT_INTERACTIONS_SHOWN = 10


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TrendingService:
    """
    Facade over the trending engine.

    Args:
        catalog: Catalog lookup used for display fields and brand detection
        writer: Write-behind persistence; None keeps everything in memory
        config: Initial config (normally replaced by ``hydrate``)
        weights: Scoring weights
        window: Rolling recency window for scoring
        retention: How long interactions are kept
        mirror_snapshots: Mirror published snapshots to Redis
        clock: Returns the current UTC time
    """

    def __init__(
        self,
        catalog: Optional[CatalogLookup] = None,
        writer: Optional[PersistenceWriter] = None,
        aggregator: Optional[MetricsAggregator] = None,
        interaction_service: Optional[InteractionService] = None,
        rank_service: Optional[RankService] = None,
        badge_service: Optional[FireBadgeService] = None,
        brand_ranking_service: Optional[BrandRankingService] = None,
        config: Optional[TrendingConfig] = None,
        weights: Optional[ScoringWeights] = None,
        window: timedelta = timedelta(hours=24),
        retention: timedelta = timedelta(days=30),
        mirror_snapshots: bool = False,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.clock = clock or utc_now
        self.catalog = catalog or InMemoryCatalog()
        self.writer = writer
        self.aggregator = aggregator or MetricsAggregator()
        self.interaction_service = interaction_service or InteractionService(clock=self.clock)
        self.rank_service = rank_service or RankService()
        self.badge_service = badge_service or FireBadgeService()
        self.brand_ranking_service = brand_ranking_service or BrandRankingService()
        self.weights = weights or ScoringWeights()
        self.window = window
        self.retention = retention
        self.mirror_snapshots = mirror_snapshots

        self._config = config or TrendingConfig()
        self._snapshot: Optional[RankingSnapshot] = None
        self._recompute_lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Settings = default_settings,
        catalog: Optional[CatalogLookup] = None,
        writer: Optional[PersistenceWriter] = None,
        clock: Optional[Callable[[], datetime]] = None
    ) -> "TrendingService":
        clock = clock or utc_now
        return cls(
            catalog=catalog,
            writer=writer,
            aggregator=MetricsAggregator(recent_log_size=settings.trending_recent_log_size),
            interaction_service=InteractionService(BrandDetector(), clock=clock),
            rank_service=RankService(
                new_item_window=timedelta(hours=settings.trending_new_item_window_hours),
                max_items=settings.trending_max_ranked_items,
            ),
            config=TrendingConfig(
                update_interval_minutes=settings.trending_update_interval_minutes,
                is_enabled=settings.trending_enabled,
            ),
            weights=ScoringWeights(
                product_view=settings.weight_product_view,
                result_click=settings.weight_result_click,
                search=settings.weight_search,
            ),
            window=timedelta(hours=settings.trending_window_hours),
            retention=timedelta(days=settings.trending_retention_days),
            mirror_snapshots=settings.snapshot_mirror_enabled,
            clock=clock,
        )

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------
    async def hydrate(self) -> None:
        """Restore config, metrics, interactions and badges from the database."""
        await self.refresh_brands()
        if self.writer is None:
            return

        now = self.clock()
        state = await self.writer.load_state(now - self.retention)
        if state.config is not None:
            self._config = state.config
        self.aggregator.load(state.metrics, state.interactions)
        self.badge_service.load(state.badges, state.new_awarded)
        log.info(
            "trending_state_loaded",
            products=len(state.metrics),
            interactions=len(state.interactions),
            badges=len(state.badges),
        )

    async def refresh_brands(self) -> None:
        try:
            brands = await self.catalog.brands()
        except Exception:
            logger.warning("Could not load catalog brands", exc_info=True)
            return
        self.interaction_service.brand_detector.update_known_brands(brands)

    # ------------------------------------------------------------------
    # Ingest
    # ------------------------------------------------------------------
    def _apply(self, interaction: Interaction) -> None:
        metrics = self.aggregator.apply_interaction(interaction)
        if self.writer is not None:
            self.writer.record_interaction(interaction, metrics)

    async def record_interaction(self, payload: InteractionCreate) -> Interaction:
        """
        Validate and record one interaction.

        Raises:
            ValidationError: payload rejected, nothing recorded
        """
        interaction = self.interaction_service.validate(payload)
        self._apply(interaction)
        return interaction

    async def record_batch(self, payloads: List[InteractionCreate]) -> BatchInteractionResponse:
        accepted, rejected = self.interaction_service.validate_batch(payloads)
        for interaction in accepted:
            self._apply(interaction)
        return BatchInteractionResponse(accepted=len(accepted), rejected=rejected)

    def interaction_stats(self) -> InteractionStats:
        total, by_type, recent = self.aggregator.stats(RECENT_INTERACTIONS_SHOWN)
        return InteractionStats(
            total_interactions=total,
            by_type=by_type,
            recent_interactions=recent,
        )

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------
    @property
    def config(self) -> TrendingConfig:
        return self._config

    @property
    def snapshot(self) -> Optional[RankingSnapshot]:
        return self._snapshot

    def _is_fresh(self, now: datetime) -> bool:
        if self._snapshot is None or self._config.last_update is None:
            return False
        age = now - self._config.last_update
        return age < timedelta(minutes=self._config.update_interval_minutes)

    async def get_ranking(self, force_refresh: bool = False) -> Tuple[RankingSnapshot, bool]:
        """
        Current ranking and whether it came from the cache.

        Disabled -> empty ranking; the cached snapshot is left alone.

        Raises:
            RankingUnavailableError: recompute failed and no snapshot exists
        """
        if not self._config.is_enabled:
            return RankingSnapshot(), False
        return await self._refresh(force_refresh)

    async def _refresh(self, force: bool) -> Tuple[RankingSnapshot, bool]:
        if not force and self._is_fresh(self.clock()):
            return self._snapshot, True

        async with self._recompute_lock:
            # Another caller may have recomputed while we waited
            if not force and self._is_fresh(self.clock()):
                return self._snapshot, True

            try:
                return await self._recompute(self.clock()), False
            except Exception as e:
                logger.error("Trending recompute failed", exc_info=True)
                fallback = await self._last_known_good()
                if fallback is None:
                    raise RankingUnavailableError("No trending ranking available") from e
                return fallback, True

    async def _recompute(self, now: datetime) -> RankingSnapshot:
        windowed = self.aggregator.windowed_metrics(now, self.window)
        scored = ScoringService.score_all(windowed, now, self.weights, self.window)
        entries = self.rank_service.rank(scored, now)
        entries = await self._enrich(entries)

        # No awaits from the badge pass to the publish
        changes = self.badge_service.apply_ranking(entries, now)
        snapshot = RankingSnapshot(entries=entries, badges=changes.active, computed_at=now)
        self._snapshot = snapshot
        self._config = self._config.model_copy(update={"last_update": now})

        scores = {m.product_id: m.trending_score for m in scored}
        self.aggregator.apply_scores(scores)
        self._persist_badges(changes)
        if self.writer is not None:
            self.writer.save_scores(scores)
            self.writer.save_config(self._config)
        if self.mirror_snapshots:
            await set_cached_snapshot(snapshot)

        log.info(
            "trending_recomputed",
            products=len(entries),
            badges=len(changes.active),
            badges_created=len(changes.created),
            badges_ended=len(changes.expired),
        )
        return snapshot

    async def _catalog_entries(self, product_ids: Iterable[str]) -> Dict[str, CatalogEntry]:
        """Concurrent catalog lookups; failures and unknown ids are left out."""
        ids = sorted(set(product_ids))
        results = await asyncio.gather(
            *(self.catalog.lookup(pid) for pid in ids),
            return_exceptions=True,
        )

        entries = {}
        for product_id, result in zip(ids, results):
            if isinstance(result, Exception):
                logger.warning(f"Catalog lookup failed for {product_id}: {result!r}")
            elif result is None:
                logger.debug(f"Product {product_id} not found in catalog")
            else:
                entries[product_id] = result
        return entries

    async def _enrich(self, entries: List[RankedProduct]) -> List[RankedProduct]:
        """Fill name/brand/price from the catalog; a failure leaves them null."""
        catalog = await self._catalog_entries(e.product_id for e in entries)

        enriched = []
        for entry in entries:
            result = catalog.get(entry.product_id)
            if result is None:
                enriched.append(entry)
                continue
            enriched.append(entry.model_copy(update={
                "name": result.name,
                "price": result.price,
                "brand": result.brand or entry.brand,
            }))
        return enriched

    async def _last_known_good(self) -> Optional[RankingSnapshot]:
        if self._snapshot is not None:
            return self._snapshot
        if self.mirror_snapshots:
            return await get_cached_snapshot()
        return None

    def _persist_badges(self, changes: BadgeChanges) -> None:
        if self.writer is not None:
            self.writer.save_badges(changes.created + changes.expired)

    def _republish_badges(self, changes: BadgeChanges) -> None:
        if self._snapshot is not None:
            self._snapshot = self._snapshot.model_copy(update={"badges": changes.active})

    async def get_trending(
        self,
        limit: Optional[int] = None,
        brand: Optional[str] = None,
        force_refresh: bool = False
    ) -> TrendingResponse:
        """Ranking read API: entries enriched with their badge metadata."""
        if not self._config.is_enabled:
            return TrendingResponse(
                trending=[],
                total_products=0,
                last_updated=self._config.last_update,
                disabled=True,
                config=self._config,
            )

        snapshot, cached = await self.get_ranking(force_refresh)
        now = self.clock()

        items = []
        for entry in snapshot.entries:
            if brand and (entry.brand or "").lower() != brand.lower():
                continue

            badge = snapshot.badge_for(entry.product_id)
            if badge is not None and not badge.is_live(now):
                badge = None

            items.append(TrendingItem(
                product_id=entry.product_id,
                name=entry.name,
                brand=entry.brand,
                price=entry.price,
                trending_score=entry.score,
                rank=entry.rank,
                has_fire_badge=badge is not None,
                fire_badge_position=badge.position if badge else None,
                fire_badge_time_remaining_ms=badge.time_remaining_ms(now) if badge else None,
            ))

        total = len(items)
        if limit is not None:
            items = items[:limit]

        return TrendingResponse(
            trending=items,
            total_products=total,
            last_updated=snapshot.computed_at,
            cached=cached,
            config=self._config,
        )

    def live_badges(self) -> List[FireBadge]:
        return self.badge_service.live_badges(self.clock())

    async def brand_ranking(
        self,
        brand: Optional[str] = None,
        limit: Optional[int] = None
    ) -> BrandRankingResponse:
        """
        Brands ranked over every retained interaction.

        A product's brand comes from the catalog, falling back to the brand
        recorded with its interactions.
        """
        interactions = self.aggregator.retained_interactions()
        catalog = await self._catalog_entries(i.product_id for i in interactions if i.product_id)

        def product_brand(product_id: str) -> Optional[str]:
            entry = catalog.get(product_id)
            if entry is not None and entry.brand:
                return entry.brand
            return self.aggregator.brand_of(product_id)

        names = {pid: entry.name for pid, entry in catalog.items() if entry.name}
        ranked = self.brand_ranking_service.rank(interactions, product_brand, names)
        top_brand = ranked[0].brand if ranked else None
        total_brands = len(ranked)

        wanted = normalize_brand(brand)
        if wanted is not None:
            ranked = [a for a in ranked if a.brand == wanted]
        if limit is not None:
            ranked = ranked[:limit]

        return BrandRankingResponse(
            brands=ranked,
            total_brands=total_brands,
            total_interactions=len(interactions),
            top_brand=top_brand,
            computed_at=self.clock(),
        )

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------
    async def force_update(self) -> RankingSnapshot:
        """Recompute now, ignoring the cache and the enabled flag."""
        snapshot, _ = await self._refresh(force=True)
        return snapshot

    async def clear_data(self) -> None:
        """Wipe metrics, interactions, badges and the cached ranking. Config is kept."""
        async with self._recompute_lock:
            self.aggregator.clear()
            self.badge_service.clear()
            self._snapshot = None
            self._config = self._config.model_copy(update={"last_update": None})

            if self.writer is not None:
                self.writer.clear_data()
                self.writer.save_config(self._config)
            if self.mirror_snapshots:
                await invalidate_snapshot_cache()

        log.info("trending_data_cleared")

    def get_config(self) -> TrendingConfigResponse:
        return TrendingConfigResponse(
            config=self._config,
            weights=self.weights,
            metrics_count=self.aggregator.product_count(),
        )

    def update_config(self, update: TrendingConfigUpdate) -> TrendingConfig:
        """
        Apply a partial config update.

        Raises:
            ConfigError: interval not in 1..1440 minutes; nothing is changed
        """
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        interval = changes.get("update_interval_minutes")
        if interval is not None and not (0 < interval <= MAX_UPDATE_INTERVAL_MINUTES):
            raise ConfigError(
                f"update_interval_minutes must be between 1 and {MAX_UPDATE_INTERVAL_MINUTES}"
            )

        self._config = self._config.model_copy(update=changes)
        if self.writer is not None:
            self.writer.save_config(self._config)

        log.info("trending_config_updated", **changes)
        return self._config

    def list_metrics(self) -> List[ProductMetrics]:
        return sorted(
            self.aggregator.all_metrics(),
            key=lambda m: (-m.trending_score, m.product_id),
        )

    def prune_interactions(self) -> int:
        """Drop interactions older than the retention period."""
        cutoff = self.clock() - self.retention
        removed = self.aggregator.prune(cutoff)
        if self.writer is not None:
            self.writer.prune_interactions(cutoff)
        return removed

    def create_manual_badge(self, request: ManualBadgeCreate) -> FireBadge:
        changes = self.badge_service.create_manual(
            request.product_id, request.position, request.duration_minutes, self.clock()
        )
        self._persist_badges(changes)
        self._republish_badges(changes)
        return changes.created[0]

    def remove_manual_badge(self, product_id: str) -> FireBadge:
        """
        Raises:
            NotFoundError: the product has no live manual badge
        """
        changes = self.badge_service.remove_manual(product_id)
        self._persist_badges(changes)
        self._republish_badges(changes)
        return changes.expired[0]
