"""
Per-product interaction metrics.

Keeps lifetime counters (views, clicks, searches) for every product and the
retained event log used to compute counts inside the trending recency window.
Updates for one product id are serialized by a striped lock; different
products never contend.
"""

import logging
import threading
from collections import Counter, deque
from datetime import datetime, timedelta
from typing import Deque, Dict, Iterable, List, Optional, Tuple

from app.models.interaction import InteractionType
from app.schemas.interaction import Interaction
from app.schemas.trending import ProductMetrics

logger = logging.getLogger(__name__)

# Interaction type -> ProductMetrics counter
COUNTED_TYPES: Dict[InteractionType, str] = {
    InteractionType.PRODUCT_VIEW: "views",
    InteractionType.RESULT_CLICK: "clicks",
    InteractionType.SEARCH: "searches",
}


class MetricsAggregator:
    """Running counters keyed by product id."""

    def __init__(self, recent_log_size: int = 1000):
        self._metrics: Dict[str, ProductMetrics] = {}
        self._events: Dict[str, Deque[Tuple[datetime, InteractionType]]] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

        # Page-level stats (every interaction, product or not)
        self._stats_lock = threading.Lock()
        self._type_counts: Counter = Counter()
        self._recent: Deque[Interaction] = deque(maxlen=recent_log_size)
        # Every retained interaction, oldest first; trimmed by prune
        self._log: Deque[Interaction] = deque()

    def _lock_for(self, product_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(product_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[product_id] = lock
            return lock

    def apply_interaction(self, interaction: Interaction) -> Optional[ProductMetrics]:
        """
        Fold one interaction into the metrics.

        Returns a copy of the updated product record, or None when the
        interaction does not touch a product counter (no product id, or a
        page/category view).
        """
        with self._stats_lock:
            self._type_counts[interaction.type.value] += 1
            self._recent.append(interaction)
            self._log.append(interaction)

        if not interaction.product_id:
            return None

        counter = COUNTED_TYPES.get(interaction.type)
        if counter is None:
            return None

        product_id = interaction.product_id
        with self._lock_for(product_id):
            metrics = self._metrics.get(product_id)
            if metrics is None:
                metrics = ProductMetrics(
                    product_id=product_id,
                    brand=interaction.brand,
                    first_interaction=interaction.timestamp,
                    last_interaction=interaction.timestamp,
                )
                self._metrics[product_id] = metrics
                self._events[product_id] = deque()
                logger.info("Created metrics for product %s", product_id)

            setattr(metrics, counter, getattr(metrics, counter) + 1)

            if not metrics.brand and interaction.brand:
                metrics.brand = interaction.brand
            # A late (replayed) event never moves the clocks backwards
            if metrics.last_interaction is None or interaction.timestamp > metrics.last_interaction:
                metrics.last_interaction = interaction.timestamp
            if metrics.first_interaction is None or interaction.timestamp < metrics.first_interaction:
                metrics.first_interaction = interaction.timestamp

            self._events[product_id].append((interaction.timestamp, interaction.type))
            return metrics.model_copy()

    def get_metrics(self, product_id: str) -> ProductMetrics:
        """Current record for *product_id*, or a zero record."""
        with self._lock_for(product_id):
            metrics = self._metrics.get(product_id)
            if metrics is None:
                return ProductMetrics(product_id=product_id)
            return metrics.model_copy()

    def all_metrics(self) -> List[ProductMetrics]:
        product_ids = list(self._metrics.keys())
        return [self.get_metrics(pid) for pid in product_ids]

    def product_count(self) -> int:
        return len(self._metrics)

    def windowed_metrics(self, now: datetime, window: timedelta) -> List[ProductMetrics]:
        """
        Counts restricted to events inside ``[now - window, ...]``.

        ``first_interaction`` stays the lifetime value (needed for the "new"
        designation); ``last_interaction`` is the last event in the window.
        Products without events in the window are left out.
        """
        window_start = now - window
        results: List[ProductMetrics] = []

        for product_id in list(self._metrics.keys()):
            with self._lock_for(product_id):
                lifetime = self._metrics.get(product_id)
                events = self._events.get(product_id)
                if lifetime is None or not events:
                    continue

                counts = {"views": 0, "clicks": 0, "searches": 0}
                last_seen: Optional[datetime] = None
                for timestamp, interaction_type in events:
                    if timestamp < window_start:
                        continue
                    counts[COUNTED_TYPES[interaction_type]] += 1
                    if last_seen is None or timestamp > last_seen:
                        last_seen = timestamp

                if last_seen is None:
                    continue

                results.append(ProductMetrics(
                    product_id=product_id,
                    brand=lifetime.brand,
                    first_interaction=lifetime.first_interaction,
                    last_interaction=last_seen,
                    trending_score=lifetime.trending_score,
                    **counts,
                ))

        return results

    def apply_scores(self, scores: Dict[str, float]) -> None:
        """Store the latest scores; products missing from *scores* drop to 0."""
        for product_id in list(self._metrics.keys()):
            with self._lock_for(product_id):
                metrics = self._metrics.get(product_id)
                if metrics is not None:
                    metrics.trending_score = scores.get(product_id, 0.0)

    def prune(self, cutoff: datetime) -> int:
        """Drop retained events older than *cutoff*; counters are untouched."""
        removed = 0
        for product_id in list(self._events.keys()):
            with self._lock_for(product_id):
                events = self._events.get(product_id)
                if not events:
                    continue
                kept = deque(e for e in events if e[0] >= cutoff)
                removed += len(events) - len(kept)
                self._events[product_id] = kept

        with self._stats_lock:
            self._recent = deque(
                (i for i in self._recent if i.timestamp >= cutoff),
                maxlen=self._recent.maxlen,
            )
            self._log = deque(i for i in self._log if i.timestamp >= cutoff)

        if removed:
            logger.info("Pruned %d interactions older than %s", removed, cutoff.isoformat())
        return removed

    def stats(self, recent_limit: int = 10) -> Tuple[int, Dict[str, int], List[Interaction]]:
        """(total, count by type, most recent first)"""
        with self._stats_lock:
            by_type = dict(self._type_counts)
            recent = list(self._recent)[-recent_limit:]
        recent.reverse()
        return sum(by_type.values()), by_type, recent

    def retained_interactions(self, since: Optional[datetime] = None) -> List[Interaction]:
        """Retained interactions of every type, oldest first."""
        with self._stats_lock:
            log = list(self._log)
        if since is None:
            return log
        return [i for i in log if i.timestamp >= since]

    def brand_of(self, product_id: str) -> Optional[str]:
        metrics = self._metrics.get(product_id)
        return metrics.brand if metrics is not None else None

    def load(self, metrics: Iterable[ProductMetrics], interactions: Iterable[Interaction]) -> None:
        """Restore persisted state without re-counting the events."""
        self.clear()
        for record in metrics:
            self._metrics[record.product_id] = record.model_copy()
            self._events[record.product_id] = deque()

        for interaction in sorted(interactions, key=lambda i: i.timestamp):
            with self._stats_lock:
                self._type_counts[interaction.type.value] += 1
                self._recent.append(interaction)
                self._log.append(interaction)
            if (
                interaction.product_id in self._events
                and interaction.type in COUNTED_TYPES
            ):
                self._events[interaction.product_id].append(
                    (interaction.timestamp, interaction.type)
                )

        logger.info("Loaded metrics for %d products", len(self._metrics))

    def clear(self) -> None:
        with self._locks_guard:
            self._metrics.clear()
            self._events.clear()
            self._locks.clear()
        with self._stats_lock:
            self._type_counts.clear()
            self._recent.clear()
            self._log.clear()
