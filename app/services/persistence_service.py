"""
Write-behind persistence for the trending engine.

The in-memory state is authoritative for reads. Every durable write is
queued and executed by one background task, each in its own session and
under a timeout. A failed write is logged as a ``PersistenceError`` and
skipped; it never rolls back memory and never blocks the caller.
"""

from __future__ import annotations
import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.exceptions import PersistenceError
from app.repositories.badge_repository import BadgeRepository
from app.repositories.config_repository import ConfigRepository
from app.repositories.interaction_repository import InteractionRepository
from app.repositories.metrics_repository import MetricsRepository
from app.schemas.interaction import Interaction
from app.schemas.trending import FireBadge, ProductMetrics, TrendingConfig

logger = logging.getLogger(__name__)

Operation = Callable[[AsyncSession], Awaitable[object]]


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class PersistedState(BaseModel):
    """Everything needed to rebuild the in-memory engine after a restart."""
    config: Optional[TrendingConfig] = None
    metrics: List[ProductMetrics] = Field(default_factory=list)
    interactions: List[Interaction] = Field(default_factory=list)
    badges: List[FireBadge] = Field(default_factory=list)
    new_awarded: Set[str] = Field(default_factory=set)


class PersistenceWriter:
    """
    Queue of pending database writes drained by a single task.

    Args:
        session_factory: async_sessionmaker producing sessions for each write
        timeout: Seconds allowed for one write (including commit)
        max_pending: Queue bound; writes arriving while it is full are dropped
        enabled: When False every write is dropped and hydration is empty
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        interaction_repo: Optional[InteractionRepository] = None,
        metrics_repo: Optional[MetricsRepository] = None,
        badge_repo: Optional[BadgeRepository] = None,
        config_repo: Optional[ConfigRepository] = None,
        timeout: float = 5.0,
        max_pending: int = 10000,
        enabled: bool = True
    ):
        self.session_factory = session_factory
        self.interaction_repo = interaction_repo or InteractionRepository()
        self.metrics_repo = metrics_repo or MetricsRepository()
        self.badge_repo = badge_repo or BadgeRepository()
        self.config_repo = config_repo or ConfigRepository()
        self.timeout = timeout
        self.enabled = enabled

        self._queue: asyncio.Queue[Tuple[str, Operation]] = asyncio.Queue(maxsize=max_pending)
        self._task: Optional[asyncio.Task] = None
        self.failures = 0
        self.dropped = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self) -> None:
        if self._task is None and self.enabled:
            self._task = asyncio.create_task(self._run(), name="trending-persistence")
            logger.info("Persistence writer started")

    async def stop(self) -> None:
        """Drain pending writes, then stop the background task."""
        if self._task is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=self.timeout * 2)
        except asyncio.TimeoutError:
            logger.warning(f"Persistence writer stopped with {self._queue.qsize()} pending writes")
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Persistence writer stopped")

    async def flush(self) -> None:
        """Wait until every queued write has been attempted."""
        if self._task is None:
            return
        await self._queue.join()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def _run(self) -> None:
        while True:
            description, operation = await self._queue.get()
            try:
                await asyncio.wait_for(self._execute(operation), timeout=self.timeout)
            except Exception as e:
                self.failures += 1
                error = PersistenceError(f"{description} failed: {e!r}")
                logger.error(str(error))
            finally:
                self._queue.task_done()

    async def _execute(self, operation: Operation) -> None:
        async with self.session_factory() as db:
            await operation(db)
            await db.commit()

    def _enqueue(self, description: str, operation: Operation) -> None:
        if not self.enabled:
            return
        try:
            self._queue.put_nowait((description, operation))
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                f"Persistence queue full ({self._queue.maxsize}); dropped {description}"
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def record_interaction(self, interaction: Interaction, metrics: Optional[ProductMetrics]) -> None:
        async def op(db: AsyncSession):
            await self.interaction_repo.add(db, interaction)
            if metrics is not None:
                await self.metrics_repo.upsert(db, metrics)

        self._enqueue(f"record interaction ({interaction.type.value})", op)

    def save_badges(self, badges: List[FireBadge]) -> None:
        if not badges:
            return

        async def op(db: AsyncSession):
            for badge in badges:
                await self.badge_repo.save(db, badge)

        self._enqueue(f"save {len(badges)} badges", op)

    def save_scores(self, scores: Dict[str, float]) -> None:
        async def op(db: AsyncSession):
            await self.metrics_repo.update_scores(db, scores)

        self._enqueue("save trending scores", op)

    def save_config(self, config: TrendingConfig) -> None:
        async def op(db: AsyncSession):
            await self.config_repo.save_config(db, config)

        self._enqueue("save config", op)

    def prune_interactions(self, cutoff: datetime) -> None:
        async def op(db: AsyncSession):
            removed = await self.interaction_repo.delete_older_than(db, cutoff)
            logger.info(f"Pruned {removed} stored interactions")

        self._enqueue("prune interactions", op)

    def clear_data(self) -> None:
        """Wipe interactions, metrics and badges; the config row stays."""
        async def op(db: AsyncSession):
            await self.interaction_repo.delete_all(db)
            await self.metrics_repo.delete_all(db)
            await self.badge_repo.delete_all(db)

        self._enqueue("clear trending data", op)

    # ------------------------------------------------------------------
    # Hydration
    # ------------------------------------------------------------------
    async def load_state(self, interactions_since: datetime) -> PersistedState:
        """
        Read the persisted state.

        Raises:
            PersistenceError: when the database cannot be read in time
        """
        if not self.enabled:
            return PersistedState()

        try:
            return await asyncio.wait_for(self._load(interactions_since), timeout=self.timeout)
        except Exception as e:
            raise PersistenceError(f"Failed to load trending state: {e!r}") from e

    async def _load(self, interactions_since: datetime) -> PersistedState:
        async with self.session_factory() as db:
            config = await self.config_repo.get_config(db)
            metrics = await self.metrics_repo.list_metrics(db)
            rows = await self.interaction_repo.list_since(db, interactions_since)
            badges = await self.badge_repo.list_active(db)
            new_awarded = await self.badge_repo.new_badge_product_ids(db)

        if config is not None:
            config.last_update = as_utc(config.last_update)

        for record in metrics:
            record.first_interaction = as_utc(record.first_interaction)
            record.last_interaction = as_utc(record.last_interaction)

        for badge in badges:
            badge.start_time = as_utc(badge.start_time)
            badge.end_time = as_utc(badge.end_time)

        interactions = [
            Interaction(
                type=row.type,
                product_id=row.product_id,
                brand=row.brand,
                category=row.category,
                search_term=row.search_term,
                session_id=row.session_id,
                user_id=row.user_id,
                timestamp=as_utc(row.timestamp),
            )
            for row in rows
        ]

        return PersistedState(
            config=config,
            metrics=metrics,
            interactions=interactions,
            badges=badges,
            new_awarded=new_awarded,
        )
