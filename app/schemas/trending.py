"""
Trending schemas.

Holds the in-memory records of the trending engine (product metrics, fire
badges, ranking snapshots, config) as well as the request/response models
of the trending read and admin APIs.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Union
from datetime import datetime, timedelta
import uuid


NEW_POSITION = "new"
NUMERIC_POSITIONS = (1, 2, 3)

# Badge duration by position
FIRE_BADGE_DURATIONS = {
    1: timedelta(hours=2),
    2: timedelta(hours=1),
    3: timedelta(minutes=30),
    NEW_POSITION: timedelta(hours=1),
}


def normalize_position(value: Union[int, str]) -> Union[int, str]:
    """Coerce "1".."3" to ints and validate; "new" stays a string."""
    if isinstance(value, str):
        value = value.strip().lower()
        if value == NEW_POSITION:
            return NEW_POSITION
        if value.isdigit():
            value = int(value)
    if value in NUMERIC_POSITIONS:
        return value
    raise ValueError("position must be 1, 2, 3 or 'new'")


class ScoringWeights(BaseModel):
    product_view: float = 3.0
    result_click: float = 5.0
    search: float = 1.5


class CatalogEntry(BaseModel):
    product_id: str
    brand: Optional[str] = None
    name: Optional[str] = None
    price: Optional[float] = None


class ProductMetrics(BaseModel):
    product_id: str
    brand: Optional[str] = None
    views: int = 0
    clicks: int = 0
    searches: int = 0
    first_interaction: Optional[datetime] = None
    last_interaction: Optional[datetime] = None
    trending_score: float = 0.0

    model_config = {"from_attributes": True}


class FireBadge(BaseModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    product_id: str
    position: Union[int, str]
    start_time: datetime
    end_time: datetime
    is_active: bool = True
    is_manual: bool = False

    @field_validator('position', mode='before')
    @classmethod
    def position_must_be_known(cls, v):
        return normalize_position(v)

    def time_remaining_ms(self, now: datetime) -> int:
        """Milliseconds until end_time, never negative."""
        remaining = (self.end_time - now).total_seconds() * 1000
        return max(0, int(remaining))

    def is_live(self, now: datetime) -> bool:
        """Active and not yet past end_time (lazy expiry on read)."""
        return self.is_active and self.time_remaining_ms(now) > 0


class RankedProduct(BaseModel):
    product_id: str
    brand: Optional[str] = None
    name: Optional[str] = None
    price: Optional[float] = None
    score: float
    rank: Union[int, str]  # 1..N, or "new"
    views: int = 0
    clicks: int = 0
    searches: int = 0
    first_interaction: Optional[datetime] = None
    last_interaction: Optional[datetime] = None


class RankingSnapshot(BaseModel):
    entries: List[RankedProduct] = Field(default_factory=list)
    badges: List[FireBadge] = Field(default_factory=list)
    computed_at: Optional[datetime] = None

    def badge_for(self, product_id: str) -> Optional[FireBadge]:
        for badge in self.badges:
            if badge.product_id == product_id and badge.is_active:
                return badge
        return None


class TrendingConfig(BaseModel):
    update_interval_minutes: int = 5
    is_enabled: bool = True
    last_update: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TrendingConfigUpdate(BaseModel):
    update_interval_minutes: Optional[int] = None
    is_enabled: Optional[bool] = None


class TrendingItem(BaseModel):
    """One product of the ranking read API"""
    product_id: str
    name: Optional[str] = None
    brand: Optional[str] = None
    price: Optional[float] = None
    trending_score: float
    rank: Union[int, str]
    has_fire_badge: bool = False
    fire_badge_position: Optional[Union[int, str]] = None
    fire_badge_time_remaining_ms: Optional[int] = None


class TrendingResponse(BaseModel):
    trending: List[TrendingItem]
    total_products: int
    last_updated: Optional[datetime] = None
    cached: bool = False
    disabled: bool = False
    config: TrendingConfig


class TrendingConfigResponse(BaseModel):
    config: TrendingConfig
    weights: ScoringWeights
    metrics_count: int


class ManualBadgeCreate(BaseModel):
    product_id: str
    position: Union[int, str]
    duration_minutes: int = Field(gt=0, description="How long the badge stays live")

    @field_validator('product_id')
    @classmethod
    def product_id_must_not_be_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('product_id is required and cannot be empty')
        return v.strip()

    @field_validator('position', mode='before')
    @classmethod
    def position_must_be_known(cls, v):
        return normalize_position(v)


class ForceUpdateResponse(BaseModel):
    updated: int = Field(description="Number of products in the new ranking")
    computed_at: datetime


class ClearDataResponse(BaseModel):
    cleared: bool = True


class PruneResponse(BaseModel):
    removed: int = Field(description="Interactions dropped from the retention window")
