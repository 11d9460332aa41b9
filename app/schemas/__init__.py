# Schemas package
from .interaction import (
    InteractionCreate,
    Interaction,
    BatchInteractionRequest,
    BatchInteractionResponse,
    InteractionStats,
)
from .trending import (
    CatalogEntry,
    FireBadge,
    ProductMetrics,
    RankedProduct,
    RankingSnapshot,
    ScoringWeights,
    TrendingConfig,
    TrendingConfigUpdate,
    TrendingItem,
    TrendingResponse,
)

__all__ = [
    "InteractionCreate",
    "Interaction",
    "BatchInteractionRequest",
    "BatchInteractionResponse",
    "InteractionStats",
    "CatalogEntry",
    "FireBadge",
    "ProductMetrics",
    "RankedProduct",
    "RankingSnapshot",
    "ScoringWeights",
    "TrendingConfig",
    "TrendingConfigUpdate",
    "TrendingItem",
    "TrendingResponse",
]
