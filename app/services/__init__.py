from .brand_detection import BrandDetector
from .brand_ranking_service import BrandRankingService
from .metrics_aggregator import MetricsAggregator
from .scoring_service import ScoringService
from .rank_service import RankService
from .fire_badge_service import FireBadgeService
from .catalog_service import InMemoryCatalog, HttpCatalogClient
from .interaction_service import InteractionService
from .persistence_service import PersistenceWriter
from .trending_service import TrendingService

__all__ = [
    "BrandDetector",
    "BrandRankingService",
    "MetricsAggregator",
    "ScoringService",
    "RankService",
    "FireBadgeService",
    "InMemoryCatalog",
    "HttpCatalogClient",
    "InteractionService",
    "PersistenceWriter",
    "TrendingService",
]
