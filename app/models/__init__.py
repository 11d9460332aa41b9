from .interaction import InteractionType, UserInteraction
from .trending_product import TrendingProduct
from .fire_badge import FireBadgeRecord
from .trending_config import TrendingConfigRecord

__all__ = [
    "InteractionType", "UserInteraction", "TrendingProduct",
    "FireBadgeRecord", "TrendingConfigRecord"
]
