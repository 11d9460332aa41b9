# Repositories package
from .base import BaseRepository
from .interaction_repository import InteractionRepository
from .metrics_repository import MetricsRepository
from .badge_repository import BadgeRepository
from .config_repository import ConfigRepository

__all__ = [
    "BaseRepository",
    "InteractionRepository",
    "MetricsRepository",
    "BadgeRepository",
    "ConfigRepository",
]
