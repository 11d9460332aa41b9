from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func
from app.core.database import Base


DEFAULT_CONFIG_ID = "default"


class TrendingConfigRecord(Base):
    """Singleton row holding the admin-controlled trending configuration."""
    __tablename__ = "trending_config"

    id = Column(String(32), primary_key=True, default=DEFAULT_CONFIG_ID)
    update_interval_minutes = Column(Integer, nullable=False, default=5)
    is_enabled = Column(Boolean, nullable=False, default=True)
    last_update = Column(DateTime(timezone=True))

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<TrendingConfigRecord(interval={self.update_interval_minutes}, enabled={self.is_enabled})>"
