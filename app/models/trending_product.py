from sqlalchemy import Column, DateTime, Float, Integer, String
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID
import uuid
from app.core.database import Base


class TrendingProduct(Base):
    """Persisted ProductMetrics record, one row per product id."""
    __tablename__ = "trending_products"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    product_id = Column(String(255), unique=True, nullable=False, index=True)
    brand = Column(String(100))

    # Lifetime counters (monotonic)
    total_views = Column(Integer, nullable=False, default=0)
    total_clicks = Column(Integer, nullable=False, default=0)
    total_searches = Column(Integer, nullable=False, default=0)

    # Derived at each recompute
    trending_score = Column(Float, nullable=False, default=0.0, index=True)

    first_interaction = Column(DateTime(timezone=True))
    last_interaction = Column(DateTime(timezone=True), index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<TrendingProduct(product_id={self.product_id}, score={self.trending_score})>"
