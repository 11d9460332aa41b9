from sqlalchemy import Column, DateTime, Enum, String
from sqlalchemy.sql import func
from sqlalchemy.dialects.postgresql import UUID
import uuid
import enum
from app.core.database import Base


class InteractionType(str, enum.Enum):
    PAGE_VIEW = "page_view"
    CATEGORY_VIEW = "category_view"
    PRODUCT_VIEW = "product_view"
    RESULT_CLICK = "result_click"
    SEARCH = "search"


class UserInteraction(Base):
    __tablename__ = "user_interactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    type = Column(Enum(InteractionType), nullable=False, index=True)
    product_id = Column(String(255), nullable=True, index=True)
    brand = Column(String(100))
    category = Column(String(100))
    search_term = Column(String(255))
    session_id = Column(String(255), nullable=False, index=True)
    user_id = Column(String(255), nullable=True)

    # Event time (client replay may supply an earlier timestamp than created_at)
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<UserInteraction(type={self.type}, product_id={self.product_id}, session_id={self.session_id})>"
