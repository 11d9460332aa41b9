"""
Interaction schemas.

``InteractionCreate`` is the raw payload as it arrives from the storefront;
every field is optional so that missing or unknown values are reported by
the ingest service as a 400 with a readable message rather than a 422.
``Interaction`` is the validated, immutable event.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime
from app.models.interaction import InteractionType


class InteractionCreate(BaseModel):
    type: Optional[str] = None
    product_id: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    search_term: Optional[str] = None
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    timestamp: Optional[datetime] = None  # Server time is used when omitted


class Interaction(BaseModel):
    type: InteractionType
    product_id: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    search_term: Optional[str] = None
    session_id: str
    user_id: Optional[str] = None
    timestamp: datetime

    model_config = {"frozen": True, "from_attributes": True}


class BatchInteractionRequest(BaseModel):
    interactions: List[InteractionCreate] = Field(default_factory=list)


class BatchItemError(BaseModel):
    index: int
    error: str


class BatchInteractionResponse(BaseModel):
    accepted: int
    rejected: List[BatchItemError]


class InteractionStats(BaseModel):
    """Interaction totals since startup plus the most recent events"""
    total_interactions: int
    by_type: Dict[str, int]
    recent_interactions: List[Interaction]
