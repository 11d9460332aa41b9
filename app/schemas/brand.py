from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class InteractionBreakdown(BaseModel):
    page_views: int = 0
    category_views: int = 0
    product_views: int = 0
    result_clicks: int = 0
    searches: int = 0


class BrandProduct(BaseModel):
    product_id: str
    name: Optional[str] = None
    views: int = 0
    clicks: int = 0
    score: float = 0.0


class BrandPerformance(BaseModel):
    engagement_rate: float = Field(0.0, description="(clicks + product views) / all interactions")
    search_to_click_rate: float = 0.0
    view_to_click_rate: float = 0.0


class BrandAnalytics(BaseModel):
    brand: str
    rank: int
    brand_score: float
    total_interactions: int
    product_count: int = Field(description="Distinct products of the brand with interactions")
    interaction_breakdown: InteractionBreakdown
    conversion_rate: float = Field(description="Result clicks per product view")
    performance: BrandPerformance
    top_products: List[BrandProduct] = Field(default_factory=list)
    last_interaction: Optional[datetime] = None


class BrandRankingResponse(BaseModel):
    brands: List[BrandAnalytics]
    total_brands: int
    total_interactions: int = Field(description="Retained interactions, attributed or not")
    top_brand: Optional[str] = None
    computed_at: datetime
