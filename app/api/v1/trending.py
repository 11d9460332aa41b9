from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List, Optional
from app.api.deps import get_trending_service
from app.core.exceptions import RankingUnavailableError, ValidationError
from app.schemas.interaction import (
    BatchInteractionRequest,
    BatchInteractionResponse,
    Interaction,
    InteractionCreate,
    InteractionStats,
)
from app.schemas.brand import BrandRankingResponse
from app.schemas.trending import FireBadge, TrendingResponse
from app.services.trending_service import TrendingService

router = APIRouter()


@router.post("/interactions", response_model=Interaction, status_code=status.HTTP_201_CREATED)
async def track_interaction(
    payload: InteractionCreate,
    service: TrendingService = Depends(get_trending_service)
):
    """Record one storefront interaction"""
    try:
        return await service.record_interaction(payload)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/interactions/batch", response_model=BatchInteractionResponse)
async def track_interactions_batch(
    request: BatchInteractionRequest,
    service: TrendingService = Depends(get_trending_service)
):
    """Record a batch of interactions; invalid items are reported per index"""
    return await service.record_batch(request.interactions)


@router.get("/interactions/stats", response_model=InteractionStats)
async def interaction_stats(service: TrendingService = Depends(get_trending_service)):
    """Interaction totals by type plus the most recent interactions"""
    return service.interaction_stats()


@router.get("", response_model=TrendingResponse)
async def get_trending(
    limit: Optional[int] = Query(None, ge=1, le=100),
    brand: Optional[str] = None,
    force: bool = False,
    service: TrendingService = Depends(get_trending_service)
):
    """Current trending ranking with fire badge metadata"""
    try:
        return await service.get_trending(limit=limit, brand=brand, force_refresh=force)
    except RankingUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/brands", response_model=BrandRankingResponse)
async def get_brand_ranking(
    brand: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=100),
    service: TrendingService = Depends(get_trending_service)
):
    """Brands ranked by weighted interactions, with per-brand analytics"""
    return await service.brand_ranking(brand=brand, limit=limit)


@router.get("/badges", response_model=List[FireBadge])
async def get_badges(service: TrendingService = Depends(get_trending_service)):
    """Fire badges that are live right now"""
    return service.live_badges()
