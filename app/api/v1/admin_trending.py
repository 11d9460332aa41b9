from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
from app.api.deps import get_trending_service
from app.core.exceptions import ConfigError, NotFoundError, RankingUnavailableError
from app.schemas.trending import (
    ClearDataResponse,
    FireBadge,
    ForceUpdateResponse,
    ManualBadgeCreate,
    ProductMetrics,
    PruneResponse,
    TrendingConfig,
    TrendingConfigResponse,
    TrendingConfigUpdate,
)
from app.services.trending_service import TrendingService

router = APIRouter()


@router.post("/force-update", response_model=ForceUpdateResponse)
async def force_update(service: TrendingService = Depends(get_trending_service)):
    """Recompute the ranking and badges immediately"""
    try:
        snapshot = await service.force_update()
    except RankingUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return ForceUpdateResponse(updated=len(snapshot.entries), computed_at=snapshot.computed_at)


@router.post("/clear", response_model=ClearDataResponse)
async def clear_data(service: TrendingService = Depends(get_trending_service)):
    """Wipe metrics, interactions, badges and the cached ranking (config is kept)"""
    await service.clear_data()
    return ClearDataResponse()


@router.get("/config", response_model=TrendingConfigResponse)
async def get_config(service: TrendingService = Depends(get_trending_service)):
    return service.get_config()


@router.patch("/config", response_model=TrendingConfig)
async def update_config(
    update: TrendingConfigUpdate,
    service: TrendingService = Depends(get_trending_service)
):
    """Change the recompute interval and/or the enabled flag"""
    try:
        return service.update_config(update)
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/metrics", response_model=List[ProductMetrics])
async def list_metrics(service: TrendingService = Depends(get_trending_service)):
    """Per-product counters and last computed score"""
    return service.list_metrics()


@router.post("/prune", response_model=PruneResponse)
async def prune_interactions(service: TrendingService = Depends(get_trending_service)):
    """Drop interactions older than the retention period"""
    return PruneResponse(removed=service.prune_interactions())


@router.post("/badges", response_model=FireBadge, status_code=status.HTTP_201_CREATED)
async def create_manual_badge(
    request: ManualBadgeCreate,
    service: TrendingService = Depends(get_trending_service)
):
    """Pin a product to a badge position for a custom duration"""
    return service.create_manual_badge(request)


@router.delete("/badges/{product_id}", response_model=FireBadge)
async def remove_manual_badge(
    product_id: str,
    service: TrendingService = Depends(get_trending_service)
):
    try:
        return service.remove_manual_badge(product_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
