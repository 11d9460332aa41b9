from fastapi import HTTPException, Request, status
from app.services.trending_service import TrendingService


def get_trending_service(request: Request) -> TrendingService:
    """Trending service built in the application lifespan"""
    service = getattr(request.app.state, "trending_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Trending service is not initialised"
        )
    return service
