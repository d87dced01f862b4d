from fastapi import APIRouter, Depends

from app.common.deps import CurrentUser, get_store, require_instructor
from app.DB.supabase import Store
from .schemas import BatchAnalytics
from .service import AnalyticsService

router = APIRouter(prefix="/analytics", tags=["analytics"])


def get_analytics_service(store: Store = Depends(get_store)) -> AnalyticsService:
    return AnalyticsService.from_store(store)


## ------------------- Instructor -------------------


@router.get("/batch/{batch}", response_model=BatchAnalytics)
async def batch_analytics(
    batch: str,
    current_user: CurrentUser = Depends(require_instructor),
    service: AnalyticsService = Depends(get_analytics_service),
) -> BatchAnalytics:
    """Quiz averages, submission rates and top/bottom performers for one batch."""
    return await service.batch_report(current_user, batch)
