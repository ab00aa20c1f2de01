import logging
from typing import Optional

from fastapi import APIRouter, Depends

from codetrack.api.dependencies import get_services, require_admin
from codetrack.api.schemas import SyncProfilesRequest
from codetrack.api.services import AppServices
from codetrack.database.models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/stats")
async def admin_stats(
    timeframe: str = 'weekly',
    admin: User = Depends(require_admin),
    services: AppServices = Depends(get_services)
):
    return await services.stats.admin_stats(timeframe)


@router.post("/sync-profiles")
async def sync_profiles(
    body: Optional[SyncProfilesRequest] = None,
    admin: User = Depends(require_admin),
    services: AppServices = Depends(get_services)
):
    """Refresh every non-admin user's linked profiles."""
    logger.info(f"Admin {admin.id} started a bulk profile refresh")
    summary = await services.profiles.sync_all_users(body.batchSize if body else None)
    await services.stats.invalidate_cache()
    return {'success': True, 'data': summary}
