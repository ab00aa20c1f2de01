from fastapi import APIRouter, Depends
from sqlalchemy import text

from codetrack.api.dependencies import get_services
from codetrack.api.services import AppServices
from codetrack.platforms.registry import SUPPORTED_PLATFORM_COUNT

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health(services: AppServices = Depends(get_services)):
    async with services.db.get_session() as session:
        await session.execute(text("SELECT 1"))
    return {'status': 'ok', 'database': 'connected', 'platforms': SUPPORTED_PLATFORM_COUNT}
