from fastapi import APIRouter, Depends

from codetrack.api.dependencies import get_current_user, get_services
from codetrack.api.schemas import ProfileLinkRequest
from codetrack.api.services import AppServices
from codetrack.database.models import User

router = APIRouter(prefix="/profiles", tags=["Profiles"])


@router.get("")
async def list_profiles(
    user: User = Depends(get_current_user),
    services: AppServices = Depends(get_services)
):
    return {'success': True, 'data': await services.profiles.list_profiles(user.id)}


@router.put("/update-scores")
async def update_scores(
    user: User = Depends(get_current_user),
    services: AppServices = Depends(get_services)
):
    """Refresh every linked platform of the caller."""
    outcomes = await services.profiles.sync_all_for_user(user.id)
    succeeded = [o for o in outcomes if o.succeeded]
    return {
        'success': bool(succeeded) or not outcomes,
        'message': f"Updated {len(succeeded)} of {len(outcomes)} profiles",
        'data': [
            {
                'platform': o.platform,
                'username': o.username,
                'updated': o.succeeded,
                'result': o.result.to_dict() if o.result else None,
                'error': o.error,
                'remainingTime': o.remaining_seconds,
            }
            for o in outcomes
        ],
    }


@router.post("/{platform}")
async def link_profile(
    platform: str,
    body: ProfileLinkRequest,
    user: User = Depends(get_current_user),
    services: AppServices = Depends(get_services)
):
    """Link or refresh one platform profile."""
    result = await services.profiles.sync(user.id, platform, body.username)
    return {
        'success': True,
        'data': result.to_dict(),
        'message': f"{result.platform} profile updated successfully",
    }


@router.delete("/{platform}")
async def unlink_profile(
    platform: str,
    user: User = Depends(get_current_user),
    services: AppServices = Depends(get_services)
):
    totals = await services.profiles.unlink(user.id, platform)
    return {
        'success': True,
        'message': f"{platform} profile removed",
        'data': {'totalScore': totals.total_score, 'totalProblemsSolved': totals.total_problems_solved},
    }
