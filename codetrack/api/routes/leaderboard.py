import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError

from codetrack.api.dependencies import get_optional_user, get_services
from codetrack.api.services import AppServices
from codetrack.constants import AcademicConstants, FilterConstants, PaginationConstants
from codetrack.data_models.leaderboard import LeaderboardFilters
from codetrack.database.models import User
from codetrack.utils.exceptions import CodeTrackException, InvalidQueryError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leaderboard", tags=["Leaderboard"])

STUDY_YEAR_LABELS = AcademicConstants.STUDY_YEARS + (AcademicConstants.GRADUATED,)


def _split(values: Optional[List[str]]) -> List[str]:
    """Accept repeated and comma-separated query values; drop "All"."""
    items = []
    for value in values or []:
        for part in value.split(','):
            part = part.strip()
            if part and part != FilterConstants.ALL_YEARS:
                items.append(part)
    return items


def parse_filters(
    department: Optional[str],
    section: Optional[str],
    graduating_year: Optional[List[str]],
    study_year: Optional[List[str]],
    gender: Optional[str],
    search: Optional[str],
    requester: Optional[User] = None
) -> LeaderboardFilters:
    years = []
    for value in _split(graduating_year):
        try:
            years.append(int(value))
        except ValueError:
            raise InvalidQueryError(f"Invalid graduating year: {value}")

    study_years = _split(study_year)
    for label in study_years:
        if label not in STUDY_YEAR_LABELS:
            raise InvalidQueryError(f"Invalid study year: {label}")

    return LeaderboardFilters(
        department=department or None,
        section=section or None,
        graduating_years=tuple(years),
        study_years=tuple(study_years),
        gender=gender or None,
        search=search or '',
        include_admins=bool(requester and requester.is_admin),
    )


def _filters_echo(filters: LeaderboardFilters) -> dict:
    return {
        'department': filters.department or FilterConstants.ALL_DEPARTMENTS,
        'section': filters.section or FilterConstants.ALL_SECTIONS,
        'graduatingYear': list(filters.graduating_years),
        'studyYear': list(filters.study_years),
        'gender': filters.gender or FilterConstants.ALL_GENDERS,
        'search': filters.search,
    }


@router.get("")
async def get_leaderboard(
    sortBy: Optional[str] = None,
    order: Optional[str] = None,
    page: int = 1,
    limit: int = PaginationConstants.DEFAULT_PAGE_SIZE,
    leaderboardType: Optional[str] = None,
    department: Optional[str] = None,
    section: Optional[str] = None,
    graduatingYear: Optional[List[str]] = Query(default=None),
    studyYear: Optional[List[str]] = Query(default=None),
    gender: Optional[str] = None,
    search: Optional[str] = None,
    user: Optional[User] = Depends(get_optional_user),
    services: AppServices = Depends(get_services)
):
    """Paginated leaderboard. Failures degrade to an empty page with an error banner."""
    try:
        filters = parse_filters(department, section, graduatingYear, studyYear, gender, search, user)
        result = await services.leaderboard.query(
            filters,
            sort_by=sortBy,
            order=order,
            page=page,
            page_size=limit,
            requester_id=user.id if user else None,
            leaderboard_type=leaderboardType,
        )
    except (CodeTrackException, SQLAlchemyError) as e:
        logger.error(f"Leaderboard query failed: {e}")
        message = e.user_message if isinstance(e, CodeTrackException) else "Failed to load leaderboard"
        return {
            'users': [],
            'pagination': {
                'currentPage': 1, 'totalPages': 1, 'totalUsers': 0,
                'usersPerPage': limit, 'hasNextPage': False, 'hasPrevPage': False,
            },
            'currentUserData': None,
            'currentUserRank': None,
            'filters': {},
            'error': message,
        }

    return {
        'users': [entry.to_dict() for entry in result.entries],
        'pagination': result.pagination.to_dict(),
        'currentUserData': result.requester_entry.to_dict() if result.requester_entry else None,
        'currentUserRank': result.requester_rank,
        'sortBy': result.sort_by,
        'order': result.order,
        'filters': _filters_echo(filters),
    }


@router.get("/top")
async def get_top_performers(
    leaderboardType: str = 'score',
    limit: int = PaginationConstants.TOP_PERFORMERS_LIMIT,
    department: Optional[str] = None,
    section: Optional[str] = None,
    graduatingYear: Optional[List[str]] = Query(default=None),
    studyYear: Optional[List[str]] = Query(default=None),
    gender: Optional[str] = None,
    user: Optional[User] = Depends(get_optional_user),
    services: AppServices = Depends(get_services)
):
    filters = parse_filters(department, section, graduatingYear, studyYear, gender, None, user)
    entries = await services.leaderboard.top(filters, leaderboardType, limit)
    return {'users': [entry.to_dict() for entry in entries], 'leaderboardType': leaderboardType}


@router.get("/stats")
async def get_stats(
    department: Optional[str] = None,
    section: Optional[str] = None,
    graduatingYear: Optional[List[str]] = Query(default=None),
    studyYear: Optional[List[str]] = Query(default=None),
    gender: Optional[str] = None,
    search: Optional[str] = None,
    user: Optional[User] = Depends(get_optional_user),
    services: AppServices = Depends(get_services)
):
    filters = parse_filters(department, section, graduatingYear, studyYear, gender, search, user)
    summary = await services.stats.stats(filters)
    return summary.to_dict()


@router.get("/export")
async def export_leaderboard(services: AppServices = Depends(get_services)):
    entries = await services.leaderboard.export()
    return {'users': [entry.to_dict() for entry in entries], 'totalUsers': len(entries)}
