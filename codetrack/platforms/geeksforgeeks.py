from codetrack.data_models.platform_stats import GeeksforGeeksStats
from codetrack.database.models import Platform
from codetrack.platforms.base import PlatformAdapter, PlatformNotFound, as_int
from codetrack.platforms.scoring import geeksforgeeks_score, geeksforgeeks_rank_title
from codetrack.utils.clock import utcnow

DIFFICULTIES = ('school', 'basic', 'easy', 'medium', 'hard')


class GeeksforGeeksAdapter(PlatformAdapter):
    platform = Platform.GEEKSFORGEEKS
    base_url = 'https://geeks-for-geeks-api.vercel.app'

    async def _fetch(self, username: str) -> GeeksforGeeksStats:
        data = await self._get_json(f"{self.base_url}/{username}", username)
        info = data.get('info') if isinstance(data, dict) else None
        if not info:
            raise PlatformNotFound(self.platform, username)

        solved_stats = data.get('solvedStats') or {}
        by_difficulty = {
            level: as_int((solved_stats.get(level) or {}).get('count'))
            for level in DIFFICULTIES
        }
        problems_solved = as_int(info.get('totalProblemsSolved')) or sum(by_difficulty.values())
        coding_score = as_int(info.get('codingScore'))
        institute_rank = as_int(info.get('instituteRank'))
        score = geeksforgeeks_score(coding_score, problems_solved, institute_rank)

        return GeeksforGeeksStats(
            score=score,
            problems_solved=problems_solved,
            rating=0,
            contests_participated=0,
            last_updated=utcnow(),
            coding_score=coding_score,
            institute_rank=institute_rank,
            current_streak=as_int(info.get('currentStreak')),
            max_streak=as_int(info.get('maxStreak')),
            monthly_score=as_int(info.get('monthlyScore')),
            rank_title=geeksforgeeks_rank_title(score),
            school_problems_solved=by_difficulty['school'],
            basic_problems_solved=by_difficulty['basic'],
            easy_problems_solved=by_difficulty['easy'],
            medium_problems_solved=by_difficulty['medium'],
            hard_problems_solved=by_difficulty['hard'],
        )
