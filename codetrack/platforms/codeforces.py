from codetrack.data_models.platform_stats import CodeforcesStats
from codetrack.database.models import Platform
from codetrack.platforms.base import PlatformAdapter, PlatformNotFound, as_int
from codetrack.platforms.scoring import codeforces_score
from codetrack.utils.clock import utcnow

# Problem index letter -> difficulty bucket
EASY_INDICES = frozenset('AB')
MEDIUM_INDICES = frozenset('CD')


def summarize_submissions(submissions):
    """Count unique accepted problems, split by index letter."""
    solved = set()
    accepted = easy = medium = hard = 0
    for submission in submissions:
        if submission.get('verdict') != 'OK':
            continue
        accepted += 1
        problem = submission.get('problem') or {}
        index = str(problem.get('index') or '')
        key = (problem.get('contestId'), index)
        if key in solved:
            continue
        solved.add(key)
        letter = index[:1].upper()
        if letter in EASY_INDICES:
            easy += 1
        elif letter in MEDIUM_INDICES:
            medium += 1
        elif letter:
            hard += 1
    return {
        'problems_solved': len(solved),
        'total_accepted_submissions': accepted,
        'easy_problems_solved': easy,
        'medium_problems_solved': medium,
        'hard_problems_solved': hard,
    }


class CodeforcesAdapter(PlatformAdapter):
    platform = Platform.CODEFORCES
    base_url = 'https://codeforces.com/api'
    # Codeforces answers 400 for unknown handles and 503 when throttling
    not_found_statuses = frozenset({400, 404})
    rate_limited_statuses = frozenset({429, 503})

    async def _call(self, method: str, username: str, **params):
        payload = await self._get_json(f"{self.base_url}/{method}", username, params=params)
        if not isinstance(payload, dict) or payload.get('status') != 'OK':
            raise PlatformNotFound(self.platform, username)
        return payload.get('result') or []

    async def _fetch(self, username: str) -> CodeforcesStats:
        users = await self._call('user.info', username, handles=username)
        if not users:
            raise PlatformNotFound(self.platform, username)
        info = users[0]

        contests = await self._call('user.rating', username, handle=username)
        submissions = await self._call('user.status', username, handle=username, **{'from': 1, 'count': 10000})
        summary = summarize_submissions(submissions)

        rating = as_int(info.get('rating'))
        return CodeforcesStats(
            score=codeforces_score(rating, summary['problems_solved'], len(contests)),
            rating=rating,
            contests_participated=len(contests),
            last_updated=utcnow(),
            max_rating=as_int(info.get('maxRating')),
            rank=info.get('rank') or 'unrated',
            contribution=int(info.get('contribution') or 0),
            **summary
        )
