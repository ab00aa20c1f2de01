from codetrack.data_models.platform_stats import LeetCodeStats
from codetrack.database.models import Platform
from codetrack.platforms.base import PlatformAdapter, PlatformNotFound, as_int
from codetrack.platforms.scoring import leetcode_score
from codetrack.utils.clock import utcnow


class LeetCodeAdapter(PlatformAdapter):
    platform = Platform.LEETCODE
    base_url = 'https://leetcode-stats-api.herokuapp.com'

    async def _fetch(self, username: str) -> LeetCodeStats:
        data = await self._get_json(f"{self.base_url}/{username}", username)
        # The stats API answers 200 with status "error" for unknown users
        if not isinstance(data, dict) or data.get('status') != 'success':
            raise PlatformNotFound(self.platform, username)

        easy = as_int(data.get('easySolved'))
        medium = as_int(data.get('mediumSolved'))
        hard = as_int(data.get('hardSolved'))
        ranking = as_int(data.get('ranking'))

        return LeetCodeStats(
            score=leetcode_score(easy, medium, hard, ranking),
            problems_solved=as_int(data.get('totalSolved')),
            rating=0,
            contests_participated=0,
            last_updated=utcnow(),
            ranking=ranking,
            reputation=as_int(data.get('reputation')),
            easy_problems_solved=easy,
            medium_problems_solved=medium,
            hard_problems_solved=hard,
        )
