from codetrack.data_models.platform_stats import HackerRankStats
from codetrack.database.models import Platform
from codetrack.platforms.base import PlatformAdapter, PlatformNotFound, as_int
from codetrack.platforms.scoring import hackerrank_score
from codetrack.utils.clock import utcnow

LANGUAGE_CATEGORY = 'Language Proficiency'
SKILL_CATEGORY = 'Specialized Skills'


class HackerRankAdapter(PlatformAdapter):
    platform = Platform.HACKERRANK
    base_url = 'https://www.hackerrank.com/rest/hackers'

    async def _fetch(self, username: str) -> HackerRankStats:
        data = await self._get_json(
            f"{self.base_url}/{username}/badges", username, headers={'Accept': 'application/json'}
        )
        if not isinstance(data, dict) or data.get('status') is not True:
            raise PlatformNotFound(self.platform, username)

        solved = stars = 0
        language_badges, skill_badges = {}, {}
        models = data.get('models') or []
        for badge in models:
            badge_solved = as_int(badge.get('solved'))
            badge_stars = as_int(badge.get('stars'))
            solved += badge_solved
            stars += badge_stars
            summary = {
                'solved': badge_solved,
                'stars': badge_stars,
                'total_challenges': as_int(badge.get('total_challenges')),
            }
            category = badge.get('category_name')
            if category == LANGUAGE_CATEGORY:
                language_badges[badge.get('badge_name')] = summary
            elif category == SKILL_CATEGORY:
                skill_badges[badge.get('badge_name')] = summary

        return HackerRankStats(
            score=hackerrank_score(solved, stars),
            problems_solved=solved,
            rating=0,
            contests_participated=0,
            last_updated=utcnow(),
            total_stars=stars,
            badges=len(models),
            language_badges=language_badges,
            skill_badges=skill_badges,
        )
