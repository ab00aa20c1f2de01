import logging
import time
from typing import Optional

import httpx

from codetrack.config import Config
from codetrack.data_models.platform_stats import GitHubStats
from codetrack.database.models import Platform
from codetrack.platforms.base import (
    PlatformAdapter, PlatformRateLimited, PlatformUnavailable, parse_retry_after, as_int
)
from codetrack.platforms.scoring import github_score
from codetrack.utils.clock import utcnow

logger = logging.getLogger(__name__)

CONTRIBUTIONS_QUERY = """
query($login: String!) {
  user(login: $login) {
    contributionsCollection { contributionCalendar { totalContributions } }
    repositories(first: 100, ownerAffiliations: OWNER, isFork: false) {
      nodes { stargazerCount }
    }
    followers { totalCount }
    following { totalCount }
  }
}
"""


class GitHubAdapter(PlatformAdapter):
    platform = Platform.GITHUB
    base_url = 'https://api.github.com'

    def __init__(self, client, throttle=None, token: Optional[str] = None):
        super().__init__(client, throttle)
        self.token = token if token is not None else Config.GITHUB_ACCESS_TOKEN

    def _headers(self) -> dict:
        headers = {'Accept': 'application/vnd.github+json'}
        if self.token:
            headers['Authorization'] = f"Bearer {self.token}"
        return headers

    def _check_status(self, response: httpx.Response, username: str) -> None:
        # GitHub signals an exhausted quota with 403 rather than 429
        if response.status_code == 403 and response.headers.get('x-ratelimit-remaining') == '0':
            reset = as_int(response.headers.get('x-ratelimit-reset'))
            retry_after = reset - int(time.time()) if reset else 0
            if retry_after <= 0:
                retry_after = parse_retry_after(response.headers.get('Retry-After'))
            raise PlatformRateLimited(self.platform, username, retry_after)
        super()._check_status(response, username)

    async def _fetch(self, username: str) -> GitHubStats:
        user = await self._get_json(f"{self.base_url}/users/{username}", username, headers=self._headers())

        followers = as_int(user.get('followers'))
        following = as_int(user.get('following'))
        contributions = 0
        stars = None

        if self.token:
            try:
                graph = await self._contributions(username)
            except PlatformUnavailable as e:
                logger.warning(f"GitHub GraphQL failed for {username}, using REST data only: {e}")
                graph = None
            if graph:
                contributions = as_int(
                    ((graph.get('contributionsCollection') or {}).get('contributionCalendar') or {})
                    .get('totalContributions')
                )
                stars = sum(
                    as_int(node.get('stargazerCount'))
                    for node in (graph.get('repositories') or {}).get('nodes') or []
                )
                followers = as_int((graph.get('followers') or {}).get('totalCount'), followers)
                following = as_int((graph.get('following') or {}).get('totalCount'), following)

        if stars is None:
            stars = await self._rest_stars(username)

        return GitHubStats(
            score=github_score(stars, contributions, followers),
            # Contributions, not solved problems; excluded from the problem total
            problems_solved=contributions,
            rating=0,
            contests_participated=0,
            last_updated=utcnow(),
            public_repos=as_int(user.get('public_repos')),
            total_commits=contributions,
            followers=followers,
            following=following,
            stars_received=stars,
        )

    async def _contributions(self, username: str) -> Optional[dict]:
        payload = await self._request(
            'POST',
            f"{self.base_url}/graphql",
            username,
            json={'query': CONTRIBUTIONS_QUERY, 'variables': {'login': username}},
            headers=self._headers()
        )
        try:
            body = payload.json()
        except ValueError as e:
            raise PlatformUnavailable(self.platform, username, "GitHub GraphQL returned invalid JSON") from e
        return (body.get('data') or {}).get('user')

    async def _rest_stars(self, username: str) -> int:
        repos = await self._get_json(
            f"{self.base_url}/users/{username}/repos",
            username,
            params={'per_page': 100, 'type': 'owner'},
            headers=self._headers()
        )
        return sum(
            as_int(repo.get('stargazers_count'))
            for repo in repos or []
            if not repo.get('fork')
        )
