"""
CodeChef adapter.

CodeChef offers no public API, so the profile page is parsed. Every field is
best-effort: missing sections read as 0 rather than failing the sync.
"""

import re
from typing import Any, Dict, Optional

from bs4 import BeautifulSoup

from codetrack.data_models.platform_stats import CodeChefStats
from codetrack.database.models import Platform
from codetrack.platforms.base import PlatformAdapter, PlatformNotFound
from codetrack.platforms.scoring import codechef_score
from codetrack.utils.clock import utcnow

NUMBER = re.compile(r'(\d+)')
SOLVED_PATTERNS = (
    re.compile(r'Total Problems Solved\s*:?\s*(\d+)', re.I),
    re.compile(r'Fully Solved\s*\(?\s*(\d+)', re.I),
    re.compile(r'Problems Solved\s*:?\s*(\d+)', re.I),
)
CONTEST_PATTERNS = (
    re.compile(r'No\.?\s*of\s*Contests\s*Participated\s*:?\s*(\d+)', re.I),
    re.compile(r'participated\s+in\s+(\d+)\s+contests', re.I),
    re.compile(r'(\d+)\s+contests?\s+participated', re.I),
    re.compile(r'contests?\s+participated\s*:?\s*(\d+)', re.I),
)
RATED_ROW = re.compile(r'\d+\s*(?:→|->)\s*\d+')


def _first_number(text: str) -> int:
    match = NUMBER.search(text.replace(',', ''))
    return int(match.group(1)) if match else 0


def _search(patterns, text: str) -> int:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return int(match.group(1))
    return 0


def parse_profile_html(html: str) -> Optional[Dict[str, Any]]:
    """Extract rating, rank, solved, contests and stars from a profile page.

    Returns None when the page is not a user profile.
    """
    soup = BeautifulSoup(html, 'html.parser')

    header = soup.select_one('h1.h2-style, .user-details-container h1')
    rating_el = soup.select_one('.rating-number')
    if header is None or rating_el is None:
        return None

    global_rank = country_rank = 0
    for item in soup.select('.rating-ranks li, .inline-list li'):
        text = item.get_text(' ', strip=True).lower()
        if 'global rank' in text:
            global_rank = _first_number(text)
        elif 'country rank' in text:
            country_rank = _first_number(text)

    body_text = soup.get_text(' ', strip=True)

    contests = sum(
        1 for row in soup.select('.rating-table tbody tr, table.dataTable tbody tr')
        if 'Rated' in row.get_text() or RATED_ROW.search(row.get_text())
    )
    if not contests:
        contests = _search(CONTEST_PATTERNS, body_text)

    stars = len(soup.select('.rating-star span'))

    return {
        'rating': _first_number(rating_el.get_text(strip=True)),
        'global_rank': global_rank,
        'country_rank': country_rank,
        'problems_solved': _search(SOLVED_PATTERNS, body_text),
        'contests_participated': contests,
        'stars': stars,
    }


class CodeChefAdapter(PlatformAdapter):
    platform = Platform.CODECHEF
    base_url = 'https://www.codechef.com/users'

    async def _fetch(self, username: str) -> CodeChefStats:
        response = await self._get(
            f"{self.base_url}/{username}",
            username,
            headers={
                'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
                'Accept-Language': 'en-US,en;q=0.5',
                'Referer': 'https://www.codechef.com/',
            }
        )
        # Unknown users are redirected away from /users/<name>
        if f"/users/{username}".lower() not in str(response.url).lower():
            raise PlatformNotFound(self.platform, username)

        parsed = parse_profile_html(response.text)
        if parsed is None:
            raise PlatformNotFound(self.platform, username)

        return CodeChefStats(
            score=codechef_score(
                parsed['rating'], parsed['problems_solved'],
                parsed['global_rank'], parsed['contests_participated']
            ),
            problems_solved=parsed['problems_solved'],
            rating=parsed['rating'],
            contests_participated=parsed['contests_participated'],
            last_updated=utcnow(),
            global_rank=parsed['global_rank'],
            country_rank=parsed['country_rank'],
            stars=parsed['stars'],
        )
