"""
Platform registry.

Single source of per-platform facts: adapter, stats variant, display name,
username pattern, not-found hint and outbound request spacing.
"""

import re
from dataclasses import dataclass
from typing import Dict, Pattern, Type

import httpx

from codetrack.data_models.platform_stats import PlatformStats, STATS_VARIANTS
from codetrack.database.models import Platform
from codetrack.platforms.base import PlatformAdapter
from codetrack.platforms.codechef import CodeChefAdapter
from codetrack.platforms.codeforces import CodeforcesAdapter
from codetrack.platforms.geeksforgeeks import GeeksforGeeksAdapter
from codetrack.platforms.github import GitHubAdapter
from codetrack.platforms.hackerrank import HackerRankAdapter
from codetrack.platforms.leetcode import LeetCodeAdapter
from codetrack.platforms.throttle import PlatformThrottle

# Handles on the remaining platforms: letters, digits, dot, underscore, dash
GENERIC_USERNAME = re.compile(r'^[A-Za-z0-9_.-]{1,50}$')


@dataclass(frozen=True)
class PlatformInfo:
    platform: Platform
    display_name: str
    adapter_class: Type[PlatformAdapter]
    username_pattern: Pattern
    hint: str
    min_interval: float

    @property
    def stats_class(self) -> Type[PlatformStats]:
        return STATS_VARIANTS[self.platform]

    def is_valid_username(self, username: str) -> bool:
        return bool(self.username_pattern.match(username))


PLATFORM_REGISTRY: Dict[Platform, PlatformInfo] = {
    info.platform: info
    for info in (
        PlatformInfo(
            Platform.LEETCODE, 'LeetCode', LeetCodeAdapter,
            re.compile(r'^[a-zA-Z0-9_-]+$'),
            "Use the handle from your profile URL: leetcode.com/u/<username>.",
            2.0,
        ),
        PlatformInfo(
            Platform.CODEFORCES, 'Codeforces', CodeforcesAdapter,
            GENERIC_USERNAME,
            "Handles are case-sensitive; copy it from codeforces.com/profile/<handle>.",
            5.0,
        ),
        PlatformInfo(
            Platform.CODECHEF, 'CodeChef', CodeChefAdapter,
            GENERIC_USERNAME,
            "Use the username from codechef.com/users/<username>, not your display name.",
            6.0,
        ),
        PlatformInfo(
            Platform.GEEKSFORGEEKS, 'GeeksforGeeks', GeeksforGeeksAdapter,
            GENERIC_USERNAME,
            "Use the handle from geeksforgeeks.org/user/<handle> and make sure the profile is public.",
            2.0,
        ),
        PlatformInfo(
            Platform.HACKERRANK, 'HackerRank', HackerRankAdapter,
            GENERIC_USERNAME,
            "Use the username from hackerrank.com/profile/<username>.",
            1.5,
        ),
        PlatformInfo(
            Platform.GITHUB, 'GitHub', GitHubAdapter,
            re.compile(r'^[a-zA-Z0-9](?:[a-zA-Z0-9]|-(?=[a-zA-Z0-9])){0,38}$'),
            "Use your GitHub login from github.com/<username>.",
            1.0,
        ),
    )
}

SUPPORTED_PLATFORM_COUNT = len(PLATFORM_REGISTRY)


def get_platform_info(key) -> PlatformInfo:
    """Look up a platform by key or enum; raises ValueError if unsupported."""
    platform = key if isinstance(key, Platform) else Platform.from_key(key)
    return PLATFORM_REGISTRY[platform]


def default_throttle() -> PlatformThrottle:
    return PlatformThrottle({p: info.min_interval for p, info in PLATFORM_REGISTRY.items()})


def build_adapters(client: httpx.AsyncClient, throttle: PlatformThrottle = None) -> Dict[Platform, PlatformAdapter]:
    """Instantiate one adapter per platform sharing a client and throttle."""
    throttle = throttle if throttle is not None else default_throttle()
    return {
        platform: info.adapter_class(client, throttle)
        for platform, info in PLATFORM_REGISTRY.items()
    }
