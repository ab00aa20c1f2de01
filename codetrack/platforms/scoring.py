"""
Score normalization per platform.

Each function maps raw platform numbers onto a comparable integer score.
All results are non-negative ints.
"""

import math


def _non_negative(value) -> float:
    try:
        value = float(value or 0)
    except (TypeError, ValueError):
        return 0.0
    return value if value > 0 else 0.0


def leetcode_score(easy: int, medium: int, hard: int, ranking: int) -> int:
    base = _non_negative(easy) * 20 + _non_negative(medium) * 40 + _non_negative(hard) * 80
    ranking = _non_negative(ranking)
    # Ranking bonus decays exponentially, max 2000 for the very top
    bonus = max(0.0, 2000 * math.exp(-ranking / 10000)) if ranking > 0 else 0.0
    return int(round(base + bonus))


def codeforces_rating_score(rating: int) -> float:
    rating = _non_negative(rating)
    if rating <= 0:
        return 0.0
    if rating < 1200:
        return rating * 0.2
    if rating < 1900:
        return 240 + (rating - 1200) * 0.5
    if rating < 2400:
        return 590 + (rating - 1900) * 0.8
    return 990 + (rating - 2400) * 1.2


def codeforces_score(rating: int, problems_solved: int, contests: int) -> int:
    raw = (
        codeforces_rating_score(rating) * 1.5
        + min(_non_negative(problems_solved) * 20, 1000)
        + min(_non_negative(contests) * 30, 600)
    )
    return int(min(round(raw), 10000))


def codechef_score(rating: int, problems_solved: int, global_rank: int, contests: int) -> int:
    global_rank = _non_negative(global_rank)
    rank_bonus = round(1000 * math.exp(-global_rank / 10000)) if global_rank > 0 else 0
    total = (
        min(3000, _non_negative(rating))
        + _non_negative(problems_solved) * 30
        + rank_bonus
        + min(1000, _non_negative(contests) * 50)
    )
    return int(round(total))


def geeksforgeeks_score(coding_score: int, problems_solved: int, institute_rank: int) -> int:
    solved = _non_negative(problems_solved)
    institute_rank = _non_negative(institute_rank)
    base = min(3000, _non_negative(coding_score) * 3)
    # Diminishing returns per problem
    problems = min(5000, solved * 50 * math.exp(-solved / 100))
    rank_bonus = min(2000, 2000 * math.exp(-institute_rank / 1000)) if institute_rank > 0 else 0
    return int(round(base + problems + rank_bonus))


GEEKSFORGEEKS_RANK_TITLES = (
    (8000, 'Code Grandmaster'),
    (6000, 'Code Master'),
    (4000, 'Code Expert'),
    (2000, 'Code Ninja'),
    (1000, 'Code Warrior'),
)


def geeksforgeeks_rank_title(score: int) -> str:
    for threshold, title in GEEKSFORGEEKS_RANK_TITLES:
        if score >= threshold:
            return title
    return 'Code Enthusiast'


def hackerrank_score(problems_solved: int, stars: int) -> int:
    return int(round(
        min(_non_negative(problems_solved) * 50, 5000) + min(_non_negative(stars) * 100, 5000)
    ))


def github_score(stars: int, commits: int, followers: int) -> int:
    return int(round(_non_negative(stars) * 10 + _non_negative(commits) * 5 + _non_negative(followers) * 2))
