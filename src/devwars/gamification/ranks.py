"""Rank thresholds and computation.

Ranks are cumulative XP thresholds; the last rank has no successor.
"""

from __future__ import annotations

RANKS: list[dict] = [
    {"level": 1, "name": "Intern I", "total_experience": 0},
    {"level": 2, "name": "Intern II", "total_experience": 5_000},
    {"level": 3, "name": "Intern III", "total_experience": 10_000},
    {"level": 4, "name": "Trainee I", "total_experience": 20_000},
    {"level": 5, "name": "Trainee II", "total_experience": 25_000},
    {"level": 6, "name": "Trainee III", "total_experience": 30_000},
    {"level": 7, "name": "Developer I", "total_experience": 40_000},
    {"level": 8, "name": "Developer II", "total_experience": 45_000},
    {"level": 9, "name": "Developer III", "total_experience": 50_000},
    {"level": 10, "name": "Engineer I", "total_experience": 60_000},
    {"level": 11, "name": "Engineer II", "total_experience": 65_000},
    {"level": 12, "name": "Engineer III", "total_experience": 70_000},
    {"level": 13, "name": "Hacker I", "total_experience": 80_000},
    {"level": 14, "name": "Hacker II", "total_experience": 85_000},
    {"level": 15, "name": "Hacker III", "total_experience": 90_000},
    {"level": 16, "name": "Webmaster", "total_experience": 100_000},
]


def compute_rank(xp: int) -> dict:
    """Compute rank info from total XP. Negative XP is treated as zero."""
    xp = max(0, xp)
    current = RANKS[0]
    next_rank: dict | None = RANKS[1]

    for i, rank in enumerate(RANKS):
        if xp >= rank["total_experience"]:
            current = rank
            next_rank = RANKS[i + 1] if i + 1 < len(RANKS) else None

    return {
        "level": current["level"],
        "name": current["name"],
        "xp_into_rank": xp - current["total_experience"],
        "xp_for_rank": (next_rank["total_experience"] - current["total_experience"]) if next_rank else 0,
        "next_level": next_rank["level"] if next_rank else None,
        "next_name": next_rank["name"] if next_rank else None,
    }
