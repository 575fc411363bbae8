"""Badge catalog.

Badge ids are stable and referenced by the award rules, so the catalog is the
single source of both the seeded rows and the ``BadgeKind`` values.
"""

from __future__ import annotations

import enum


class BadgeVariant(enum.IntEnum):
    BRONZE = 0
    SILVER = 1
    GOLD = 2
    DIAMOND = 3


class BadgeKind(enum.IntEnum):
    EMAIL_VERIFICATION = 1
    SINGLE_SOCIAL_ACCOUNT = 2
    ALL_SOCIAL_ACCOUNTS = 3
    DEVWARS_COINS_5000 = 4
    DEVWARS_COINS_25000 = 5
    BETTING_COINS_10000 = 6
    SUBMIT_IDEA = 7
    REPORT_BUG = 8
    REFER_5_FRIENDS = 9
    REFER_25_FRIENDS = 10
    REFER_50_FRIENDS = 11
    COMPLETE_ALL_OBJECTIVES = 12
    WATCH_FIRST_GAME = 13
    WATCH_5_GAMES = 14
    WATCH_25_GAMES = 15
    WATCH_50_GAMES = 16
    WIN_FIRST_GAME = 17
    WIN_5_GAMES = 18
    WIN_10_GAMES = 19
    WIN_25_GAMES = 20
    WIN_3_IN_ROW = 21
    QUIZ_FIRST_ANSWER = 22
    QUIZ_10_ANSWERS = 23
    BET_ALL_COINS_AND_WIN = 24
    VISIT_ON_BIRTHDAY = 25
    COMPLETE_POLL = 26
    COMPLETE_25_POLLS = 27
    COIN_HOARDER = 28


BADGE_CATALOG: list[dict] = [
    {"id": BadgeKind.EMAIL_VERIFICATION, "name": "Authentic",
     "description": "Verify your e-mail address", "coins": 500},
    {"id": BadgeKind.SINGLE_SOCIAL_ACCOUNT, "name": "Making Links",
     "description": "Connect any one social media account to your profile", "coins": 900},
    {"id": BadgeKind.ALL_SOCIAL_ACCOUNTS, "name": "Full Coverage",
     "description": "Connect all possible social media accounts to your profile", "coins": 1300},
    {"id": BadgeKind.DEVWARS_COINS_5000, "name": "Feed The Pig",
     "description": "Save up 5000 Devcoins", "coins": 0},
    {"id": BadgeKind.DEVWARS_COINS_25000, "name": "Penny-Pincher",
     "description": "Save up 25000 Devcoins", "coins": 0},
    {"id": BadgeKind.BETTING_COINS_10000, "name": "High Roller",
     "description": "Earn 10000 Devcoins from betting", "coins": 0},
    {"id": BadgeKind.SUBMIT_IDEA, "name": "Innovator",
     "description": "Submit an idea that gets implemented", "coins": 2100},
    {"id": BadgeKind.REPORT_BUG, "name": "Exterminator",
     "description": "Find a bug and report it to the DevWars team", "coins": 1700},
    {"id": BadgeKind.REFER_5_FRIENDS, "name": "Follow Me",
     "description": "Refer 5 friends using your custom referral link", "coins": 1300},
    {"id": BadgeKind.REFER_25_FRIENDS, "name": "Influential",
     "description": "Refer 25 friends using your custom referral link", "coins": 2100},
    {"id": BadgeKind.REFER_50_FRIENDS, "name": "Natural Leader",
     "description": "Refer 50 friends using your custom referral link", "coins": 4100},
    {"id": BadgeKind.COMPLETE_ALL_OBJECTIVES, "name": "Ace High",
     "description": "Complete all objectives in a single game of DevWars", "coins": 2100},
    {"id": BadgeKind.WATCH_FIRST_GAME, "name": "First Timer",
     "description": "Watch your first game of DevWars", "coins": 500},
    {"id": BadgeKind.WATCH_5_GAMES, "name": "Hobbyist",
     "description": "Watch 5 games of DevWars", "coins": 900},
    {"id": BadgeKind.WATCH_25_GAMES, "name": "Biggest Fan",
     "description": "Watch 25 games of DevWars", "coins": 1300},
    {"id": BadgeKind.WATCH_50_GAMES, "name": "Obsessed",
     "description": "Watch 50 games of DevWars", "coins": 2100},
    {"id": BadgeKind.WIN_FIRST_GAME, "name": "Beginner's Luck",
     "description": "Win your first game of DevWars", "coins": 2900},
    {"id": BadgeKind.WIN_5_GAMES, "name": "Victorious",
     "description": "Win 5 games of DevWars", "coins": 900},
    {"id": BadgeKind.WIN_10_GAMES, "name": "Hotshot",
     "description": "Win 10 games of DevWars", "coins": 2100},
    {"id": BadgeKind.WIN_25_GAMES, "name": "Steamroller",
     "description": "Win 25 games of DevWars", "coins": 4900},
    {"id": BadgeKind.WIN_3_IN_ROW, "name": "Hot Streak",
     "description": "Win 3 games of DevWars in a row", "coins": 1300},
    {"id": BadgeKind.QUIZ_FIRST_ANSWER, "name": "On The Ball",
     "description": "Answer first on a Twitch quiz question", "coins": 900},
    {"id": BadgeKind.QUIZ_10_ANSWERS, "name": "Smarty Pants",
     "description": "Answer 10 Twitch quiz questions first", "coins": 1300},
    {"id": BadgeKind.BET_ALL_COINS_AND_WIN, "name": "I'm All In",
     "description": "Bet ALL of your Devcoins in a stream and win", "coins": 900},
    {"id": BadgeKind.VISIT_ON_BIRTHDAY, "name": "Cake Day",
     "description": "Visit DevWars on your birthday", "coins": 2100},
    {"id": BadgeKind.COMPLETE_POLL, "name": "Poll position",
     "description": "Complete a poll or a survey", "coins": 900},
    {"id": BadgeKind.COMPLETE_25_POLLS, "name": "Rapid Response",
     "description": "Complete 25 polls or surveys", "coins": 3300},
    {"id": BadgeKind.COIN_HOARDER, "name": "Coin Hoarder",
     "description": "Buy this badge from the coinshop to unlock it", "coins": 0},
]

# Coin balance thresholds, checked with >= after every coin change.
COIN_THRESHOLDS: list[tuple[int, BadgeKind]] = [
    (5_000, BadgeKind.DEVWARS_COINS_5000),
    (25_000, BadgeKind.DEVWARS_COINS_25000),
]

# Exact win counts; equality so each fires on the settlement that reaches it.
WIN_COUNT_BADGES: dict[int, BadgeKind] = {
    5: BadgeKind.WIN_5_GAMES,
    10: BadgeKind.WIN_10_GAMES,
    25: BadgeKind.WIN_25_GAMES,
}

WIN_STREAK_BADGES: dict[int, BadgeKind] = {
    3: BadgeKind.WIN_3_IN_ROW,
}

# Providers a user can link; linking all of them earns ALL_SOCIAL_ACCOUNTS.
SOCIAL_PROVIDERS: frozenset[str] = frozenset({"DISCORD", "TWITCH"})


def game_badges_for(wins: int, loses: int, win_streak: int) -> list[BadgeKind]:
    """Badges a user qualifies for given their win/loss record."""
    earned: list[BadgeKind] = []
    if wins == 1 and loses == 0:
        earned.append(BadgeKind.WIN_FIRST_GAME)
    if wins in WIN_COUNT_BADGES:
        earned.append(WIN_COUNT_BADGES[wins])
    if win_streak in WIN_STREAK_BADGES:
        earned.append(WIN_STREAK_BADGES[win_streak])
    return earned


def coin_badges_for(coins: int) -> list[BadgeKind]:
    return [kind for threshold, kind in COIN_THRESHOLDS if coins >= threshold]
