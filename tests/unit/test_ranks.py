"""Rank computation from total experience."""

from __future__ import annotations

from devwars.gamification.ranks import RANKS, compute_rank


class TestComputeRank:
    def test_zero_xp_is_first_rank(self):
        rank = compute_rank(0)
        assert rank["level"] == 1
        assert rank["name"] == "Intern I"
        assert rank["next_level"] == 2

    def test_negative_xp_is_treated_as_zero(self):
        assert compute_rank(-500) == compute_rank(0)

    def test_exact_threshold_reaches_rank(self):
        rank = compute_rank(5_000)
        assert rank["level"] == 2
        assert rank["xp_into_rank"] == 0
        assert rank["xp_for_rank"] == 5_000

    def test_progress_within_rank(self):
        rank = compute_rank(22_500)
        assert rank["name"] == "Trainee I"
        assert rank["xp_into_rank"] == 2_500
        assert rank["next_name"] == "Trainee II"

    def test_max_rank_has_no_successor(self):
        rank = compute_rank(1_000_000)
        assert rank["level"] == RANKS[-1]["level"]
        assert rank["next_level"] is None
        assert rank["xp_for_rank"] == 0

    def test_thresholds_are_increasing(self):
        totals = [r["total_experience"] for r in RANKS]
        assert totals == sorted(totals)
        assert len(set(totals)) == len(totals)
