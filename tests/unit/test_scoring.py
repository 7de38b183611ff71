"""
Unit tests for the scoring engine.

Covers:
- points formula and rounding
- level and next-level arithmetic
- streak transitions across calendar days
- badge unlock predicate and new-badge evaluation
"""

from datetime import date, datetime, timezone

import pytest

from ecoscan.orchestrator.badges import DEFAULT_BADGES
from ecoscan.orchestrator.contracts import Badge, Profile, WasteCategory
from ecoscan.orchestrator.policy import policy_for
from ecoscan.orchestrator.scoring import (
    apply_scan,
    badge_unlocked,
    clamp_confidence,
    evaluate_new_badges,
    level_for,
    next_streak,
    points_to_next_level,
    score,
)

pytestmark = pytest.mark.unit

C = WasteCategory
TODAY = date(2026, 10, 17)


class TestScore:
    def test_dry_recyclable_at_point_eight(self):
        assert score(C.DRY_RECYCLABLE, 0.8) == 12

    @pytest.mark.parametrize("confidence", [0.0, 0.3, 0.9, 1.0])
    def test_unknown_always_zero(self, confidence):
        assert score(C.UNKNOWN, confidence) == 0

    @pytest.mark.parametrize("category", [c for c in C])
    @pytest.mark.parametrize("confidence", [0.0, 0.1, 0.25, 0.5, 0.77, 1.0])
    def test_matches_formula(self, category, confidence):
        expected = int(policy_for(category).base_points * confidence + 0.5)
        assert score(category, confidence) == expected

    def test_half_rounds_up(self):
        # 10 * 0.25 = 2.5
        assert score(C.WET_ORGANIC, 0.25) == 3

    def test_full_confidence_is_base_points(self):
        assert score(C.E_WASTE, 1.0) == policy_for(C.E_WASTE).base_points

    def test_out_of_range_confidence_is_clamped(self):
        assert score(C.HAZARDOUS, 1.7) == score(C.HAZARDOUS, 1.0)
        assert score(C.HAZARDOUS, -0.5) == 0

    def test_deterministic(self):
        assert {score(C.REJECT_SANITARY, 0.6) for _ in range(20)} == {3}

    def test_unknown_category_string(self):
        assert score("landfill", 1.0) == 0


class TestClamp:
    def test_bounds(self):
        assert clamp_confidence(-0.5) == 0.0
        assert clamp_confidence(1.7) == 1.0
        assert clamp_confidence(0.42) == 0.42


class TestLevel:
    @pytest.mark.parametrize("points,level", [(0, 1), (99, 1), (100, 2), (199, 2), (250, 3), (1000, 11)])
    def test_level_for(self, points, level):
        assert level_for(points) == level

    def test_points_to_next_level(self):
        assert points_to_next_level(0) == 100
        assert points_to_next_level(12) == 88
        assert points_to_next_level(100) == 100


class TestStreak:
    def test_first_scan_starts_streak(self):
        assert next_streak(None, 0, TODAY) == 1

    def test_yesterday_increments(self):
        assert next_streak(date(2026, 10, 16), 4, TODAY) == 5

    def test_same_day_unchanged(self):
        assert next_streak(TODAY, 4, TODAY) == 4

    def test_same_day_never_below_one(self):
        assert next_streak(TODAY, 0, TODAY) == 1

    @pytest.mark.parametrize("last", [date(2026, 10, 15), date(2026, 9, 1), date(2025, 10, 17)])
    def test_gap_resets(self, last):
        assert next_streak(last, 9, TODAY) == 1

    def test_across_month_boundary(self):
        assert next_streak(date(2026, 9, 30), 2, date(2026, 10, 1)) == 3


class TestApplyScan:
    def test_updates_every_field(self):
        now = datetime(2026, 10, 17, 12, tzinfo=timezone.utc)
        before = Profile(user_id="u1", eco_points=95, total_scans=7, streak_days=2,
                         level=1, last_scan_date=date(2026, 10, 16))
        after = apply_scan(before, 12, TODAY, now)
        assert after.eco_points == 107
        assert after.total_scans == 8
        assert after.streak_days == 3
        assert after.level == 2
        assert after.last_scan_date == TODAY
        assert after.updated_at == now
        # input untouched
        assert before.eco_points == 95

    def test_level_recomputed_not_trusted(self):
        stale = Profile(user_id="u1", eco_points=250, level=1)
        assert apply_scan(stale, 0, TODAY).level == 3


class TestBadges:
    def _profile(self, **kw):
        return Profile(user_id="u1", **kw)

    def test_points_threshold(self):
        badge = Badge("p", "P", "", "", points_required=50)
        assert badge_unlocked(badge, self._profile(eco_points=50), {})
        assert not badge_unlocked(badge, self._profile(eco_points=49), {})

    def test_scans_threshold(self):
        badge = Badge("s", "S", "", "", scans_required=10)
        assert badge_unlocked(badge, self._profile(total_scans=10), {})
        assert not badge_unlocked(badge, self._profile(total_scans=9), {})

    def test_category_requirement(self):
        badge = Badge("c", "C", "", "", category_required=C.E_WASTE)
        assert badge_unlocked(badge, self._profile(), {C.E_WASTE: 1})
        assert not badge_unlocked(badge, self._profile(), {C.HAZARDOUS: 3})

    def test_requirements_are_ored(self):
        badge = Badge("x", "X", "", "", points_required=1000, scans_required=1)
        assert badge_unlocked(badge, self._profile(total_scans=1), {})

    def test_badge_without_requirements_never_unlocks(self):
        badge = Badge("empty", "Empty", "", "")
        assert not badge_unlocked(badge, self._profile(eco_points=10**6, total_scans=10**6), {})

    def test_unknown_category_badge_never_unlocks(self):
        badge = Badge("u", "U", "", "", category_required=C.UNKNOWN)
        assert not badge_unlocked(badge, self._profile(), {C.UNKNOWN: 5})

    def test_evaluate_skips_already_earned(self):
        profile = self._profile(eco_points=12, total_scans=1)
        counts = {C.DRY_RECYCLABLE: 1}
        first = evaluate_new_badges(DEFAULT_BADGES, [], profile, counts)
        assert set(first) == {"first_scan", "recycling_ranger"}
        assert evaluate_new_badges(DEFAULT_BADGES, first, profile, counts) == []

    def test_evaluate_keeps_catalog_order(self):
        profile = self._profile(eco_points=120, total_scans=10)
        ids = evaluate_new_badges(DEFAULT_BADGES, [], profile, {})
        assert ids == ["first_scan", "scan_10", "points_50", "points_100"]
