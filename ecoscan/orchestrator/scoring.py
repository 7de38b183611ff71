"""
Scoring engine: points per scan, level, streak and badge unlock rules.

Everything here is pure. Stores call apply_scan() and evaluate_new_badges()
inside their own per-user critical section so the read-modify-write of a
profile is never interleaved with another scan by the same user.
"""
import math
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Iterable, Mapping, Optional

from ecoscan.orchestrator.contracts import Badge, Profile, WasteCategory
from ecoscan.orchestrator.policy import policy_for

POINTS_PER_LEVEL = 100


def clamp_confidence(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


def score(category, confidence: float) -> int:
    """round(base_points * confidence), halves rounded up. Unknown always scores 0."""
    base = policy_for(category).base_points
    return int(math.floor(base * clamp_confidence(confidence) + 0.5))


def level_for(eco_points: int) -> int:
    return max(0, eco_points) // POINTS_PER_LEVEL + 1


def points_to_next_level(eco_points: int) -> int:
    return POINTS_PER_LEVEL - (max(0, eco_points) % POINTS_PER_LEVEL)


def next_streak(last_scan_date: Optional[date], streak_days: int, today: date) -> int:
    if last_scan_date is None:
        return 1
    if last_scan_date == today:
        return max(1, streak_days)
    if last_scan_date == today - timedelta(days=1):
        return streak_days + 1
    return 1


def apply_scan(profile: Profile, points_earned: int, today: date,
               now: Optional[datetime] = None) -> Profile:
    """Profile after one scored scan. The caller owns persistence and locking."""
    eco_points = profile.eco_points + max(0, points_earned)
    return replace(
        profile,
        eco_points=eco_points,
        total_scans=profile.total_scans + 1,
        streak_days=next_streak(profile.last_scan_date, profile.streak_days, today),
        last_scan_date=today,
        level=level_for(eco_points),
        updated_at=now or profile.updated_at,
    )


def badge_unlocked(badge: Badge, profile: Profile,
                   category_counts: Mapping[WasteCategory, int]) -> bool:
    # OR over whichever requirements are set; a badge with none never unlocks
    if badge.points_required is not None and profile.eco_points >= badge.points_required:
        return True
    if badge.scans_required is not None and profile.total_scans >= badge.scans_required:
        return True
    if badge.category_required is not None:
        cat = WasteCategory.coerce(badge.category_required)
        if cat != WasteCategory.UNKNOWN and category_counts.get(cat, 0) >= 1:
            return True
    return False


def evaluate_new_badges(catalog: Iterable[Badge], earned_ids: Iterable[str], profile: Profile,
                        category_counts: Mapping[WasteCategory, int]) -> list[str]:
    earned = set(earned_ids)
    return [
        b.id for b in catalog
        if b.id not in earned and badge_unlocked(b, profile, category_counts)
    ]
