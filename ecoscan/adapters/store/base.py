from typing import Optional

from ecoscan.orchestrator.contracts import (
    Badge,
    EarnedBadge,
    LeaderboardEntry,
    Profile,
    ScanEvent,
    ScoringOutcome,
    WasteCategory,
)


class ProgressStore:
    """User progress: profiles, badges, scan history.

    apply_scoring must be atomic per user: two scans by the same user never
    both read the pre-increment totals, and a badge is awarded at most once.
    Implementations raise PersistenceError for any backend failure.
    """

    def get_profile(self, user_id: str) -> Optional[Profile]:
        raise NotImplementedError

    def ensure_profile(self, user_id: str, display_name: Optional[str] = None) -> Profile:
        raise NotImplementedError

    def get_badge_catalog(self) -> list[Badge]:
        raise NotImplementedError

    def get_earned_badges(self, user_id: str) -> list[EarnedBadge]:
        raise NotImplementedError

    def get_scan_history(self, user_id: str, limit: int = 50) -> list[ScanEvent]:
        raise NotImplementedError

    def record_scan(self, event: ScanEvent) -> None:
        raise NotImplementedError

    def apply_scoring(self, user_id: str, points_earned: int,
                      category: WasteCategory) -> ScoringOutcome:
        raise NotImplementedError

    def get_leaderboard(self, limit: int = 50) -> list[LeaderboardEntry]:
        raise NotImplementedError

    def describe(self) -> dict:
        return {"adapter": type(self).__name__}


def sort_catalog(badges: list[Badge]) -> list[Badge]:
    # points_required ascending, badges without a points threshold first
    return sorted(
        badges,
        key=lambda b: (b.points_required is not None, b.points_required or 0),
    )


def rank_entries(profiles: list[Profile], limit: int) -> list[LeaderboardEntry]:
    named = [p for p in profiles if p.display_name]
    named.sort(key=lambda p: -p.eco_points)
    return [
        LeaderboardEntry(
            rank=i + 1,
            user_id=p.user_id,
            display_name=p.display_name,
            eco_points=p.eco_points,
            level=p.level,
            total_scans=p.total_scans,
        )
        for i, p in enumerate(named[:limit])
    ]
