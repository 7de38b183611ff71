import threading
from collections import defaultdict
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional

from ecoscan.adapters.store.base import ProgressStore, rank_entries, sort_catalog
from ecoscan.orchestrator.badges import DEFAULT_BADGES
from ecoscan.orchestrator.contracts import (
    Badge,
    EarnedBadge,
    LeaderboardEntry,
    Profile,
    ScanEvent,
    ScoringOutcome,
    WasteCategory,
)
from ecoscan.orchestrator.scoring import apply_scan, evaluate_new_badges


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryStore(ProgressStore):
    """Process-local store. One lock per user serialises scoring updates."""

    def __init__(self, status_store, badges: Optional[list[Badge]] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.status = status_store
        self.clock = clock
        self._badges = list(DEFAULT_BADGES if badges is None else badges)
        self._profiles: dict[str, Profile] = {}
        self._earned: dict[str, dict[str, EarnedBadge]] = defaultdict(dict)
        self._counts: dict[str, dict[WasteCategory, int]] = defaultdict(dict)
        self._history: dict[str, list[ScanEvent]] = defaultdict(list)
        self._user_locks: dict[str, threading.Lock] = {}
        self._registry = threading.Lock()

    def _lock_for(self, user_id: str) -> threading.Lock:
        with self._registry:
            lock = self._user_locks.get(user_id)
            if lock is None:
                lock = self._user_locks[user_id] = threading.Lock()
            return lock

    def get_profile(self, user_id: str) -> Optional[Profile]:
        p = self._profiles.get(user_id)
        return replace(p) if p else None

    def ensure_profile(self, user_id: str, display_name: Optional[str] = None) -> Profile:
        with self._lock_for(user_id):
            now = self.clock()
            p = self._profiles.get(user_id)
            if p is None:
                p = Profile(user_id=user_id, display_name=display_name, created_at=now, updated_at=now)
            elif display_name is not None:
                p = replace(p, display_name=display_name, updated_at=now)
            with self._registry:
                self._profiles[user_id] = p
            return replace(p)

    def get_badge_catalog(self) -> list[Badge]:
        return sort_catalog(self._badges)

    def get_earned_badges(self, user_id: str) -> list[EarnedBadge]:
        with self._lock_for(user_id):
            earned = list(self._earned.get(user_id, {}).values())
        return sorted(earned, key=lambda e: e.earned_at)

    def get_scan_history(self, user_id: str, limit: int = 50) -> list[ScanEvent]:
        with self._lock_for(user_id):
            events = list(self._history.get(user_id, []))
        events.sort(key=lambda e: e.scanned_at, reverse=True)
        return events[:limit]

    def record_scan(self, event: ScanEvent) -> None:
        with self._lock_for(event.user_id):
            self._history[event.user_id].append(event)

    def apply_scoring(self, user_id: str, points_earned: int,
                      category: WasteCategory) -> ScoringOutcome:
        category = WasteCategory.coerce(category)
        with self._lock_for(user_id):
            now = self.clock()
            before = self._profiles.get(user_id) or Profile(user_id=user_id, created_at=now)
            after = apply_scan(before, points_earned, now.date(), now)

            counts = self._counts[user_id]
            if category != WasteCategory.UNKNOWN:
                counts[category] = counts.get(category, 0) + 1

            earned = self._earned[user_id]
            new_ids = evaluate_new_badges(self._badges, earned.keys(), after, counts)
            for badge_id in new_ids:
                earned[badge_id] = EarnedBadge(user_id=user_id, badge_id=badge_id, earned_at=now)

            with self._registry:
                self._profiles[user_id] = after

        self.status.log(
            f"memory_store: {user_id} +{points_earned} → {after.eco_points} pts "
            f"lvl={after.level} streak={after.streak_days} new_badges={new_ids}"
        )
        return ScoringOutcome(profile=replace(after), new_badge_ids=new_ids)

    def get_leaderboard(self, limit: int = 50) -> list[LeaderboardEntry]:
        # profiles are replaced whole, never mutated, under _registry
        with self._registry:
            profiles = list(self._profiles.values())
        return rank_entries(profiles, limit)
