"""
HTTP adapter for the hosted Supabase database (PostgREST).

Reads go straight to the tables. Scoring goes through a stored procedure so
the point increment, streak update and badge awards happen in one database
transaction:
  Request:  POST /rest/v1/rpc/<SUPABASE_SCORING_RPC>
            {"p_user_id": "...", "p_points": 12, "p_category": "dry_recyclable"}
  Response: the badge ids newly earned by this call, either as
            ["first_scan", ...] or [{"badge_id": "first_scan"}, ...]
"""
from datetime import date, datetime
from typing import Optional

import httpx

from ecoscan.adapters.store.base import ProgressStore, rank_entries
from ecoscan.orchestrator.contracts import (
    Badge,
    EarnedBadge,
    LeaderboardEntry,
    Profile,
    ScanEvent,
    ScoringOutcome,
    WasteCategory,
)
from ecoscan.orchestrator.errors import PersistenceError
from ecoscan.orchestrator.scoring import level_for

SCORING_RPC = "apply_scan_scoring"


def _dt(value) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _profile(row: dict) -> Profile:
    points = row.get("eco_points") or 0
    last = row.get("last_scan_date")
    return Profile(
        user_id=row["user_id"],
        display_name=row.get("display_name"),
        eco_points=points,
        total_scans=row.get("total_scans") or 0,
        streak_days=row.get("streak_days") or 0,
        level=level_for(points),
        last_scan_date=date.fromisoformat(last[:10]) if last else None,
        created_at=_dt(row.get("created_at")),
        updated_at=_dt(row.get("updated_at")),
    )


def _badge(row: dict) -> Badge:
    cat = row.get("category_required")
    return Badge(
        id=str(row["id"]),
        name=row["name"],
        description=row.get("description") or "",
        icon=row.get("icon") or "",
        points_required=row.get("points_required"),
        scans_required=row.get("scans_required"),
        category_required=WasteCategory.coerce(cat) if cat else None,
    )


def _event(row: dict) -> ScanEvent:
    return ScanEvent(
        user_id=row["user_id"],
        item_name=row["item_name"],
        category=WasteCategory.coerce(row["category"]),
        bin_color=row["bin_color"],
        bin_type=row["bin_type"],
        disposal_tip=row.get("disposal_tip") or "",
        confidence=row["confidence"],
        points_earned=row["points_earned"],
        scanned_at=datetime.fromisoformat(row["scanned_at"]),
    )


def _badge_ids(data) -> list[str]:
    if isinstance(data, dict):
        data = data.get("new_badges") or data.get("new_badge_ids") or []
    ids = []
    for item in data or []:
        if isinstance(item, dict):
            item = item.get("badge_id") or item.get("id")
        if item:
            ids.append(str(item))
    return ids


class SupabaseStore(ProgressStore):
    def __init__(self, status_store, base_url: str, api_key: str, scoring_rpc: str = SCORING_RPC,
                 timeout: float = 15.0, client: httpx.Client | None = None):
        self.status = status_store
        self.base_url = base_url.rstrip("/")
        self.scoring_rpc = scoring_rpc
        self._client = client or httpx.Client(timeout=timeout)
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self.status.log(f"supabase_store: ready ({self.base_url})")

    def _request(self, method: str, path: str, params: dict | None = None,
                 payload=None, prefer: str | None = None):
        url = f"{self.base_url}/rest/v1{path}"
        headers = dict(self._headers)
        if prefer:
            headers["Prefer"] = prefer
        try:
            resp = self._client.request(method, url, params=params, json=payload, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            self.status.log(f"supabase_store: {method} {path} → HTTP {e.response.status_code} {e.response.text[:200]}")
            raise PersistenceError(f"supabase {path}: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            self.status.log(f"supabase_store: {method} {path} failed: {type(e).__name__}: {e}")
            raise PersistenceError(f"supabase {path}: {type(e).__name__}") from e
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise PersistenceError(f"supabase {path}: invalid JSON") from e

    def get_profile(self, user_id: str) -> Optional[Profile]:
        rows = self._request("GET", "/profiles", params={"user_id": f"eq.{user_id}", "select": "*"})
        return _profile(rows[0]) if rows else None

    def ensure_profile(self, user_id: str, display_name: Optional[str] = None) -> Profile:
        row = {"user_id": user_id}
        if display_name is not None:
            row["display_name"] = display_name
        # merge-duplicates only touches the columns sent, existing points survive
        rows = self._request(
            "POST", "/profiles", params={"on_conflict": "user_id"}, payload=row,
            prefer="resolution=merge-duplicates,return=representation",
        )
        if not rows:
            raise PersistenceError(f"supabase /profiles: no row returned for {user_id}")
        return _profile(rows[0])

    def get_badge_catalog(self) -> list[Badge]:
        rows = self._request(
            "GET", "/badges", params={"select": "*", "order": "points_required.asc.nullsfirst"}
        )
        return [_badge(r) for r in rows or []]

    def get_earned_badges(self, user_id: str) -> list[EarnedBadge]:
        rows = self._request(
            "GET", "/user_badges",
            params={"user_id": f"eq.{user_id}", "select": "badge_id,earned_at", "order": "earned_at.asc"},
        )
        return [EarnedBadge(user_id, str(r["badge_id"]), datetime.fromisoformat(r["earned_at"])) for r in rows or []]

    def get_scan_history(self, user_id: str, limit: int = 50) -> list[ScanEvent]:
        rows = self._request(
            "GET", "/scan_history",
            params={"user_id": f"eq.{user_id}", "select": "*", "order": "scanned_at.desc", "limit": str(limit)},
        )
        return [_event(r) for r in rows or []]

    def record_scan(self, event: ScanEvent) -> None:
        self._request(
            "POST", "/scan_history",
            payload={
                "user_id": event.user_id,
                "item_name": event.item_name,
                "category": event.category.value,
                "bin_color": event.bin_color,
                "bin_type": event.bin_type,
                "disposal_tip": event.disposal_tip,
                "confidence": event.confidence,
                "points_earned": event.points_earned,
                "scanned_at": event.scanned_at.isoformat(),
            },
            prefer="return=minimal",
        )

    def apply_scoring(self, user_id: str, points_earned: int,
                      category: WasteCategory) -> ScoringOutcome:
        category = WasteCategory.coerce(category)
        data = self._request(
            "POST", f"/rpc/{self.scoring_rpc}",
            payload={"p_user_id": user_id, "p_points": points_earned, "p_category": category.value},
        )
        new_ids = _badge_ids(data)
        self.status.log(f"supabase_store: {user_id} +{points_earned} new_badges={new_ids}")
        # rpc already committed; badges come from its reply, not the re-read
        try:
            profile = self.get_profile(user_id)
        except PersistenceError as e:
            self.status.log(f"supabase_store: profile re-read failed for {user_id}: {e}")
            profile = None
        return ScoringOutcome(profile=profile, new_badge_ids=new_ids)

    def get_leaderboard(self, limit: int = 50) -> list[LeaderboardEntry]:
        rows = self._request(
            "GET", "/profiles",
            params={
                "select": "user_id,display_name,eco_points,level,total_scans",
                "display_name": "not.is.null",
                "order": "eco_points.desc",
                "limit": str(limit),
            },
        )
        return rank_entries([_profile(r) for r in rows or []], limit)

    def describe(self) -> dict:
        return {"adapter": type(self).__name__, "url": self.base_url, "rpc": self.scoring_rpc}
