"""
SQLite-backed progress store.

Same tables as the hosted database. apply_scoring runs inside BEGIN IMMEDIATE,
which takes the database write lock up front, so concurrent scans for one
user are serialised and read each other's committed totals. user_badges has
a unique key on (user_id, badge_id); awards use INSERT OR IGNORE.

Every call opens its own connection, so the store is safe to share between
request threads. SQLITE_PATH must point at a file (not ":memory:").
"""
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timezone
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
from ecoscan.orchestrator.errors import PersistenceError
from ecoscan.orchestrator.scoring import apply_scan, evaluate_new_badges

SCHEMA = """
CREATE TABLE IF NOT EXISTS profiles (
    user_id TEXT PRIMARY KEY,
    display_name TEXT,
    eco_points INTEGER NOT NULL DEFAULT 0,
    total_scans INTEGER NOT NULL DEFAULT 0,
    streak_days INTEGER NOT NULL DEFAULT 0,
    last_scan_date TEXT,
    level INTEGER NOT NULL DEFAULT 1,
    created_at TEXT,
    updated_at TEXT
);
CREATE TABLE IF NOT EXISTS badges (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT NOT NULL,
    icon TEXT NOT NULL,
    points_required INTEGER,
    scans_required INTEGER,
    category_required TEXT
);
CREATE TABLE IF NOT EXISTS user_badges (
    user_id TEXT NOT NULL,
    badge_id TEXT NOT NULL REFERENCES badges(id),
    earned_at TEXT NOT NULL,
    UNIQUE (user_id, badge_id)
);
CREATE TABLE IF NOT EXISTS scan_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    item_name TEXT NOT NULL,
    category TEXT NOT NULL,
    bin_color TEXT NOT NULL,
    bin_type TEXT NOT NULL,
    disposal_tip TEXT,
    confidence REAL NOT NULL,
    points_earned INTEGER NOT NULL,
    scanned_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS scan_history_user ON scan_history (user_id, scanned_at);
CREATE TABLE IF NOT EXISTS category_counts (
    user_id TEXT NOT NULL,
    category TEXT NOT NULL,
    scans INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (user_id, category)
);
"""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _row_to_profile(row: sqlite3.Row) -> Profile:
    return Profile(
        user_id=row["user_id"],
        display_name=row["display_name"],
        eco_points=row["eco_points"],
        total_scans=row["total_scans"],
        streak_days=row["streak_days"],
        level=row["level"],
        last_scan_date=date.fromisoformat(row["last_scan_date"]) if row["last_scan_date"] else None,
        created_at=_dt(row["created_at"]),
        updated_at=_dt(row["updated_at"]),
    )


def _row_to_badge(row: sqlite3.Row) -> Badge:
    cat = row["category_required"]
    return Badge(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        icon=row["icon"],
        points_required=row["points_required"],
        scans_required=row["scans_required"],
        category_required=WasteCategory.coerce(cat) if cat else None,
    )


def _row_to_event(row: sqlite3.Row) -> ScanEvent:
    return ScanEvent(
        user_id=row["user_id"],
        item_name=row["item_name"],
        category=WasteCategory.coerce(row["category"]),
        bin_color=row["bin_color"],
        bin_type=row["bin_type"],
        disposal_tip=row["disposal_tip"] or "",
        confidence=row["confidence"],
        points_earned=row["points_earned"],
        scanned_at=datetime.fromisoformat(row["scanned_at"]),
    )


class SqliteStore(ProgressStore):
    def __init__(self, status_store, path: str = "ecoscan.db", badges: Optional[list[Badge]] = None,
                 clock: Callable[[], datetime] = utc_now, timeout: float = 10.0):
        self.status = status_store
        self.path = path
        self.clock = clock
        self.timeout = timeout
        self._init_db(DEFAULT_BADGES if badges is None else badges)
        self.status.log(f"sqlite_store: ready ({path})")

    @contextmanager
    def _connect(self):
        try:
            conn = sqlite3.connect(self.path, timeout=self.timeout, isolation_level=None)
        except sqlite3.Error as e:
            raise PersistenceError(f"sqlite: cannot open {self.path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        except sqlite3.Error as e:
            self.status.log(f"sqlite_store: error {type(e).__name__}: {e}")
            raise PersistenceError(f"sqlite: {e}") from e
        finally:
            conn.close()

    @contextmanager
    def _transaction(self):
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    def _init_db(self, badges: list[Badge]):
        with self._connect() as conn:
            conn.executescript(SCHEMA)
        with self._transaction() as conn:
            conn.executemany(
                "INSERT OR IGNORE INTO badges (id, name, description, icon, points_required,"
                " scans_required, category_required) VALUES (?,?,?,?,?,?,?)",
                [
                    (b.id, b.name, b.description, b.icon, b.points_required, b.scans_required,
                     b.category_required.value if b.category_required else None)
                    for b in badges
                ],
            )

    def get_profile(self, user_id: str) -> Optional[Profile]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM profiles WHERE user_id = ?", (user_id,)).fetchone()
        return _row_to_profile(row) if row else None

    def ensure_profile(self, user_id: str, display_name: Optional[str] = None) -> Profile:
        now = self.clock().isoformat()
        with self._transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO profiles (user_id, display_name, created_at, updated_at)"
                " VALUES (?,?,?,?)",
                (user_id, display_name, now, now),
            )
            if display_name is not None:
                conn.execute(
                    "UPDATE profiles SET display_name = ?, updated_at = ? WHERE user_id = ?",
                    (display_name, now, user_id),
                )
            row = conn.execute("SELECT * FROM profiles WHERE user_id = ?", (user_id,)).fetchone()
        return _row_to_profile(row)

    def get_badge_catalog(self) -> list[Badge]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM badges").fetchall()
        return sort_catalog([_row_to_badge(r) for r in rows])

    def get_earned_badges(self, user_id: str) -> list[EarnedBadge]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM user_badges WHERE user_id = ? ORDER BY earned_at", (user_id,)
            ).fetchall()
        return [EarnedBadge(r["user_id"], r["badge_id"], datetime.fromisoformat(r["earned_at"])) for r in rows]

    def get_scan_history(self, user_id: str, limit: int = 50) -> list[ScanEvent]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM scan_history WHERE user_id = ? ORDER BY scanned_at DESC, id DESC LIMIT ?",
                (user_id, limit),
            ).fetchall()
        return [_row_to_event(r) for r in rows]

    def record_scan(self, event: ScanEvent) -> None:
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO scan_history (user_id, item_name, category, bin_color, bin_type,"
                " disposal_tip, confidence, points_earned, scanned_at) VALUES (?,?,?,?,?,?,?,?,?)",
                (event.user_id, event.item_name, event.category.value, event.bin_color, event.bin_type,
                 event.disposal_tip, event.confidence, event.points_earned, event.scanned_at.isoformat()),
            )

    def apply_scoring(self, user_id: str, points_earned: int,
                      category: WasteCategory) -> ScoringOutcome:
        category = WasteCategory.coerce(category)
        now = self.clock()
        stamp = now.isoformat()
        with self._transaction() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO profiles (user_id, created_at, updated_at) VALUES (?,?,?)",
                (user_id, stamp, stamp),
            )
            before = _row_to_profile(
                conn.execute("SELECT * FROM profiles WHERE user_id = ?", (user_id,)).fetchone()
            )
            after = apply_scan(before, points_earned, now.date(), now)
            conn.execute(
                "UPDATE profiles SET eco_points = ?, total_scans = ?, streak_days = ?,"
                " last_scan_date = ?, level = ?, updated_at = ? WHERE user_id = ?",
                (after.eco_points, after.total_scans, after.streak_days,
                 after.last_scan_date.isoformat(), after.level, stamp, user_id),
            )

            if category != WasteCategory.UNKNOWN:
                conn.execute(
                    "INSERT INTO category_counts (user_id, category, scans) VALUES (?,?,1)"
                    " ON CONFLICT (user_id, category) DO UPDATE SET scans = scans + 1",
                    (user_id, category.value),
                )
            counts = {
                WasteCategory.coerce(r["category"]): r["scans"]
                for r in conn.execute(
                    "SELECT category, scans FROM category_counts WHERE user_id = ?", (user_id,)
                )
            }
            earned = [
                r["badge_id"]
                for r in conn.execute("SELECT badge_id FROM user_badges WHERE user_id = ?", (user_id,))
            ]
            catalog = [_row_to_badge(r) for r in conn.execute("SELECT * FROM badges")]

            new_ids = []
            for badge_id in evaluate_new_badges(catalog, earned, after, counts):
                cur = conn.execute(
                    "INSERT OR IGNORE INTO user_badges (user_id, badge_id, earned_at) VALUES (?,?,?)",
                    (user_id, badge_id, stamp),
                )
                if cur.rowcount == 1:
                    new_ids.append(badge_id)

        self.status.log(
            f"sqlite_store: {user_id} +{points_earned} → {after.eco_points} pts "
            f"lvl={after.level} streak={after.streak_days} new_badges={new_ids}"
        )
        return ScoringOutcome(profile=after, new_badge_ids=new_ids)

    def get_leaderboard(self, limit: int = 50) -> list[LeaderboardEntry]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM profiles WHERE display_name IS NOT NULL AND display_name != ''"
                " ORDER BY eco_points DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return rank_entries([_row_to_profile(r) for r in rows], limit)

    def describe(self) -> dict:
        return {"adapter": type(self).__name__, "path": self.path}
