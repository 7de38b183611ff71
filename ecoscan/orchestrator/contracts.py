from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional


class WasteCategory(str, Enum):
    WET_ORGANIC = "wet_organic"
    DRY_RECYCLABLE = "dry_recyclable"
    HAZARDOUS = "hazardous"
    E_WASTE = "e_waste"
    REJECT_SANITARY = "reject_sanitary"
    UNKNOWN = "unknown"

    @classmethod
    def coerce(cls, value) -> "WasteCategory":
        """Closed-world lookup: anything that is not one of the six tags is UNKNOWN."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        return cls.UNKNOWN


@dataclass(frozen=True)
class CategoryPolicy:
    bin_color: str
    bin_type: str
    default_tip: str
    base_points: int


@dataclass
class ClassificationResult:
    item_name: str
    category: WasteCategory
    confidence: float            # always clamped to [0, 1]
    disposal_tip: str


@dataclass(frozen=True)
class ScanEvent:
    user_id: str
    item_name: str
    category: WasteCategory
    bin_color: str
    bin_type: str
    disposal_tip: str
    confidence: float
    points_earned: int
    scanned_at: datetime

    @classmethod
    def from_result(cls, user_id: str, result: ClassificationResult, points_earned: int,
                    scanned_at: datetime, policy: CategoryPolicy) -> "ScanEvent":
        return cls(
            user_id=user_id,
            item_name=result.item_name,
            category=result.category,
            bin_color=policy.bin_color,
            bin_type=policy.bin_type,
            disposal_tip=result.disposal_tip,
            confidence=result.confidence,
            points_earned=points_earned,
            scanned_at=scanned_at,
        )


@dataclass
class Profile:
    user_id: str
    display_name: Optional[str] = None
    eco_points: int = 0
    total_scans: int = 0
    streak_days: int = 0
    level: int = 1
    last_scan_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Badge:
    id: str
    name: str
    description: str
    icon: str
    points_required: Optional[int] = None
    scans_required: Optional[int] = None
    category_required: Optional[WasteCategory] = None


@dataclass(frozen=True)
class EarnedBadge:
    user_id: str
    badge_id: str
    earned_at: datetime


@dataclass
class ScoringOutcome:
    profile: Optional[Profile]
    new_badge_ids: list[str] = field(default_factory=list)


@dataclass
class ScanOutcome:
    result: ClassificationResult
    policy: CategoryPolicy
    points_earned: Optional[int] = None     # None in anonymous/preview mode
    new_badges: Optional[list[str]] = None
    persisted: bool = False
    cancelled: bool = False


@dataclass
class LeaderboardEntry:
    rank: int
    user_id: str
    display_name: str
    eco_points: int
    level: int
    total_scans: int
