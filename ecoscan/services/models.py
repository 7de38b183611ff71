from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ScanRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Optional so a missing image is answered with our own 400, not a 422
    image_base64: Optional[str] = Field(default=None, alias="imageBase64")  # base64 JPEG
    # No userId → classification only, nothing is scored or saved
    user_id: Optional[str] = Field(default=None, alias="userId")
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class ScanResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_name: str = Field(alias="itemName")
    category: str
    bin_color: str = Field(alias="binColor")
    bin_type: str = Field(alias="binType")
    disposal_tip: str = Field(alias="disposalTip")
    confidence: float
    points_earned: Optional[int] = Field(default=None, alias="pointsEarned")
    new_badges: Optional[list[str]] = Field(default=None, alias="newBadges")


class ErrorResponse(BaseModel):
    error: str


class ProfileIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    display_name: Optional[str] = Field(default=None, alias="displayName")


class ProfileOut(BaseModel):
    user_id: str
    display_name: Optional[str] = None
    eco_points: int
    total_scans: int
    streak_days: int
    level: int
    last_scan_date: Optional[date] = None
    points_to_next_level: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BadgeOut(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    points_required: Optional[int] = None
    scans_required: Optional[int] = None
    category_required: Optional[str] = None
    earned_at: Optional[datetime] = None


class ScanHistoryOut(BaseModel):
    item_name: str
    category: str
    bin_color: str
    bin_type: str
    disposal_tip: Optional[str] = None
    confidence: float
    points_earned: int
    scanned_at: datetime


class LeaderboardEntryOut(BaseModel):
    rank: int
    user_id: str
    display_name: str
    eco_points: int
    level: int
    total_scans: int


class PolicyOut(BaseModel):
    category: str
    label: str
    bin_color: str
    bin_type: str
    default_tip: str
    base_points: int
    eco_fact: str


class StatusResponse(BaseModel):
    vision: dict
    store: dict
    last_error: Optional[str] = None
    active_sessions: int
    logs: list[str]


class SessionStartResponse(BaseModel):
    session_id: str
    ok: bool


class SessionCancelResponse(BaseModel):
    ok: bool
    cancelled: bool
