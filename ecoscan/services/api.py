import base64
import binascii
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ecoscan.adapters.store.base import ProgressStore
from ecoscan.adapters.vision.base import ClassificationProvider
from ecoscan.orchestrator.contracts import ScanOutcome, WasteCategory
from ecoscan.orchestrator.errors import EcoScanError, InputError
from ecoscan.orchestrator.policy import CATEGORY_LABELS, ECO_FACTS, all_policies
from ecoscan.orchestrator.scoring import points_to_next_level
from ecoscan.orchestrator.state_machine import ScanPipeline
from ecoscan.services.config import Settings
from ecoscan.services.models import (
    BadgeOut, ErrorResponse, LeaderboardEntryOut, PolicyOut, ProfileIn, ProfileOut,
    ScanHistoryOut, ScanRequest, ScanResponse, SessionCancelResponse,
    SessionStartResponse, StatusResponse,
)
from ecoscan.services.status_store import StatusStore

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    402: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    429: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def build_vision(settings: Settings, status: StatusStore) -> ClassificationProvider:
    """VISION_ADAPTER: gateway | claude | mock (default: gateway)."""
    adapter = settings.vision_adapter
    vision = None
    if adapter == "gateway":
        from ecoscan.adapters.vision.gateway_vision import GatewayVision
        vision = GatewayVision(status, api_key=settings.gateway_api_key, url=settings.gateway_url,
                               model=settings.model, timeout=settings.ai_timeout_s)
    elif adapter == "claude":
        from ecoscan.adapters.vision.claude_vision import ClaudeVision
        vision = ClaudeVision(status, api_key=settings.anthropic_api_key, model=settings.claude_model,
                              timeout=settings.ai_timeout_s)

    if vision is None or not vision._ready:
        from ecoscan.adapters.vision.mock_vision import MockVision
        if adapter != "mock":
            status.log(f"vision: {adapter} not ready, falling back to mock")
        vision = MockVision(status)

    status.log(f"vision adapter: {type(vision).__name__}")
    return vision


def build_store(settings: Settings, status: StatusStore) -> ProgressStore:
    """STORE_ADAPTER: memory | sqlite | supabase (default: memory)."""
    adapter = settings.store_adapter
    if adapter == "supabase" and settings.supabase_url and settings.supabase_key:
        from ecoscan.adapters.store.supabase_store import SupabaseStore
        store = SupabaseStore(status, base_url=settings.supabase_url, api_key=settings.supabase_key,
                              scoring_rpc=settings.supabase_scoring_rpc)
    elif adapter == "sqlite":
        from ecoscan.adapters.store.sqlite_store import SqliteStore
        store = SqliteStore(status, path=settings.sqlite_path)
    else:
        if adapter not in ("memory", ""):
            status.log(f"store: {adapter} not configured, falling back to memory")
        from ecoscan.adapters.store.memory_store import MemoryStore
        store = MemoryStore(status)

    status.log(f"store adapter: {type(store).__name__}")
    return store


def decode_image(image_base64: Optional[str]) -> bytes:
    if not image_base64 or not image_base64.strip():
        raise InputError("No image provided")
    data = image_base64.strip()
    # tolerate a full data URL from canvas.toDataURL()
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        image_bytes = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InputError("Invalid image data: base64 decode failed") from e
    if not image_bytes:
        raise InputError("No image provided")
    return image_bytes


def scan_response(outcome: ScanOutcome) -> ScanResponse:
    r = outcome.result
    return ScanResponse(
        item_name=r.item_name,
        category=r.category.value,
        bin_color=outcome.policy.bin_color,
        bin_type=outcome.policy.bin_type,
        disposal_tip=r.disposal_tip,
        confidence=r.confidence,
        points_earned=outcome.points_earned,
        new_badges=outcome.new_badges,
    )


def create_app(settings: Optional[Settings] = None, vision: Optional[ClassificationProvider] = None,
               store: Optional[ProgressStore] = None, status: Optional[StatusStore] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    status = status or StatusStore()
    vision = vision or build_vision(settings, status)
    store = store or build_store(settings, status)
    pipeline = ScanPipeline(vision=vision, store=store, status_store=status)

    app = FastAPI(title="ecoscan smart waste scanner")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.status = status
    app.state.vision = vision
    app.state.store = store
    app.state.pipeline = pipeline

    @app.exception_handler(EcoScanError)
    def ecoscan_error(request: Request, exc: EcoScanError):
        status.last_error = str(exc)
        return JSONResponse({"error": str(exc)}, status_code=exc.status_code)

    def analyze(req: ScanRequest):
        try:
            image_bytes = decode_image(req.image_base64)
            outcome = pipeline.scan(image_bytes, user_id=req.user_id, session_id=req.session_id)
        except EcoScanError as e:
            status.log(f"ANALYZE failed [{e.error_code}]: {e}")
            status.last_error = str(e)
            return JSONResponse({"error": str(e)}, status_code=e.status_code)
        except Exception as e:
            status.log(f"ANALYZE error {type(e).__name__}: {e}")
            status.last_error = str(e)
            return JSONResponse({"error": str(e) or "Failed to analyze image"}, status_code=500)
        return scan_response(outcome)

    app.add_api_route(
        "/analyze-waste", analyze, methods=["POST"], response_model=ScanResponse,
        response_model_exclude_none=True, responses=ERROR_RESPONSES,
    )
    app.add_api_route(
        "/scan", analyze, methods=["POST"], response_model=ScanResponse,
        response_model_exclude_none=True, responses=ERROR_RESPONSES,
    )

    @app.post("/session/start", response_model=SessionStartResponse)
    def session_start():
        session = status.start_session()
        status.log(f"SESSION_START: {session.session_id}")
        return SessionStartResponse(session_id=session.session_id, ok=True)

    @app.post("/session/{session_id}/cancel", response_model=SessionCancelResponse)
    def session_cancel(session_id: str):
        return SessionCancelResponse(ok=True, cancelled=status.cancel_session(session_id))

    def profile_out(p) -> ProfileOut:
        return ProfileOut(
            user_id=p.user_id,
            display_name=p.display_name,
            eco_points=p.eco_points,
            total_scans=p.total_scans,
            streak_days=p.streak_days,
            level=p.level,
            last_scan_date=p.last_scan_date,
            points_to_next_level=points_to_next_level(p.eco_points),
            created_at=p.created_at,
            updated_at=p.updated_at,
        )

    @app.get("/profile/{user_id}", response_model=ProfileOut, responses={404: {"model": ErrorResponse}})
    def get_profile(user_id: str):
        p = store.get_profile(user_id)
        if p is None:
            return JSONResponse({"error": "Profile not found"}, status_code=404)
        return profile_out(p)

    @app.post("/profile/{user_id}", response_model=ProfileOut)
    def upsert_profile(user_id: str, req: ProfileIn):
        p = store.ensure_profile(user_id, display_name=req.display_name)
        status.log(f"PROFILE: {user_id} display_name={p.display_name!r}")
        return profile_out(p)

    def badge_out(b, earned_at=None) -> BadgeOut:
        return BadgeOut(
            id=b.id,
            name=b.name,
            description=b.description,
            icon=b.icon,
            points_required=b.points_required,
            scans_required=b.scans_required,
            category_required=b.category_required.value if b.category_required else None,
            earned_at=earned_at,
        )

    @app.get("/badges", response_model=list[BadgeOut])
    def badge_catalog():
        return [badge_out(b) for b in store.get_badge_catalog()]

    @app.get("/badges/{user_id}", response_model=list[BadgeOut])
    def earned_badges(user_id: str):
        catalog = {b.id: b for b in store.get_badge_catalog()}
        return [
            badge_out(catalog[e.badge_id], e.earned_at)
            for e in store.get_earned_badges(user_id)
            if e.badge_id in catalog
        ]

    @app.get("/history/{user_id}", response_model=list[ScanHistoryOut])
    def scan_history(user_id: str, limit: Optional[int] = None):
        limit = max(1, min(limit or settings.history_limit, 500))
        return [
            ScanHistoryOut(
                item_name=e.item_name,
                category=e.category.value,
                bin_color=e.bin_color,
                bin_type=e.bin_type,
                disposal_tip=e.disposal_tip,
                confidence=e.confidence,
                points_earned=e.points_earned,
                scanned_at=e.scanned_at,
            )
            for e in store.get_scan_history(user_id, limit)
        ]

    @app.get("/leaderboard", response_model=list[LeaderboardEntryOut])
    def leaderboard(limit: Optional[int] = None):
        limit = max(1, min(limit or settings.leaderboard_limit, 500))
        return [LeaderboardEntryOut(**vars(e)) for e in store.get_leaderboard(limit)]

    @app.get("/policies", response_model=list[PolicyOut])
    def policies():
        return [
            PolicyOut(
                category=c.value,
                label=CATEGORY_LABELS[c],
                bin_color=p.bin_color,
                bin_type=p.bin_type,
                default_tip=p.default_tip,
                base_points=p.base_points,
                eco_fact=ECO_FACTS[c],
            )
            for c, p in all_policies()
            if c != WasteCategory.UNKNOWN
        ]

    @app.get("/status", response_model=StatusResponse)
    def get_status():
        return StatusResponse(
            vision=vision.describe(),
            store=store.describe(),
            last_error=status.last_error,
            active_sessions=status.active_sessions(),
            logs=list(status.logs),
        )

    @app.get("/health")
    def health():
        """Check connectivity to all subsystems."""
        checks = {"api": True, "vision_adapter": type(vision).__name__, "store_adapter": type(store).__name__}
        try:
            store.get_badge_catalog()
            checks["store_reachable"] = True
        except EcoScanError as e:
            checks["store_reachable"] = False
            checks["store_error"] = str(e)
        checks["all_ok"] = checks["api"] and checks["store_reachable"]
        return checks

    return app


app = create_app()
