import time
from datetime import datetime, timezone
from typing import Callable, Optional

from ecoscan.orchestrator.contracts import ScanEvent, ScanOutcome, WasteCategory
from ecoscan.orchestrator.errors import InputError, PersistenceError
from ecoscan.orchestrator.policy import policy_for
from ecoscan.orchestrator.scoring import score


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ScanPipeline:
    """capture → classify → score → persist, one scan per session at a time."""

    def __init__(self, vision, store, status_store, clock: Callable[[], datetime] = utc_now):
        self.vision = vision
        self.store = store
        self.status = status_store
        self.clock = clock

    def scan(self, image_bytes: bytes, user_id: Optional[str] = None,
             session_id: Optional[str] = None) -> ScanOutcome:
        """Entry point for the API: enforces the one-scan-per-session rule."""
        if not session_id:
            return self.run_scan(image_bytes, user_id=user_id)

        session = self.status.begin_scan(session_id)
        try:
            return self.run_scan(image_bytes, user_id=user_id, session=session)
        finally:
            self.status.end_scan(session)

    def run_scan(self, image_bytes: bytes, user_id: Optional[str] = None, session=None) -> ScanOutcome:
        if not image_bytes:
            self.status.log("scan: no image provided")
            raise InputError()

        t0 = time.time()
        self.status.log(f"scan: start user={user_id or 'anonymous'} bytes={len(image_bytes)}")

        # 1) classify; upstream errors propagate to the caller untouched
        result = self.vision.classify(image_bytes)
        self.status.last_result = result
        policy = policy_for(result.category)
        self.status.log(
            f"scan: {result.item_name} [{result.category.value}] conf={result.confidence:.2f} → {policy.bin_type}"
        )

        # 2) caller went away while the model was thinking
        if session is not None and session.cancelled:
            self.status.log(f"scan: session {session.session_id} cancelled, discarding result")
            return ScanOutcome(result=result, policy=policy, cancelled=True)

        # 3) anonymous preview: classification only
        if not user_id:
            return ScanOutcome(result=result, policy=policy)

        # 4) score, then persist; a storage failure never hides the answer
        points = score(result.category, result.confidence)
        outcome = ScanOutcome(result=result, policy=policy)
        try:
            new_badges: list[str] = []
            if result.category != WasteCategory.UNKNOWN:
                new_badges = self.store.apply_scoring(user_id, points, result.category).new_badge_ids
        except PersistenceError as e:
            self.status.last_error = str(e)
            self.status.log(f"scan: progress not saved for {user_id}: {e}")
            return outcome

        # 5) history only records points that reached the totals
        outcome.points_earned = points
        outcome.new_badges = new_badges
        outcome.persisted = True
        try:
            self.store.record_scan(ScanEvent.from_result(user_id, result, points, self.clock(), policy))
        except PersistenceError as e:
            self.status.last_error = str(e)
            self.status.log(f"scan: history not saved for {user_id}: {e}")

        dt = int((time.time() - t0) * 1000)
        self.status.log(
            f"scan: done user={user_id} points={outcome.points_earned} badges={outcome.new_badges} dt={dt}ms"
        )
        return outcome
