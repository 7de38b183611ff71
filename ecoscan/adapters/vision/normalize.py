"""
Turns the model's message text into a ClassificationResult.

The model is asked for bare JSON but often wraps it in a ```json fence.
Whatever comes back, the caller gets a valid result: an unparseable reply
degrades to an unidentified item in the unknown category.
"""
import json
import math
import re

from ecoscan.orchestrator.contracts import ClassificationResult, WasteCategory
from ecoscan.orchestrator.errors import MalformedModelOutput
from ecoscan.orchestrator.policy import policy_for
from ecoscan.orchestrator.scoring import clamp_confidence

_FENCE_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```")
_FENCE_ANY = re.compile(r"```\s*([\s\S]*?)\s*```")

FALLBACK_ITEM_NAME = "Unidentified Item"
FALLBACK_CONFIDENCE = 0.3
FALLBACK_TIP = "Could not analyze the image clearly. Please try again with a clearer photo."

DEFAULT_ITEM_NAME = "Unknown Item"
DEFAULT_CONFIDENCE = 0.5


def strip_fence(content: str) -> str:
    m = _FENCE_JSON.search(content) or _FENCE_ANY.search(content)
    return (m.group(1) if m else content).strip()


def extract_json(content: str) -> dict:
    try:
        parsed = json.loads(strip_fence(content))
    except (TypeError, ValueError) as e:
        raise MalformedModelOutput(f"not JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise MalformedModelOutput(f"expected a JSON object, got {type(parsed).__name__}")
    return parsed


def _confidence(raw) -> float:
    if isinstance(raw, bool) or raw is None:
        return DEFAULT_CONFIDENCE
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if math.isnan(value):
        return DEFAULT_CONFIDENCE
    return clamp_confidence(value)


def _text(raw) -> str:
    return raw.strip() if isinstance(raw, str) else ""


def fallback_result() -> ClassificationResult:
    return ClassificationResult(
        item_name=FALLBACK_ITEM_NAME,
        category=WasteCategory.UNKNOWN,
        confidence=FALLBACK_CONFIDENCE,
        disposal_tip=FALLBACK_TIP,
    )


def parse_model_output(content) -> ClassificationResult:
    try:
        parsed = extract_json(content)
    except MalformedModelOutput:
        return fallback_result()

    category = WasteCategory.coerce(parsed.get("category"))
    return ClassificationResult(
        item_name=_text(parsed.get("itemName")) or DEFAULT_ITEM_NAME,
        category=category,
        confidence=_confidence(parsed.get("confidence")),
        disposal_tip=_text(parsed.get("disposalTip")) or policy_for(category).default_tip,
    )
