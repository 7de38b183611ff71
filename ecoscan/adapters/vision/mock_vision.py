from ecoscan.adapters.vision.base import ClassificationProvider
from ecoscan.adapters.vision.normalize import parse_model_output
from ecoscan.orchestrator.contracts import ClassificationResult

# What a well-behaved model reply looks like, fence included
CANNED_REPLY = """```json
{
  "itemName": "Plastic water bottle",
  "category": "dry_recyclable",
  "confidence": 0.92,
  "disposalTip": "Empty, rinse and crush the bottle before putting it in the blue bin."
}
```"""


class MockVision(ClassificationProvider):
    name = "mock"

    def __init__(self, status_store, reply: str = CANNED_REPLY):
        self.status = status_store
        self.reply = reply
        self.calls = 0

    def classify(self, image_bytes: bytes) -> ClassificationResult:
        # Mock: ignore the image, run the canned reply through the real parser
        self.calls += 1
        result = parse_model_output(self.reply)
        self.status.log(f"mock_vision: {result.item_name} [{result.category.value}]")
        return result
