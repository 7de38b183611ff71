from ecoscan.orchestrator.contracts import ClassificationResult

SYSTEM_PROMPT = """You are an expert waste classification AI. Analyze the image and identify the waste item, then classify it into exactly ONE of these categories:

1. "wet_organic" - Food waste, vegetable/fruit peels, garden waste, flowers, leaves, coffee grounds, tea bags
2. "dry_recyclable" - Paper, cardboard, plastic bottles, metal cans, glass bottles, newspapers, magazines, clean packaging
3. "hazardous" - Batteries, paint, chemicals, pesticides, fluorescent bulbs, medical waste, oils, solvents
4. "e_waste" - Phones, computers, TVs, cables, keyboards, mice, chargers, electronic devices, circuit boards
5. "reject_sanitary" - Diapers, sanitary pads, tissues, cotton swabs, bandages, masks, gloves, contaminated items

Respond ONLY with valid JSON in this exact format:
{
  "itemName": "identified item name",
  "category": "one of: wet_organic, dry_recyclable, hazardous, e_waste, reject_sanitary, unknown",
  "confidence": 0.0 to 1.0,
  "disposalTip": "specific disposal instruction for this item"
}

If the image is blurry, unclear, or doesn't show waste, use "unknown" category with appropriate confidence score."""

USER_PROMPT = "Analyze this waste item and classify it. Respond with JSON only."


class ClassificationProvider:
    name = "base"

    def classify(self, image_bytes: bytes) -> ClassificationResult:
        """Send one JPEG to the model and return the normalized result.

        Raises UpstreamRateLimited / UpstreamQuotaExhausted / UpstreamUnavailable
        on transport failure. Unparseable model output never raises.
        """
        raise NotImplementedError

    def describe(self) -> dict:
        return {"adapter": type(self).__name__}
