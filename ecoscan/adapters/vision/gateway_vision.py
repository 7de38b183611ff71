"""
Waste classifier over an OpenAI-compatible chat-completions gateway.

Default target is the Lovable AI gateway with google/gemini-2.5-flash, but any
endpoint that accepts image_url content parts works (set AI_GATEWAY_URL and
AI_MODEL). Requires AI_GATEWAY_API_KEY in ecoscan/.env.

No retries here: a rate-limited call is reported to the user, who decides
whether to pay for another attempt.
"""
import base64

import httpx

from ecoscan.adapters.vision.base import SYSTEM_PROMPT, USER_PROMPT, ClassificationProvider
from ecoscan.adapters.vision.normalize import parse_model_output
from ecoscan.orchestrator.contracts import ClassificationResult
from ecoscan.orchestrator.errors import (
    UpstreamQuotaExhausted,
    UpstreamRateLimited,
    UpstreamUnavailable,
)

GATEWAY_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
GATEWAY_MODEL = "google/gemini-2.5-flash"


def build_payload(model: str, image_bytes: bytes) -> dict:
    b64 = base64.standard_b64encode(image_bytes).decode("utf-8")
    return {
        "model": model,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:image/jpeg;base64,{b64}"},
                    },
                    {"type": "text", "text": USER_PROMPT},
                ],
            },
        ],
    }


class GatewayVision(ClassificationProvider):
    name = "gateway"

    def __init__(self, status_store, api_key: str | None, url: str = GATEWAY_URL,
                 model: str = GATEWAY_MODEL, timeout: float = 30.0,
                 client: httpx.Client | None = None):
        self.status = status_store
        self._api_key = api_key
        self.url = url
        self.model = model
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)
        self._ready = bool(api_key)
        if self._ready:
            self.status.log(f"gateway_vision: ready (model={model})")
        else:
            self.status.log("gateway_vision: AI_GATEWAY_API_KEY not set")

    def classify(self, image_bytes: bytes) -> ClassificationResult:
        if not self._ready:
            raise UpstreamUnavailable("AI gateway API key is not configured")

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        self.status.log(f"gateway_vision: analyzing {len(image_bytes)} bytes")
        try:
            resp = self._client.post(self.url, json=build_payload(self.model, image_bytes), headers=headers)
        except httpx.HTTPError as e:
            self.status.log(f"gateway_vision: transport error: {type(e).__name__}: {e}")
            raise UpstreamUnavailable(f"AI gateway unreachable: {type(e).__name__}") from e

        if not resp.is_success:
            self.status.log(f"gateway_vision: HTTP {resp.status_code}: {resp.text[:300]}")
            if resp.status_code == 429:
                raise UpstreamRateLimited()
            if resp.status_code == 402:
                raise UpstreamQuotaExhausted()
            raise UpstreamUnavailable(f"AI Gateway error: {resp.status_code}")

        content = self._content(resp)
        if not content:
            self.status.log("gateway_vision: empty message content")
            raise UpstreamUnavailable("No response from AI")

        self.status.log(f"gateway_vision: raw='{content[:200]}'")
        result = parse_model_output(content)
        self.status.log(
            f"gateway_vision: → {result.item_name} [{result.category.value}] conf={result.confidence:.2f}"
        )
        return result

    def _content(self, resp: httpx.Response) -> str | None:
        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            return None
        return content if isinstance(content, str) else None

    def describe(self) -> dict:
        return {"adapter": type(self).__name__, "model": self.model, "ready": self._ready}
