"""
Claude Vision waste classifier (zero-shot).

Sends the image to Claude via the Anthropic Messages API with the same
instructions as the gateway classifier.

Requires ANTHROPIC_API_KEY in environment (ecoscan/.env or system env).
"""
import base64

import anthropic

from ecoscan.adapters.vision.base import SYSTEM_PROMPT, USER_PROMPT, ClassificationProvider
from ecoscan.adapters.vision.normalize import parse_model_output
from ecoscan.orchestrator.contracts import ClassificationResult
from ecoscan.orchestrator.errors import (
    UpstreamQuotaExhausted,
    UpstreamRateLimited,
    UpstreamUnavailable,
)

CLAUDE_MODEL = "claude-haiku-4-5-20251001"


class ClaudeVision(ClassificationProvider):
    name = "claude"

    def __init__(self, status_store, api_key: str | None, model: str = CLAUDE_MODEL,
                 timeout: float = 30.0, client=None):
        self.status = status_store
        self.model = model
        self._client = client
        self._ready = client is not None
        if self._ready:
            return
        if not api_key:
            self.status.log("claude_vision: ANTHROPIC_API_KEY not set")
            return
        # the SDK retries 429s by default; the retry decision belongs to the user
        self._client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self._ready = True
        self.status.log(f"claude_vision: ready ({model})")

    def classify(self, image_bytes: bytes) -> ClassificationResult:
        if not self._ready or self._client is None:
            raise UpstreamUnavailable("Anthropic API key is not configured")

        b64 = base64.standard_b64encode(image_bytes).decode("utf-8")
        try:
            message = self._client.messages.create(
                model=self.model,
                max_tokens=512,
                system=SYSTEM_PROMPT,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": "image/jpeg",
                                    "data": b64,
                                },
                            },
                            {"type": "text", "text": USER_PROMPT},
                        ],
                    }
                ],
            )
        except anthropic.RateLimitError as e:
            self.status.log(f"claude_vision: rate limited: {e}")
            raise UpstreamRateLimited() from e
        except anthropic.APIStatusError as e:
            self.status.log(f"claude_vision: HTTP {e.status_code}: {e}")
            if e.status_code == 402:
                raise UpstreamQuotaExhausted() from e
            raise UpstreamUnavailable(f"Claude API error: {e.status_code}") from e
        except anthropic.APIError as e:
            self.status.log(f"claude_vision: API error: {e}")
            raise UpstreamUnavailable(f"Claude API unreachable: {type(e).__name__}") from e

        raw = "".join(
            getattr(block, "text", "") for block in (message.content or [])
        ).strip()
        if not raw:
            self.status.log("claude_vision: empty response")
            raise UpstreamUnavailable("No response from AI")

        self.status.log(f"claude_vision: raw response = '{raw[:200]}'")
        result = parse_model_output(raw)
        self.status.log(
            f"claude_vision: → {result.item_name} [{result.category.value}] conf={result.confidence:.2f}"
        )
        return result

    def describe(self) -> dict:
        return {"adapter": type(self).__name__, "model": self.model, "ready": self._ready}
