"""Tests for ClaudeVision with a stand-in for the Anthropic client."""

from types import SimpleNamespace

import anthropic
import httpx
import pytest

from ecoscan.adapters.vision.claude_vision import ClaudeVision
from ecoscan.orchestrator.contracts import WasteCategory
from ecoscan.orchestrator.errors import (
    UpstreamQuotaExhausted,
    UpstreamRateLimited,
    UpstreamUnavailable,
)

pytestmark = pytest.mark.unit

IMAGE = b"\xff\xd8jpeg"
_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


class FakeMessages:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=self.text)])


def make_vision(status, **kw):
    messages = FakeMessages(**kw)
    return ClaudeVision(status, api_key=None, client=SimpleNamespace(messages=messages)), messages


def status_error(cls, code):
    return cls(f"HTTP {code}", response=httpx.Response(code, request=_REQUEST), body=None)


def test_classifies_fenced_reply(status):
    vision, messages = make_vision(
        status, text='```json\n{"itemName": "AA battery", "category": "hazardous", "confidence": 0.9}\n```'
    )
    result = vision.classify(IMAGE)
    assert result.category is WasteCategory.HAZARDOUS
    assert result.item_name == "AA battery"
    assert "wet_organic" in messages.kwargs["system"]
    image_block = messages.kwargs["messages"][0]["content"][0]
    assert image_block["source"]["media_type"] == "image/jpeg"


def test_unparseable_reply_degrades(status):
    vision, _ = make_vision(status, text="It's a thing.")
    result = vision.classify(IMAGE)
    assert result.category is WasteCategory.UNKNOWN
    assert result.confidence == 0.3


def test_empty_reply_is_upstream_error(status):
    vision, _ = make_vision(status, text="")
    with pytest.raises(UpstreamUnavailable):
        vision.classify(IMAGE)


def test_rate_limit(status):
    vision, _ = make_vision(status, error=status_error(anthropic.RateLimitError, 429))
    with pytest.raises(UpstreamRateLimited):
        vision.classify(IMAGE)


def test_payment_required(status):
    vision, _ = make_vision(status, error=status_error(anthropic.APIStatusError, 402))
    with pytest.raises(UpstreamQuotaExhausted):
        vision.classify(IMAGE)


def test_server_error(status):
    vision, _ = make_vision(status, error=status_error(anthropic.InternalServerError, 500))
    with pytest.raises(UpstreamUnavailable):
        vision.classify(IMAGE)


def test_connection_error(status):
    vision, _ = make_vision(status, error=anthropic.APIConnectionError(request=_REQUEST))
    with pytest.raises(UpstreamUnavailable):
        vision.classify(IMAGE)


def test_not_ready_without_key(status):
    vision = ClaudeVision(status, api_key=None)
    assert not vision._ready
    with pytest.raises(UpstreamUnavailable):
        vision.classify(IMAGE)
