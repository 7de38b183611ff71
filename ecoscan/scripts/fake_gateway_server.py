"""
Fake AI gateway for testing GatewayVision without a paid model.

Simulates an OpenAI-compatible /v1/chat/completions endpoint on port 9100.
The reply depends on FAKE_GATEWAY_MODE:
  ok (default)  fenced JSON for a plastic bottle
  bare          unfenced JSON for a banana peel
  garbage       prose the parser cannot read (→ Unidentified Item)
  bogus         JSON with a category outside the taxonomy (→ unknown)
  429 / 402 / 500  that HTTP status with an error body

Usage:
    python ecoscan/scripts/fake_gateway_server.py
    VISION_ADAPTER=gateway AI_GATEWAY_URL=http://127.0.0.1:9100/v1/chat/completions \
        AI_GATEWAY_API_KEY=dev uvicorn ecoscan.services.api:app
"""

import json
import os
import time

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

app = FastAPI(title="fake-ai-gateway")

_REPLIES = {
    "ok": "```json\n" + json.dumps({
        "itemName": "Plastic bottle",
        "category": "dry_recyclable",
        "confidence": 0.8,
        "disposalTip": "Rinse, crush and put in the blue bin.",
    }, indent=2) + "\n```",
    "bare": json.dumps({
        "itemName": "Banana peel",
        "category": "wet_organic",
        "confidence": 0.95,
        "disposalTip": "Compost it.",
    }),
    "garbage": "I think this is probably some kind of bottle?",
    "bogus": json.dumps({"itemName": "Mystery", "category": "space_junk", "confidence": 1.7}),
}


def _completion(content: str) -> dict:
    return {
        "id": f"fake-{int(time.time() * 1000)}",
        "object": "chat.completion",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
    }


@app.post("/v1/chat/completions")
async def chat_completions(request: Request):
    body = await request.json()
    mode = os.getenv("FAKE_GATEWAY_MODE", "ok")
    n_images = sum(
        1 for m in body.get("messages", []) if isinstance(m.get("content"), list)
        for part in m["content"] if part.get("type") == "image_url"
    )
    print(f"[gateway] model={body.get('model')} images={n_images} mode={mode}")

    if mode.isdigit():
        return JSONResponse({"error": {"message": f"simulated {mode}"}}, status_code=int(mode))
    time.sleep(0.3)  # model "thinking"
    return _completion(_REPLIES.get(mode, _REPLIES["ok"]))


@app.get("/health")
async def health():
    return {"ok": True, "mode": os.getenv("FAKE_GATEWAY_MODE", "ok")}


if __name__ == "__main__":
    print("Fake AI gateway starting on http://localhost:9100")
    uvicorn.run(app, host="0.0.0.0", port=9100)
