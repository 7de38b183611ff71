"""Tests for Settings.from_env and adapter selection."""

import os
from unittest.mock import patch

import pytest

from ecoscan.adapters.store.memory_store import MemoryStore
from ecoscan.adapters.store.sqlite_store import SqliteStore
from ecoscan.adapters.vision.gateway_vision import GATEWAY_MODEL, GatewayVision
from ecoscan.adapters.vision.mock_vision import MockVision
from ecoscan.services.api import build_store, build_vision
from ecoscan.services.config import Settings

pytestmark = pytest.mark.unit


class TestFromEnv:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            s = Settings.from_env(load_env_file=False)
        assert s.vision_adapter == "gateway"
        assert s.model == GATEWAY_MODEL
        assert s.store_adapter == "memory"
        assert s.history_limit == 50
        assert s.cors_origins == ["*"]

    def test_overrides(self):
        env = {
            "VISION_ADAPTER": "MOCK",
            "STORE_ADAPTER": "sqlite",
            "SQLITE_PATH": "/tmp/x.db",
            "HISTORY_LIMIT": "20",
            "AI_TIMEOUT_S": "5.5",
            "CORS_ORIGINS": "http://localhost:5173, https://eco.example",
        }
        with patch.dict(os.environ, env, clear=True):
            s = Settings.from_env(load_env_file=False)
        assert s.vision_adapter == "mock"
        assert s.store_adapter == "sqlite"
        assert s.sqlite_path == "/tmp/x.db"
        assert s.history_limit == 20
        assert s.ai_timeout_s == 5.5
        assert s.cors_origins == ["http://localhost:5173", "https://eco.example"]

    def test_lovable_key_fallback(self):
        with patch.dict(os.environ, {"LOVABLE_API_KEY": "lv-key"}, clear=True):
            assert Settings.from_env(load_env_file=False).gateway_api_key == "lv-key"

    def test_bad_numbers_fall_back(self):
        with patch.dict(os.environ, {"HISTORY_LIMIT": "lots"}, clear=True):
            assert Settings.from_env(load_env_file=False).history_limit == 50


class TestBuilders:
    def test_gateway_with_key(self, status):
        vision = build_vision(Settings(gateway_api_key="k"), status)
        assert isinstance(vision, GatewayVision)

    def test_gateway_without_key_falls_back_to_mock(self, status):
        vision = build_vision(Settings(gateway_api_key=None), status)
        assert isinstance(vision, MockVision)
        assert any("falling back to mock" in line for line in status.logs)

    def test_claude_without_key_falls_back_to_mock(self, status):
        assert isinstance(build_vision(Settings(vision_adapter="claude"), status), MockVision)

    def test_sqlite_store(self, status, tmp_path):
        store = build_store(Settings(store_adapter="sqlite", sqlite_path=str(tmp_path / "e.db")), status)
        assert isinstance(store, SqliteStore)

    def test_supabase_without_credentials_falls_back(self, status):
        assert isinstance(build_store(Settings(store_adapter="supabase"), status), MemoryStore)
