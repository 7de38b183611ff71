import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from ecoscan.adapters.vision.claude_vision import CLAUDE_MODEL
from ecoscan.adapters.vision.gateway_vision import GATEWAY_MODEL, GATEWAY_URL
from ecoscan.adapters.store.supabase_store import SCORING_RPC

ENV_FILE = "ecoscan/.env"


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


@dataclass
class Settings:
    # vision: gateway | claude | mock
    vision_adapter: str = "gateway"
    gateway_url: str = GATEWAY_URL
    gateway_api_key: str | None = None
    model: str = GATEWAY_MODEL
    ai_timeout_s: float = 30.0
    anthropic_api_key: str | None = None
    claude_model: str = CLAUDE_MODEL

    # store: memory | sqlite | supabase
    store_adapter: str = "memory"
    sqlite_path: str = "ecoscan.db"
    supabase_url: str | None = None
    supabase_key: str | None = None
    supabase_scoring_rpc: str = SCORING_RPC

    history_limit: int = 50
    leaderboard_limit: int = 50
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        if load_env_file:
            load_dotenv(dotenv_path=ENV_FILE, override=False)
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            vision_adapter=os.getenv("VISION_ADAPTER", "gateway").lower(),
            gateway_url=os.getenv("AI_GATEWAY_URL", GATEWAY_URL),
            gateway_api_key=os.getenv("AI_GATEWAY_API_KEY") or os.getenv("LOVABLE_API_KEY"),
            model=os.getenv("AI_MODEL", GATEWAY_MODEL),
            ai_timeout_s=_float("AI_TIMEOUT_S", 30.0),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            claude_model=os.getenv("CLAUDE_MODEL", CLAUDE_MODEL),
            store_adapter=os.getenv("STORE_ADAPTER", "memory").lower(),
            sqlite_path=os.getenv("SQLITE_PATH", "ecoscan.db"),
            supabase_url=os.getenv("SUPABASE_URL"),
            supabase_key=os.getenv("SUPABASE_KEY"),
            supabase_scoring_rpc=os.getenv("SUPABASE_SCORING_RPC", SCORING_RPC),
            history_limit=_int("HISTORY_LIMIT", 50),
            leaderboard_limit=_int("LEADERBOARD_LIMIT", 50),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )
