from __future__ import annotations

from pydantic import BaseModel
import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y", "on")


class Settings(BaseModel):
    APP_NAME: str = "outlier-server"

    # Store
    STORE_BACKEND: str = "redis"  # "redis" | "memory"
    REDIS_URL: str = "redis://localhost:6379/0"
    SESSION_TTL_SEC: int = 6 * 3600
    MAX_UPDATE_RETRIES: int = 5

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Dev
    LOG_LEVEL: str = "INFO"

    # WebSocket origin policy (comma-separated)
    WS_ALLOWED_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173,null"
    # Dev helper: allow any private LAN IP on port 5173
    WS_ALLOW_LAN_ORIGINS: bool = True

    # Category generation endpoint (empty -> generation disabled)
    CATEGORY_API_URL: str = ""
    CATEGORY_API_TIMEOUT_SEC: float = 30.0

    # Game rules
    REQUIRE_READY: bool = False
    LEAVE_ON_DISCONNECT: bool = False

    # Local client
    CLIENT_STATE_PATH: str = ".outlier/client_state.json"
    PENDING_LEAVE_MAX_AGE_SEC: int = 3600


def get_settings() -> Settings:
    return Settings(
        APP_NAME=os.getenv("APP_NAME", "outlier-server"),
        STORE_BACKEND=os.getenv("STORE_BACKEND", "redis").lower(),
        REDIS_URL=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        SESSION_TTL_SEC=int(os.getenv("SESSION_TTL_SEC", str(6 * 3600))),
        MAX_UPDATE_RETRIES=int(os.getenv("MAX_UPDATE_RETRIES", "5")),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=int(os.getenv("PORT", "8000")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),

        WS_ALLOWED_ORIGINS=os.getenv(
            "WS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,null",
        ),
        WS_ALLOW_LAN_ORIGINS=_env_bool("WS_ALLOW_LAN_ORIGINS", "true"),

        CATEGORY_API_URL=os.getenv("CATEGORY_API_URL", ""),
        CATEGORY_API_TIMEOUT_SEC=float(os.getenv("CATEGORY_API_TIMEOUT_SEC", "30")),

        REQUIRE_READY=_env_bool("REQUIRE_READY", "false"),
        LEAVE_ON_DISCONNECT=_env_bool("LEAVE_ON_DISCONNECT", "false"),

        CLIENT_STATE_PATH=os.getenv("CLIENT_STATE_PATH", ".outlier/client_state.json"),
        PENDING_LEAVE_MAX_AGE_SEC=int(os.getenv("PENDING_LEAVE_MAX_AGE_SEC", "3600")),
    )
