from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

def _resolve_project_root() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]


PROJECT_ROOT = _resolve_project_root()


def load_env() -> None:
    env_name = os.getenv("APP_ENV", "development")
    candidates = [Path.cwd(), PROJECT_ROOT]
    for base in candidates:
        env_path = base / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            break

    for base in candidates:
        env_specific = base / f".env.{env_name}"
        if env_specific.exists():
            load_dotenv(env_specific, override=True)
            break


@dataclass(frozen=True)
class Settings:
    database_url: str | None
    user_id: str | None = None
    auth_token: str | None = None
    identity_path: str = ".planner_identity"
    log_level: str = "INFO"
    log_dir: str = "logs"
    horizon_days: int = 30
    ai_provider: str = "mock"
    ai_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    openai_model: str = "gpt-4o-mini"
    ai_timeout: float = 30.0


def _optional(name: str) -> str | None:
    return os.getenv(name, "").strip() or None


def load_settings() -> Settings:
    return Settings(
        database_url=_optional("DATABASE_URL"),
        user_id=_optional("PLANNER_USER_ID"),
        auth_token=_optional("PLANNER_AUTH_TOKEN"),
        identity_path=os.getenv("PLANNER_IDENTITY_PATH", ".planner_identity"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_dir=os.getenv("LOG_DIR", "logs"),
        horizon_days=int(os.getenv("PLANNER_HORIZON_DAYS", "30")),
        ai_provider=os.getenv("AI_PROVIDER", "mock").strip().lower() or "mock",
        ai_api_key=_optional("AI_API_KEY"),
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        ai_timeout=float(os.getenv("AI_TIMEOUT_SECONDS", "30")),
    )


load_env()

SETTINGS = load_settings()
