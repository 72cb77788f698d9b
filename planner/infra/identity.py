from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from planner.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: str
    provider: str

    @property
    def is_anonymous(self) -> bool:
        return self.provider == "anonymous"


def _identity_file(settings: Settings) -> Path:
    return Path.cwd() / settings.identity_path


def sign_in_anonymously(path: Path) -> Identity:
    if path.exists():
        user_id = path.read_text(encoding="utf-8").strip()
        if user_id:
            return Identity(user_id=user_id, provider="anonymous")
    user_id = f"anon-{uuid4().hex}"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(user_id, encoding="utf-8")
    logger.info("created anonymous identity %s", user_id)
    return Identity(user_id=user_id, provider="anonymous")


def sign_in(settings: Settings) -> Identity:
    if settings.user_id:
        return Identity(user_id=settings.user_id, provider="configured")
    if settings.auth_token:
        digest = hashlib.sha256(settings.auth_token.encode("utf-8")).hexdigest()[:32]
        return Identity(user_id=f"token-{digest}", provider="token")
    return sign_in_anonymously(_identity_file(settings))
