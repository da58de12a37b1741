import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from quillpress.adapters.clock import SystemClock
from quillpress.adapters.local_storage import LocalAssetStorage
from quillpress.adapters.sqlite.store import SQLiteStore
from quillpress.api.auth_utils import decode_access_token, identity_from_claims
from quillpress.components.admin import AdminPostService
from quillpress.components.content import ContentService
from quillpress.domain.entities import Identity
from quillpress.domain.policy import PolicyEngine
from quillpress.rules.loader import load_rules
from quillpress.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.data_dir = Path(os.environ.get("QUILL_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "quillpress.db")
        self.uploads_dir = Path(os.environ.get("QUILL_UPLOADS_DIR", str(self.data_dir / "uploads")))
        self.rules_path = Path(os.environ.get("QUILL_RULES_PATH", "rules.yaml"))
        self.db_timeout = float(os.environ.get("QUILL_DB_TIMEOUT", "5"))
        self.max_upload_bytes = int(os.environ.get("QUILL_MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
        self.cors_origins = [
            o.strip() for o in os.environ.get("QUILL_CORS_ORIGINS", "").split(",") if o.strip()
        ]


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


# --- Adapters ---
def get_store(settings: Settings = Depends(get_settings)) -> SQLiteStore:
    return SQLiteStore(settings.db_path, timeout=settings.db_timeout)


def get_asset_storage(settings: Settings = Depends(get_settings)) -> LocalAssetStorage:
    return LocalAssetStorage(settings.uploads_dir, max_bytes=settings.max_upload_bytes)


# Time adapter for deterministic time operations
_clock_instance: SystemClock | None = None


def get_clock() -> SystemClock:
    """Get clock singleton."""
    global _clock_instance
    if _clock_instance is None:
        _clock_instance = SystemClock()
    return _clock_instance


# --- Services ---
def get_policy(rules: Rules = Depends(get_rules)) -> PolicyEngine:
    return PolicyEngine(rules.rbac)


def get_content_service(
    store: SQLiteStore = Depends(get_store),
    policy: PolicyEngine = Depends(get_policy),
    rules: Rules = Depends(get_rules),
    clock: SystemClock = Depends(get_clock),
    assets: LocalAssetStorage = Depends(get_asset_storage),
) -> ContentService:
    return ContentService(store, policy, rules, clock, assets=assets)


def get_admin_service(
    content: ContentService = Depends(get_content_service),
) -> AdminPostService:
    return AdminPostService(content)


# --- Auth ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


def _identity_from_token(token: str) -> Identity:
    claims = decode_access_token(token)
    identity = identity_from_claims(claims) if claims else None
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity


def get_current_identity(
    token: Annotated[str | None, Depends(oauth2_scheme)],
) -> Identity:
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _identity_from_token(token)


def get_optional_identity(
    token: Annotated[str | None, Depends(oauth2_scheme)],
) -> Identity | None:
    """Anonymous callers get None; a token that is present must be valid."""
    if not token:
        return None
    return _identity_from_token(token)
