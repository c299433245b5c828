import os
from collections.abc import Iterator
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from parts_gallery.adapters.auth.dev_identity import DevIdentityProvider
from parts_gallery.adapters.local_storage import LocalBucketStorage
from parts_gallery.adapters.sqlite.repos import (
    SQLiteCategoryRepo,
    SQLitePartRepo,
    SQLiteSavedItemRepo,
)
from parts_gallery.adapters.supabase.auth import SupabaseAuthClient
from parts_gallery.adapters.supabase.client import SupabaseConfig
from parts_gallery.adapters.supabase.storage import SupabaseStorage
from parts_gallery.adapters.supabase.tables import (
    SupabaseCategoryRepo,
    SupabasePartRepo,
    SupabaseSavedItemRepo,
)
from parts_gallery.components.assets import GalleryConfig, GallerySnapshots
from parts_gallery.components.auth import (
    AuthStateHub,
    IdentityProviderPort,
    ResolveSessionInput,
    run_resolve_session,
)
from parts_gallery.core.ports.storage import StoragePort
from parts_gallery.domain.entities import SessionContext
from parts_gallery.rules.loader import gallery_config, load_rules
from parts_gallery.rules.models import Rules

ACCESS_TOKEN_COOKIE = "access_token"


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("GALLERY_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "gallery.db")
        self.storage_dir = self.data_dir / "storage"
        self.rules_path = Path(
            os.environ.get("GALLERY_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )
        self.backend = os.environ.get("GALLERY_BACKEND", "local")
        self.supabase_url = os.environ.get("GALLERY_SUPABASE_URL", "")
        self.supabase_anon_key = os.environ.get("GALLERY_SUPABASE_ANON_KEY", "")
        self.jwt_secret = os.environ.get("GALLERY_JWT_SECRET", "dev-only-secret-change-me")
        self.public_base_url = os.environ.get("GALLERY_PUBLIC_BASE_URL", "http://localhost:8000")
        self.cors_origins = [
            origin.strip()
            for origin in os.environ.get(
                "GALLERY_CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
            ).split(",")
            if origin.strip()
        ]

    @property
    def uses_supabase(self) -> bool:
        return self.backend == "supabase"

    @property
    def supabase_config(self) -> SupabaseConfig:
        return SupabaseConfig(url=self.supabase_url, anon_key=self.supabase_anon_key)


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


def get_gallery_config(rules: Rules = Depends(get_rules)) -> GalleryConfig:
    return gallery_config(rules)


# --- Process-wide auth state ---
_auth_hub_instance: AuthStateHub | None = None
_snapshots_instance: GallerySnapshots | None = None


def get_auth_hub() -> AuthStateHub:
    """Get auth state hub singleton."""
    global _auth_hub_instance
    if _auth_hub_instance is None:
        _auth_hub_instance = AuthStateHub()
    return _auth_hub_instance


def get_snapshots() -> GallerySnapshots:
    """Get gallery snapshots singleton."""
    global _snapshots_instance
    if _snapshots_instance is None:
        _snapshots_instance = GallerySnapshots()
    return _snapshots_instance


def close_auth_state() -> None:
    """Tear down the hub and snapshots; the next request builds fresh ones."""
    global _auth_hub_instance, _snapshots_instance
    if _auth_hub_instance is not None:
        _auth_hub_instance.close()
    _auth_hub_instance = None
    _snapshots_instance = None


# --- Identity ---
@lru_cache
def get_identity_provider(settings: Settings = Depends(get_settings)) -> IdentityProviderPort:
    if settings.uses_supabase:
        return SupabaseAuthClient(settings.supabase_config)
    return DevIdentityProvider(secret=settings.jwt_secret)


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/session", auto_error=False)


def get_access_token(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
) -> str | None:
    # Header wins; the HttpOnly cookie is the browser fallback
    if token:
        return token
    cookie_token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if cookie_token and cookie_token.startswith("Bearer "):
        return cookie_token.split(" ", 1)[1]
    return None


def get_session_context(
    token: Annotated[str | None, Depends(get_access_token)],
    rules: Rules = Depends(get_rules),
    identity: IdentityProviderPort = Depends(get_identity_provider),
) -> SessionContext:
    result = run_resolve_session(
        ResolveSessionInput(access_token=token, folder_key_mode=rules.folders.key_mode),
        identity=identity,
    )
    if result.success and result.session is not None:
        return result.session

    if result.error_kind == "unauthenticated":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=result.error or "Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if result.error_kind == "validation_failed":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result.error)


# --- Storage ---
@lru_cache
def get_local_bucket(settings: Settings = Depends(get_settings)) -> LocalBucketStorage:
    """Anonymous client over the local bucket; bind with as_principal()."""
    rules = get_rules(settings)
    return LocalBucketStorage(
        settings.storage_dir,
        rules.storage.bucket,
        public_base_url=settings.public_base_url,
    )


def get_storage(
    session: SessionContext = Depends(get_session_context),
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> Iterator[StoragePort]:
    """Storage client acting as the caller, so the ownership policy sees their id."""
    if settings.uses_supabase:
        storage = SupabaseStorage(
            settings.supabase_config, rules.storage.bucket, session.access_token
        )
        try:
            yield storage
        finally:
            storage.close()
    else:
        yield get_local_bucket(settings).as_principal(session.principal.id)


# --- Repos ---
def _supabase_repo(cls: Any, settings: Settings, token: str | None) -> Iterator[Any]:
    repo = cls(settings.supabase_config, token)
    try:
        yield repo
    finally:
        repo.close()


def get_part_repo(
    token: Annotated[str | None, Depends(get_access_token)],
    settings: Settings = Depends(get_settings),
) -> Iterator[Any]:
    if settings.uses_supabase:
        yield from _supabase_repo(SupabasePartRepo, settings, token)
    else:
        yield SQLitePartRepo(settings.db_path)


def get_category_repo(
    token: Annotated[str | None, Depends(get_access_token)],
    settings: Settings = Depends(get_settings),
) -> Iterator[Any]:
    if settings.uses_supabase:
        yield from _supabase_repo(SupabaseCategoryRepo, settings, token)
    else:
        yield SQLiteCategoryRepo(settings.db_path)


def get_saved_item_repo(
    token: Annotated[str | None, Depends(get_access_token)],
    settings: Settings = Depends(get_settings),
) -> Iterator[Any]:
    if settings.uses_supabase:
        yield from _supabase_repo(SupabaseSavedItemRepo, settings, token)
    else:
        yield SQLiteSavedItemRepo(settings.db_path)
