from dataclasses import dataclass, field

from parts_gallery.domain.entities import FolderKeyMode, SessionContext


@dataclass
class MagicLinkInput:
    email: str
    redirect_to: str | None = None


@dataclass
class OAuthInput:
    provider: str = "google"
    redirect_to: str | None = None
    query_params: dict[str, str] = field(
        default_factory=lambda: {"access_type": "offline", "prompt": "consent"}
    )


@dataclass
class ResolveSessionInput:
    access_token: str | None
    folder_key_mode: FolderKeyMode = "id"


@dataclass
class SignOutInput:
    session: SessionContext


@dataclass
class AuthOutput:
    session: SessionContext | None = None
    url: str | None = None
    success: bool = False
    error: str | None = None
    # "unauthenticated" | "validation_failed" | "provider_error"
    error_kind: str | None = None
