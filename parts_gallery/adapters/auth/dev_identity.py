"""
Dev identity provider.

Issues and verifies HS256 access tokens shaped like Supabase Auth tokens
(sub, email, user_metadata.full_name, aud="authenticated"). Magic links are
logged instead of emailed, and the most recent ones are kept in memory for
test assertions.

Given the project's JWT secret, get_user() also verifies real Supabase
tokens offline.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, cast
from uuid import NAMESPACE_URL, uuid5

from jose import JWTError, jwt

from parts_gallery.core.ports.identity import IdentityProviderError, InvalidTokenError
from parts_gallery.domain.entities import Principal

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
AUDIENCE = "authenticated"
ACCESS_TOKEN_EXPIRE_MINUTES = 60
MAX_SENT_LINKS = 100


@dataclass
class SentMagicLink:
    email: str
    link: str
    access_token: str
    sent_at: datetime


@dataclass
class DevIdentityProvider:
    secret: str
    site_url: str = "http://localhost:3000"
    ttl_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES
    sent_links: deque[SentMagicLink] = field(
        default_factory=lambda: deque(maxlen=MAX_SENT_LINKS)
    )
    display_names: dict[str, str] = field(default_factory=dict)

    def principal_for_email(self, email: str) -> Principal:
        """Stable identity per email address."""
        normalized = email.strip().lower()
        return Principal(
            id=str(uuid5(NAMESPACE_URL, f"mailto:{normalized}")),
            display_name=self.display_names.get(normalized, normalized.split("@")[0]),
            email=normalized,
        )

    def create_access_token(
        self,
        principal: Principal,
        now_utc: datetime | None = None,
    ) -> str:
        current_time = now_utc if now_utc is not None else datetime.now(UTC)
        claims: dict[str, Any] = {
            "sub": principal.id,
            "email": principal.email,
            "aud": AUDIENCE,
            "role": "authenticated",
            "user_metadata": {"full_name": principal.display_name},
            "iat": current_time,
            "exp": current_time + timedelta(minutes=self.ttl_minutes),
        }
        return cast(str, jwt.encode(claims, self.secret, algorithm=ALGORITHM))

    # --- IdentityProviderPort ---

    def send_magic_link(self, email: str, redirect_to: str | None = None) -> None:
        principal = self.principal_for_email(email)
        token = self.create_access_token(principal)
        link = f"{redirect_to or self.site_url}#access_token={token}&token_type=bearer"

        self.sent_links.append(
            SentMagicLink(
                email=principal.email or email,
                link=link,
                access_token=token,
                sent_at=datetime.now(UTC),
            )
        )
        logger.info("[DEV MAGIC LINK] To: %s Link: %s", principal.email, link)

    def authorize_url(
        self,
        provider: str,
        redirect_to: str | None = None,
        query_params: dict[str, str] | None = None,
    ) -> str:
        raise IdentityProviderError(
            f"OAuth provider '{provider}' is not available with the dev identity provider"
        )

    def get_user(self, access_token: str) -> Principal:
        try:
            payload = jwt.decode(
                access_token, self.secret, algorithms=[ALGORITHM], audience=AUDIENCE
            )
        except JWTError as e:
            raise InvalidTokenError(f"Invalid access token: {e}") from e

        sub = payload.get("sub")
        if not sub or not isinstance(sub, str):
            raise InvalidTokenError("Invalid token payload")

        metadata = payload.get("user_metadata") or {}
        return Principal(
            id=sub,
            display_name=metadata.get("full_name") or "",
            email=payload.get("email"),
        )

    def sign_out(self, access_token: str) -> None:
        # Stateless tokens; nothing to revoke server-side.
        logger.debug("Dev sign out")
