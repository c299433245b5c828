from typing import Protocol

from parts_gallery.domain.entities import Principal


class IdentityProviderPort(Protocol):
    """External identity provider (Supabase Auth, or the dev provider)."""

    def send_magic_link(self, email: str, redirect_to: str | None = None) -> None: ...

    def authorize_url(
        self,
        provider: str,
        redirect_to: str | None = None,
        query_params: dict[str, str] | None = None,
    ) -> str: ...

    def get_user(self, access_token: str) -> Principal:
        """Resolve the principal behind an access token. Raises InvalidTokenError."""
        ...

    def sign_out(self, access_token: str) -> None: ...
