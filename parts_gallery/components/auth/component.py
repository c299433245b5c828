"""
Auth component - sign-in flows and session resolution.

Identity is owned by the external provider; this component only validates
input, delegates, and turns an access token into an explicit
SessionContext carrying the principal's folder key.
"""

from __future__ import annotations

import logging
import re

from parts_gallery.core.ports.identity import IdentityProviderError, InvalidTokenError
from parts_gallery.domain.entities import SessionContext
from parts_gallery.domain.sanitize import InvalidFolderKeyError, resolve_folder_key

from .hub import AuthStateHub
from .models import AuthOutput, MagicLinkInput, OAuthInput, ResolveSessionInput, SignOutInput
from .ports import IdentityProviderPort

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_email(email: str) -> str | None:
    """Return an error message, or None when the address is acceptable."""
    if not email.strip():
        return "Email is required"
    if not EMAIL_RE.match(email.strip()):
        return "Please enter a valid email address"
    return None


def run_send_magic_link(inp: MagicLinkInput, *, identity: IdentityProviderPort) -> AuthOutput:
    error = validate_email(inp.email)
    if error:
        return AuthOutput(success=False, error=error, error_kind="validation_failed")

    try:
        identity.send_magic_link(inp.email.strip(), inp.redirect_to)
    except IdentityProviderError as e:
        logger.warning("Error sending magic link: %s", e)
        return AuthOutput(
            success=False,
            error=str(e) or "Error sending magic link",
            error_kind="provider_error",
        )

    return AuthOutput(success=True)


def run_oauth_url(inp: OAuthInput, *, identity: IdentityProviderPort) -> AuthOutput:
    try:
        url = identity.authorize_url(inp.provider, inp.redirect_to, inp.query_params)
    except IdentityProviderError as e:
        logger.warning("Error signing in with %s: %s", inp.provider, e)
        return AuthOutput(success=False, error=str(e), error_kind="provider_error")

    return AuthOutput(url=url, success=True)


def run_resolve_session(
    inp: ResolveSessionInput,
    *,
    identity: IdentityProviderPort,
) -> AuthOutput:
    if not inp.access_token:
        return AuthOutput(success=False, error="Not authenticated", error_kind="unauthenticated")

    try:
        principal = identity.get_user(inp.access_token)
    except InvalidTokenError:
        return AuthOutput(success=False, error="Invalid token", error_kind="unauthenticated")
    except IdentityProviderError as e:
        logger.warning("Session lookup failed: %s", e)
        return AuthOutput(success=False, error=str(e), error_kind="provider_error")

    try:
        folder_key = resolve_folder_key(principal, inp.folder_key_mode)
    except InvalidFolderKeyError as e:
        return AuthOutput(success=False, error=str(e), error_kind="validation_failed")

    session = SessionContext(
        principal=principal,
        access_token=inp.access_token,
        folder_key=folder_key,
    )
    return AuthOutput(session=session, success=True)


def run_sign_out(
    inp: SignOutInput,
    *,
    identity: IdentityProviderPort,
    hub: AuthStateHub | None = None,
) -> AuthOutput:
    try:
        identity.sign_out(inp.session.access_token)
    except IdentityProviderError as e:
        logger.warning("Sign out failed: %s", e)
        return AuthOutput(success=False, error=str(e), error_kind="provider_error")

    if hub is not None:
        hub.publish("SIGNED_OUT", inp.session)
    return AuthOutput(success=True)


def run_sign_in(
    inp: ResolveSessionInput,
    *,
    identity: IdentityProviderPort,
    hub: AuthStateHub | None = None,
) -> AuthOutput:
    """Resolve the token handed back by a sign-in redirect and announce it."""
    output = run_resolve_session(inp, identity=identity)
    if output.success and output.session is not None and hub is not None:
        hub.publish("SIGNED_IN", output.session)
    return output
