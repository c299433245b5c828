"""
Auth component - sign-in flows, session resolution and auth state events.
"""

from .component import (
    run_oauth_url,
    run_resolve_session,
    run_send_magic_link,
    run_sign_in,
    run_sign_out,
    validate_email,
)
from .hub import AuthStateHub, Subscription
from .models import (
    AuthOutput,
    MagicLinkInput,
    OAuthInput,
    ResolveSessionInput,
    SignOutInput,
)
from .ports import IdentityProviderPort

__all__ = [
    # Entry points
    "run_oauth_url",
    "run_resolve_session",
    "run_send_magic_link",
    "run_sign_in",
    "run_sign_out",
    "validate_email",
    # State
    "AuthStateHub",
    "Subscription",
    # Models
    "AuthOutput",
    "MagicLinkInput",
    "OAuthInput",
    "ResolveSessionInput",
    "SignOutInput",
    # Ports
    "IdentityProviderPort",
]
