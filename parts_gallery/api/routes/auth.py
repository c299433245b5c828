from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from parts_gallery.api.deps import (
    ACCESS_TOKEN_COOKIE,
    get_auth_hub,
    get_identity_provider,
    get_rules,
    get_session_context,
)
from parts_gallery.api.schemas import MagicLinkRequest, MeResponse, OAuthUrlResponse, SessionRequest
from parts_gallery.components.auth import (
    AuthStateHub,
    IdentityProviderPort,
    MagicLinkInput,
    OAuthInput,
    ResolveSessionInput,
    SignOutInput,
    run_oauth_url,
    run_send_magic_link,
    run_sign_in,
    run_sign_out,
)
from parts_gallery.domain.entities import SessionContext
from parts_gallery.rules.models import Rules

router = APIRouter()

SESSION_COOKIE_MAX_AGE = 60 * 60


def _me(session: SessionContext) -> MeResponse:
    return MeResponse(
        id=session.principal.id,
        email=session.principal.email,
        display_name=session.principal.display_name,
        folder_key=session.folder_key,
    )


@router.post("/magic-link")
def send_magic_link(
    request: MagicLinkRequest,
    identity: IdentityProviderPort = Depends(get_identity_provider),
) -> dict[str, str]:
    """Email a one-time sign-in link."""
    result = run_send_magic_link(
        MagicLinkInput(email=request.email, redirect_to=request.redirect_to),
        identity=identity,
    )
    if not result.success:
        status_code = 400 if result.error_kind == "validation_failed" else 502
        raise HTTPException(status_code=status_code, detail=result.error)
    return {"status": "sent", "message": "Check your email for the login link!"}


@router.get("/oauth/{provider}", response_model=OAuthUrlResponse)
def oauth_url(
    provider: str,
    redirect_to: Annotated[str | None, Query()] = None,
    identity: IdentityProviderPort = Depends(get_identity_provider),
) -> OAuthUrlResponse:
    """Authorize URL the browser is sent to for an OAuth sign-in."""
    result = run_oauth_url(OAuthInput(provider=provider, redirect_to=redirect_to), identity=identity)
    if not result.success or result.url is None:
        raise HTTPException(status_code=502, detail=result.error)
    return OAuthUrlResponse(provider=provider, url=result.url)


@router.post("/session", response_model=MeResponse)
def establish_session(
    request: SessionRequest,
    response: Response,
    identity: IdentityProviderPort = Depends(get_identity_provider),
    rules: Rules = Depends(get_rules),
    hub: AuthStateHub = Depends(get_auth_hub),
) -> MeResponse:
    """Exchange the token from a sign-in redirect for a session cookie."""
    result = run_sign_in(
        ResolveSessionInput(
            access_token=request.access_token,
            folder_key_mode=rules.folders.key_mode,
        ),
        identity=identity,
        hub=hub,
    )
    if not result.success or result.session is None:
        status_code = {
            "unauthenticated": status.HTTP_401_UNAUTHORIZED,
            "validation_failed": status.HTTP_400_BAD_REQUEST,
        }.get(result.error_kind or "", status.HTTP_503_SERVICE_UNAVAILABLE)
        raise HTTPException(status_code=status_code, detail=result.error)

    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=f"Bearer {request.access_token}",
        httponly=True,
        max_age=SESSION_COOKIE_MAX_AGE,
        samesite="lax",
        secure=False,  # Set to True for HTTPS prod
    )
    return _me(result.session)


@router.get("/me", response_model=MeResponse)
def read_me(session: SessionContext = Depends(get_session_context)) -> MeResponse:
    """Current principal and the folder their uploads go to."""
    return _me(session)


@router.post("/logout")
def logout(
    response: Response,
    session: SessionContext = Depends(get_session_context),
    identity: IdentityProviderPort = Depends(get_identity_provider),
    hub: AuthStateHub = Depends(get_auth_hub),
) -> dict[str, str]:
    """Sign out with the provider and clear the cookie."""
    result = run_sign_out(SignOutInput(session=session), identity=identity, hub=hub)
    response.delete_cookie(key=ACCESS_TOKEN_COOKIE)
    if not result.success:
        raise HTTPException(status_code=502, detail=result.error)
    return {"status": "success"}
