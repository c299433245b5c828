"""Errors raised by identity provider adapters."""


class IdentityProviderError(Exception):
    """Identity provider unreachable or returned an unexpected response."""


class InvalidTokenError(IdentityProviderError):
    """Access token is missing, expired, or not recognised by the provider."""
