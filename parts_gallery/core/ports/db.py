"""Errors raised by relational store adapters (SQLite, PostgREST)."""


class RepoError(Exception):
    """The relational store rejected the request or could not be reached."""


class RepoForbiddenError(RepoError):
    """Row-level security rejected the request."""
