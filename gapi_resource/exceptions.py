"""Exceptions raised while routing requests to Google APIs."""
from __future__ import annotations

from typing import Optional


class GapiResourceError(Exception):
    """Base exception for the Google API resource."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class RouteNotFound(GapiResourceError):
    """Raised when a request does not map to anything this resource handles."""

    status_code = 404


class CredentialStoreError(GapiResourceError):
    """Raised when the credential store fails a lookup, insert or update."""

    pass


class TokenExchangeError(GapiResourceError):
    """Raised when an authorization code cannot be exchanged for tokens."""

    status_code = 400


class InvalidApiParameters(GapiResourceError):
    """Raised when request parameters do not fit the resolved API method."""

    status_code = 400


class AnonymousAccessDenied(GapiResourceError):
    """Raised when a request has no session user and anonymous access is off."""

    def __init__(self):
        super().__init__("You must be logged in", status_code=500)


class AuthorizationRequired(GapiResourceError):
    """Raised when an API call targets an instance that has no tokens yet."""

    status_code = 401

    def __init__(self, instance: str):
        self.instance = instance
        self.init_path = f"/{instance}/auth/v1/init"
        super().__init__(
            f"Instance '{instance}' is not authorized. Visit {self.init_path} to authorize."
        )
