from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel


# --------------------------------------------------------------------------- #
# Credential Record - one per resource instance, persisted
# --------------------------------------------------------------------------- #

class InstanceCredential(BaseModel):
    """
    Persisted OAuth2 client configuration and token pair for one instance.
    Seeded on the first request to the instance, tokens added by the callback.
    """
    instance: str
    host: str
    client_id: str
    client_secret: str
    scope: str  # Space-joined OAuth scopes
    redirect_uri: str

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def is_authorized(self) -> bool:
        return bool(self.access_token and self.refresh_token)

    def to_status(self) -> "CredentialStatus":
        return CredentialStatus(
            instance=self.instance,
            host=self.host,
            scope=self.scope,
            redirect_uri=self.redirect_uri,
            authorized=self.is_authorized,
        )


class CredentialStatus(BaseModel):
    """Public view of a credential record (no secrets or tokens)."""
    instance: str
    host: str
    scope: str
    redirect_uri: str
    authorized: bool


class TokenPair(BaseModel):
    """Tokens returned by the authorization code exchange."""
    access_token: str
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    expiry: Optional[str] = None


# --------------------------------------------------------------------------- #
# Request Descriptor - derived per request, never persisted
# --------------------------------------------------------------------------- #

class RequestDescriptor(BaseModel):
    """
    The interesting bits of an incoming request:
        url         - the full url /<instance>/<api>/<apiVersion>/<command><query>
        host        - <hostname>:<port>
        instance    - name of the resource instance being requested
        api         - the Google API being requested (ex: drive)
        api_version - the version of the Google API (ex: v2)
        command     - the method path to call on the API (ex: about/get)
        query       - querystring parameters, None when empty
        body        - request body, None when empty
    """
    url: str
    host: Optional[str] = None
    instance: Optional[str] = None
    api: Optional[str] = None
    api_version: Optional[str] = None
    command: str = ""
    query: Optional[Dict[str, Any]] = None
    body: Optional[Any] = None

    @property
    def api_method(self) -> str:
        """Path of the API client method to resolve (same as command)."""
        return self.command
