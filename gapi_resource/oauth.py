"""
OAuth2 client for one resource instance.

Wraps google_auth_oauthlib's Flow for the authorization code exchange and
google-auth Credentials for authorizing API calls. A fresh client is built
from the instance's credential record on every request.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httplib2
import requests
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from google_auth_oauthlib.flow import Flow
from oauthlib.oauth2.rfc6749.errors import OAuth2Error

from .exceptions import TokenExchangeError
from .models import InstanceCredential, TokenPair

logger = logging.getLogger(__name__)


class OAuth2Client:
    """
    OAuth2 client bound to one client id/secret and redirect URI.

    Usage:
        client = OAuth2Client.from_credential(credential)

        # Pending authorization
        url = client.generate_auth_url(scope=credential.scope)
        tokens = client.get_token(code, scope=credential.scope)

        # Authorized
        client.set_credentials(tokens)
        request.execute(http=client.authorized_http())
    """

    AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
    TOKEN_URI = "https://oauth2.googleapis.com/token"

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self._credentials: Optional[Credentials] = None

    @classmethod
    def from_credential(cls, credential: InstanceCredential) -> "OAuth2Client":
        """Build a client from an instance's credential record."""
        return cls(
            credential.client_id,
            credential.client_secret,
            credential.redirect_uri,
        )

    # ----------------------------------------------------------------------- #
    # Authorization Code Flow
    # ----------------------------------------------------------------------- #

    @property
    def client_config(self) -> Dict[str, Any]:
        return {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": self.AUTH_URI,
                "token_uri": self.TOKEN_URI,
                "redirect_uris": [self.redirect_uri],
            }
        }

    def _flow(self, scopes: Optional[List[str]]) -> Flow:
        # No PKCE: the consent URL and the code exchange are separate requests
        return Flow.from_client_config(
            self.client_config,
            scopes=scopes,
            redirect_uri=self.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def generate_auth_url(self, scope: str, access_type: str = "offline") -> str:
        """
        Get the consent URL for the instance's application-owned account.

        Args:
            scope: Space-joined OAuth scopes
            access_type: "offline" to be issued a refresh token

        Returns:
            The authorization URL to redirect to
        """
        flow = self._flow(scope.split())
        auth_url, _ = flow.authorization_url(access_type=access_type)
        return auth_url

    def get_token(self, code: str, scope: Optional[str] = None) -> TokenPair:
        """
        Exchange an authorization code for an access/refresh token pair.

        The exchange is not bound to the requested scopes: with granular
        consent Google may grant fewer, which is logged rather than failed.

        Args:
            code: The code Google passed to the redirect URI
            scope: Space-joined OAuth scopes the code was requested with

        Returns:
            TokenPair with the issued tokens

        Raises:
            TokenExchangeError: If Google rejects the code, cannot be reached
                or issues no access token
        """
        flow = self._flow(None)
        try:
            flow.fetch_token(code=code)
        except (OAuth2Error, requests.RequestException) as e:
            logger.error(f"Authorization code exchange failed: {e}")
            raise TokenExchangeError(f"Failed to exchange authorization code: {e}") from e

        try:
            creds = flow.credentials
        except (ValueError, KeyError) as e:
            raise TokenExchangeError("Token endpoint returned no access token") from e
        if not creds.token:
            raise TokenExchangeError("Token endpoint returned no access token")

        granted = flow.oauth2session.token.get("scope")
        if isinstance(granted, str):
            granted = granted.split()
        if scope and granted and set(granted) != set(scope.split()):
            logger.warning(f"Granted scopes differ from requested: {' '.join(granted)}")

        self._credentials = creds
        return TokenPair(
            access_token=creds.token,
            refresh_token=creds.refresh_token,
            token_type="Bearer",
            expiry=creds.expiry.isoformat() if creds.expiry else None,
        )

    # ----------------------------------------------------------------------- #
    # Credentials
    # ----------------------------------------------------------------------- #

    def set_credentials(self, tokens: TokenPair, scope: Optional[str] = None) -> Credentials:
        """Attach an access/refresh token pair to this client."""
        self._credentials = Credentials(
            token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            token_uri=self.TOKEN_URI,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=scope.split() if scope else None,
        )
        return self._credentials

    @property
    def credentials(self) -> Optional[Credentials]:
        return self._credentials

    @property
    def access_token(self) -> Optional[str]:
        """Current access token; changes when google-auth refreshes it."""
        return self._credentials.token if self._credentials else None

    @property
    def refresh_token(self) -> Optional[str]:
        return self._credentials.refresh_token if self._credentials else None

    def authorized_http(self) -> AuthorizedHttp:
        """
        Get an HTTP transport that signs requests with the attached credentials.

        Raises:
            ValueError: If no credentials are attached
        """
        if self._credentials is None:
            raise ValueError("No credentials set. Call set_credentials() first.")
        return AuthorizedHttp(self._credentials, http=httplib2.Http())
