"""
Request routing for the Google API resource.

Each request runs: config lookup -> access check -> credential lookup/seed ->
either the OAuth2 bootstrap flow (auth/v1/init, auth/v1/oauth2callback) or a
call to a method resolved on the Google API client library.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse
from google.auth.exceptions import RefreshError

from .api_library import DiscoveryApiLibrary, build_params
from .auth import User
from .config import ResourceConfig, Settings
from .credential_store import CredentialStoreManager
from .exceptions import (
    AnonymousAccessDenied,
    AuthorizationRequired,
    CredentialStoreError,
    RouteNotFound,
    TokenExchangeError,
)
from .models import CredentialStatus, InstanceCredential, RequestDescriptor, TokenPair
from .oauth import OAuth2Client
from .resolver import resolve_api_method

logger = logging.getLogger(__name__)


AUTH_API = "auth"
INIT_COMMAND = "init"
CALLBACK_COMMAND = "oauth2callback"


OAuthClientFactory = Callable[[InstanceCredential], OAuth2Client]


class RequestRouter:
    """
    Routes parsed requests for every configured resource instance.

    Usage:
        router = RequestRouter(settings, CredentialStoreManager(store), DiscoveryApiLibrary())
        result = await router.handle(descriptor, user)

    handle() returns a RedirectResponse for auth/v1/init, a CredentialStatus
    for auth/v1/oauth2callback and the decoded API response otherwise.
    """

    def __init__(
        self,
        settings: Settings,
        store_manager: CredentialStoreManager,
        api_library: DiscoveryApiLibrary,
        oauth_client_factory: OAuthClientFactory = OAuth2Client.from_credential,
    ):
        self._settings = settings
        self._store_manager = store_manager
        self._api_library = api_library
        self._oauth_client_factory = oauth_client_factory

    # ----------------------------------------------------------------------- #
    # Entry Point
    # ----------------------------------------------------------------------- #

    async def handle(self, descriptor: RequestDescriptor, user: Optional[User]) -> Any:
        """
        Handle one request.

        Args:
            descriptor: The parsed request
            user: The session user, or None for anonymous requests

        Raises:
            RouteNotFound: If the request is not for a configured instance,
                an auth command other than init/oauth2callback, or an API
                method that does not resolve
            AnonymousAccessDenied: If the instance requires a session user
            CredentialStoreError: If the credential store fails
            TokenExchangeError: If the authorization code exchange fails
            AuthorizationRequired: If an API call targets a pending instance
                or its refresh token is no longer accepted
        """
        config = self._settings.get_resource(descriptor.instance)
        if config is None:
            raise RouteNotFound(f"No resource instance named '{descriptor.instance}'")

        self.check_access(descriptor, config, user)

        credential = await run_in_threadpool(
            self._store_manager.ensure_credential,
            descriptor.instance,
            self._host(descriptor),
            config,
        )

        if descriptor.api == AUTH_API:
            if descriptor.command == INIT_COMMAND:
                return self.begin_authorization(credential)
            if descriptor.command == CALLBACK_COMMAND:
                return await self.complete_authorization(descriptor, credential)
            raise RouteNotFound(f"Unknown auth command '{descriptor.command}'")

        return await self.call_api(descriptor, credential)

    def check_access(
        self,
        descriptor: RequestDescriptor,
        config: ResourceConfig,
        user: Optional[User],
    ) -> None:
        """Reject (or, under the "warn" policy, log) anonymous requests."""
        if config.allow_anonymous or user is not None:
            return

        if self._settings.anonymous_policy == "reject":
            raise AnonymousAccessDenied()

        logger.warning(f"Anonymous request to {descriptor.instance} allowed by warn policy: {descriptor.url}")

    def _host(self, descriptor: RequestDescriptor) -> str:
        return descriptor.host or f"{self._settings.api_host}:{self._settings.api_port}"

    # ----------------------------------------------------------------------- #
    # OAuth Flow
    # ----------------------------------------------------------------------- #

    def begin_authorization(self, credential: InstanceCredential) -> RedirectResponse:
        """
        Begin the application-owned account authorization by redirecting to
        Google's consent page.
        """
        oauth_client = self._oauth_client_factory(credential)
        auth_url = oauth_client.generate_auth_url(
            scope=credential.scope,
            access_type="offline",
        )
        logger.info(f"Redirecting instance {credential.instance} to OAuth consent")
        return RedirectResponse(url=auth_url, status_code=302)

    async def complete_authorization(
        self,
        descriptor: RequestDescriptor,
        credential: InstanceCredential,
    ) -> CredentialStatus:
        """
        Exchange the authorization code from the callback and store the tokens.

        Nothing is stored when the exchange fails.
        """
        query = descriptor.query or {}
        if query.get("error"):
            raise TokenExchangeError(f"Authorization was not granted: {query['error']}")

        code = query.get("code")
        if not code:
            raise TokenExchangeError("Missing authorization code")

        oauth_client = self._oauth_client_factory(credential)
        tokens = await run_in_threadpool(oauth_client.get_token, code, credential.scope)

        updated = await run_in_threadpool(
            self._store_manager.record_tokens,
            credential.instance,
            tokens,
        )
        return updated.to_status()

    # ----------------------------------------------------------------------- #
    # API Calls
    # ----------------------------------------------------------------------- #

    async def call_api(
        self,
        descriptor: RequestDescriptor,
        credential: InstanceCredential,
    ) -> Any:
        """
        Resolve <api>.<apiVersion>.<command> and call it with the instance's
        credentials. The method is called exactly once.
        """
        if not credential.is_authorized:
            raise AuthorizationRequired(credential.instance)

        oauth_client = self._oauth_client_factory(credential)
        oauth_client.set_credentials(
            TokenPair(
                access_token=credential.access_token,
                refresh_token=credential.refresh_token,
            ),
            scope=credential.scope,
        )

        # ex: build("drive", "v2")
        service = await run_in_threadpool(
            self._api_library.service,
            descriptor.api,
            descriptor.api_version,
        )

        # ex: drive.about().get
        api_method = resolve_api_method(service, descriptor.api_method) if service is not None else None
        if api_method is None:
            logger.warning(
                f"No API method for {descriptor.api} {descriptor.api_version} '{descriptor.api_method}'"
            )
            raise RouteNotFound(
                f"No API method '{descriptor.api_method}' on {descriptor.api} {descriptor.api_version}"
            )

        params = build_params(descriptor.query, oauth_client, descriptor.body)
        try:
            result = await run_in_threadpool(self._api_library.invoke, api_method, params)
        except RefreshError as e:
            # Refresh token revoked or expired
            logger.warning(f"Token refresh failed for {credential.instance}: {e}")
            raise AuthorizationRequired(credential.instance) from e

        await self._store_refreshed_token(credential, oauth_client)
        return result

    async def _store_refreshed_token(
        self,
        credential: InstanceCredential,
        oauth_client: OAuth2Client,
    ) -> None:
        access_token = oauth_client.access_token
        if not access_token or access_token == credential.access_token:
            return

        tokens = TokenPair(
            access_token=access_token,
            refresh_token=oauth_client.refresh_token or credential.refresh_token,
        )
        try:
            await run_in_threadpool(self._store_manager.record_tokens, credential.instance, tokens)
        except CredentialStoreError as e:
            # The call itself succeeded
            logger.error(f"Failed to store refreshed token for {credential.instance}: {e}")
