"""
FastAPI application for the Google API resource.

Run with:
    uvicorn gapi_resource.api:create_app --factory
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI

from .api_library import DiscoveryApiLibrary
from .config import Settings, get_settings
from .credential_store import (
    CredentialStore,
    CredentialStoreManager,
    MemoryCredentialStore,
    SupabaseCredentialStore,
)
from .router import OAuthClientFactory, RequestRouter
from .routes import router as gapi_router
from .supabase_client import get_db


def build_credential_store(settings: Settings) -> CredentialStore:
    """Create the credential store selected by settings."""
    if settings.credential_backend == "memory":
        return MemoryCredentialStore()
    return SupabaseCredentialStore(get_db(settings), settings.credential_table)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[CredentialStore] = None,
    api_library: Optional[DiscoveryApiLibrary] = None,
    oauth_client_factory: Optional[OAuthClientFactory] = None,
) -> FastAPI:
    """
    Create the FastAPI app with its RequestRouter.

    Collaborators default to the ones selected by settings; tests pass their own.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    request_router_kwargs = {}
    if oauth_client_factory is not None:
        request_router_kwargs["oauth_client_factory"] = oauth_client_factory

    app = FastAPI(title="Google API Resource", version="0.1.0")
    app.state.settings = settings
    app.state.request_router = RequestRouter(
        settings,
        CredentialStoreManager(store if store is not None else build_credential_store(settings)),
        api_library or DiscoveryApiLibrary(),
        **request_router_kwargs,
    )

    app.include_router(gapi_router)
    return app
