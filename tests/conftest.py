"""Shared fixtures for the Google API resource tests."""

import json
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from gapi_resource.api import create_app
from gapi_resource.config import Settings
from gapi_resource.credential_store import MemoryCredentialStore
from gapi_resource.exceptions import TokenExchangeError
from gapi_resource.models import TokenPair
from gapi_resource.oauth import OAuth2Client

JWT_SECRET = "test-jwt-secret"

RESOURCES = {
    "gdrive": {
        "clientID": "test-client-id.apps.googleusercontent.com",
        "clientSecret": "test-client-secret",
        "authScopes": "https://www.googleapis.com/auth/drive\nhttps://www.googleapis.com/auth/drive.file",
        "allowAnonymous": True,
    },
    "private": {
        "clientID": "private-client-id",
        "clientSecret": "private-client-secret",
        "authScopes": "https://www.googleapis.com/auth/drive.readonly",
        "allowAnonymous": False,
    },
}


class FakeOAuth2Client(OAuth2Client):
    """OAuth2Client whose code exchange never leaves the process."""

    def get_token(self, code, scope=None):
        if code == "bad-code":
            raise TokenExchangeError("invalid_grant: Bad Request")
        return TokenPair(access_token=f"access-{code}", refresh_token=f"refresh-{code}")


class FakeApiLibrary:
    """
    Stands in for DiscoveryApiLibrary with a tiny drive v2 surface:
    drive.about().get and drive.files().insert.
    """

    def __init__(self):
        self.calls = []
        self.behaviour = None

    def _about_get(self, params):
        auth = params["auth"]
        return {
            "kind": "drive#about",
            "access_token": auth.access_token,
            "refresh_token": auth.refresh_token,
        }

    def _files_insert(self, params):
        return {"kind": "drive#file", "title": params["resource"]["title"]}

    def service(self, api, version):
        if (api, version) != ("drive", "v2"):
            return None
        return SimpleNamespace(
            about=SimpleNamespace(get=self._about_get),
            files=lambda: SimpleNamespace(insert=self._files_insert),
        )

    def invoke(self, method, params):
        self.calls.append(params)
        if self.behaviour is not None:
            return self.behaviour(params)
        return method(params)


def make_settings(**overrides):
    values = {
        "gapi_resources_json": json.dumps(RESOURCES),
        "credential_backend": "memory",
        "supabase_jwt_secret": JWT_SECRET,
        "_env_file": None,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(name="make_settings")
def make_settings_fixture():
    return make_settings


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def store():
    return MemoryCredentialStore()


@pytest.fixture
def api_library():
    return FakeApiLibrary()


@pytest.fixture
def oauth_client_factory():
    return FakeOAuth2Client.from_credential


@pytest.fixture
def app(settings, store, api_library, oauth_client_factory):
    return create_app(
        settings=settings,
        store=store,
        api_library=api_library,
        oauth_client_factory=oauth_client_factory,
    )


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def authorized_client(client):
    """Client for which the gdrive instance has completed the OAuth callback."""
    response = client.get("/gdrive/auth/v1/oauth2callback", params={"code": "abc"})
    assert response.status_code == 200
    return client


@pytest.fixture
def session_headers():
    """Authorization header carrying a valid Supabase session token."""
    token = jwt.encode(
        {"sub": "user-1", "email": "user@example.com", "aud": "authenticated"},
        JWT_SECRET,
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}
