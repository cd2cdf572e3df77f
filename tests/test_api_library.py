"""Tests for the Google API client library adapter."""

from urllib.parse import parse_qs, urlparse

import httplib2
import pytest

from gapi_resource.api_library import DiscoveryApiLibrary, build_params, coerce_booleans, parameter_types
from gapi_resource.exceptions import InvalidApiParameters
from gapi_resource.resolver import resolve_api_method


class FakeRequest:
    def __init__(self, kwargs):
        self.kwargs = kwargs
        self.http = None

    def execute(self, http=None):
        self.http = http
        return {"kwargs": self.kwargs, "http": http}


class FakeAuth:
    def authorized_http(self):
        return "authorized-http"


class RecordingHttp:
    """Transport that answers every request with an empty JSON object."""

    def __init__(self):
        self.uris = []

    def request(self, uri, method="GET", body=None, headers=None, **kwargs):
        self.uris.append(uri)
        return httplib2.Response({"status": "200"}), b"{}"


class RecordingAuth:
    def __init__(self):
        self.http = RecordingHttp()

    def authorized_http(self):
        return self.http


def fake_method(**kwargs):
    return FakeRequest(kwargs)


class TestBuildParams:
    """Test assembling method parameters."""

    def test_auth_always_attached(self):
        """Should attach auth even without query parameters."""
        auth = object()
        assert build_params(None, auth) == {"auth": auth}

    def test_body_forwarded_as_resource(self):
        """Should forward a non-empty body as resource."""
        auth = object()
        params = build_params({"fileId": "1"}, auth, {"title": "x"})
        assert params == {"fileId": "1", "auth": auth, "resource": {"title": "x"}}

    def test_empty_body_omitted(self):
        """Should not forward an empty body."""
        assert "resource" not in build_params({"q": "1"}, object(), {})

    def test_query_not_mutated(self):
        """Should copy the query instead of modifying it."""
        query = {"q": "1"}
        build_params(query, object(), {"a": 1})
        assert query == {"q": "1"}


class TestInvoke:
    """Test executing a resolved method."""

    def test_maps_auth_and_resource(self):
        """Should execute with the authorized transport and send resource as body."""
        library = DiscoveryApiLibrary()
        result = library.invoke(
            fake_method,
            {"fileId": "1", "auth": FakeAuth(), "resource": {"title": "x"}},
        )
        assert result["kwargs"] == {"fileId": "1", "body": {"title": "x"}}
        assert result["http"] == "authorized-http"

    def test_without_auth(self):
        """Should execute with the service's own transport when there is no auth."""
        result = DiscoveryApiLibrary().invoke(fake_method, {"q": "1"})
        assert result == {"kwargs": {"q": "1"}, "http": None}

    def test_bad_parameters(self):
        """Should raise InvalidApiParameters when the method rejects arguments."""

        def strict_method(fileId):
            return FakeRequest({"fileId": fileId})

        with pytest.raises(InvalidApiParameters):
            DiscoveryApiLibrary().invoke(strict_method, {"auth": FakeAuth(), "bogus": "1"})


class TestDiscoveryServices:
    """Tests against the discovery documents bundled with google-api-python-client."""

    def test_builds_and_caches_service(self):
        """Should build a service once per api and version."""
        library = DiscoveryApiLibrary()
        drive = library.service("drive", "v3")
        assert drive is not None
        assert library.service("drive", "v3") is drive

    def test_unknown_api(self):
        """Should return None for an API that does not exist."""
        library = DiscoveryApiLibrary()
        assert library.service("notanapi", "v1") is None
        assert library.service(None, None) is None

    def test_resolve_on_discovery_service(self):
        """Should resolve collection methods on a real discovery service."""
        drive = DiscoveryApiLibrary().service("drive", "v3")
        assert resolve_api_method(drive, "files/list") is not None
        assert resolve_api_method(drive, "about/get") is not None
        assert resolve_api_method(drive, "files/nope") is None
        assert resolve_api_method(drive, "nope/list") is None

    def test_unknown_parameter_on_discovery_method(self):
        """Should reject parameters the discovery document does not define."""
        library = DiscoveryApiLibrary()
        drive = library.service("drive", "v3")
        method = resolve_api_method(drive, "files/get")
        with pytest.raises(InvalidApiParameters):
            library.invoke(method, {"auth": FakeAuth(), "fileId": "1", "bogus": "1"})

    def test_path_ending_on_collection(self):
        """Should not resolve a path that ends on a collection."""
        drive = DiscoveryApiLibrary().service("drive", "v3")
        assert resolve_api_method(drive, "about") is None
        assert resolve_api_method(drive, "files") is None

    def test_service_helpers_not_resolved(self):
        """Should only resolve collections and methods from the discovery document."""
        drive = DiscoveryApiLibrary().service("drive", "v3")
        assert resolve_api_method(drive, "close") is None
        assert resolve_api_method(drive, "new_batch_http_request") is None
        assert resolve_api_method(drive, "files/list/execute") is None

    def test_boolean_query_values(self):
        """Should send "false" query values for boolean parameters as false."""
        library = DiscoveryApiLibrary()
        method = resolve_api_method(library.service("drive", "v3"), "files/list")
        auth = RecordingAuth()

        library.invoke(
            method,
            {
                "auth": auth,
                "supportsAllDrives": "false",
                "includeItemsFromAllDrives": "true",
                "q": "false",
            },
        )

        sent = parse_qs(urlparse(auth.http.uris[0]).query)
        assert sent["supportsAllDrives"] == ["false"]
        assert sent["includeItemsFromAllDrives"] == ["true"]
        assert sent["q"] == ["false"]

    def test_parameter_types(self):
        """Should read parameter types from the discovery document."""
        drive = DiscoveryApiLibrary().service("drive", "v3")
        types = parameter_types(resolve_api_method(drive, "files/list"))
        assert types["supportsAllDrives"] == "boolean"
        assert types["pageSize"] == "integer"
        assert types["prettyPrint"] == "boolean"
        assert parameter_types(fake_method) == {}

    def test_non_numeric_integer_parameter(self):
        """Should raise InvalidApiParameters for a value that is not an integer."""
        library = DiscoveryApiLibrary()
        method = resolve_api_method(library.service("drive", "v3"), "files/list")
        auth = RecordingAuth()
        with pytest.raises(InvalidApiParameters):
            library.invoke(method, {"auth": auth, "pageSize": "ten"})
        assert auth.http.uris == []


class TestCoerceBooleans:
    """Test querystring boolean conversion."""

    def test_only_boolean_parameters(self):
        """Should convert boolean parameters and leave the rest alone."""
        params = {"a": "False", "b": "false", "c": ["true", "false"], "d": "yes"}
        types = {"a": "boolean", "b": "string", "c": "boolean", "d": "boolean"}
        assert coerce_booleans(params, types) == {"a": False, "b": "false", "c": [True, False], "d": "yes"}
