"""
Google API client library adapter.

Discovery services are built once per (api, version) without credentials and
cached; each call is executed with the calling instance's authorized HTTP
transport, so one service object serves every instance.
"""
from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Callable, Dict, Optional, Tuple

import httplib2
from googleapiclient.discovery import Resource, build, fix_method_name, key2param
from googleapiclient.errors import UnknownApiNameOrVersion

from .exceptions import InvalidApiParameters

logger = logging.getLogger(__name__)


_BOOLEANS = {"true": True, "false": False}


def build_params(
    query: Optional[Dict[str, Any]],
    auth: Any,
    body: Any = None,
) -> Dict[str, Any]:
    """
    Assemble the parameters an API method is called with.

    The querystring parameters are copied, the OAuth2 client is attached as
    "auth" and a non-empty body is attached as "resource".
    """
    params = dict(query or {})
    params["auth"] = auth
    if body:
        params["resource"] = body
    return params


def parameter_types(method: Callable[..., Any]) -> Dict[str, str]:
    """
    Get the discovery parameter types of a resolved method.

    Returns an empty mapping for callables that are not methods of a
    discovery service.
    """
    resource = getattr(method, "__self__", None)
    if not isinstance(resource, Resource):
        return {}

    parameters = dict(resource._rootDesc.get("parameters", {}))
    for name, method_desc in resource._resourceDesc.get("methods", {}).items():
        if getattr(resource, fix_method_name(name), None) == method:
            parameters.update(method_desc.get("parameters", {}))
            break
    return {key2param(key): schema.get("type") for key, schema in parameters.items()}


def coerce_booleans(params: Dict[str, Any], types: Dict[str, str]) -> Dict[str, Any]:
    """
    Turn querystring "true"/"false" into bools for boolean parameters.

    googleapiclient casts booleans with bool(value), which makes the
    string "false" true.
    """
    coerced = {}
    for key, value in params.items():
        if types.get(key) == "boolean":
            if isinstance(value, list):
                value = [_BOOLEANS.get(v.lower(), v) if isinstance(v, str) else v for v in value]
            elif isinstance(value, str):
                value = _BOOLEANS.get(value.lower(), value)
        coerced[key] = value
    return coerced


class DiscoveryApiLibrary:
    """
    Registry of Google API discovery services.

    Usage:
        library = DiscoveryApiLibrary()
        drive = library.service("drive", "v3")
        result = library.invoke(drive.files().list, {"auth": oauth_client, "pageSize": "10"})
    """

    def __init__(self, static_discovery: bool = True):
        """
        Args:
            static_discovery: Use the discovery documents bundled with
                google-api-python-client instead of fetching them
        """
        self._static_discovery = static_discovery
        self._services: Dict[Tuple[str, str], Any] = {}
        self._lock = Lock()

    def service(self, api: Optional[str], version: Optional[str]) -> Optional[Any]:
        """
        Get the discovery service for an API, or None if it does not exist.

        Args:
            api: Google API name (ex: "drive")
            version: API version (ex: "v3")
        """
        if not api or not version:
            return None

        key = (api, version)
        with self._lock:
            if key in self._services:
                return self._services[key]

            try:
                service = build(
                    api,
                    version,
                    http=httplib2.Http(),
                    cache_discovery=False,
                    static_discovery=self._static_discovery,
                )
            except UnknownApiNameOrVersion:
                logger.warning(f"Unknown Google API {api} {version}")
                return None

            self._services[key] = service
            logger.info(f"Built discovery service for {api} {version}")
            return service

    def invoke(self, method: Callable[..., Any], params: Dict[str, Any]) -> Any:
        """
        Call an API method and execute the resulting request.

        Args:
            method: A method resolved on a discovery service
            params: Method parameters plus "auth" (OAuth2Client) and an
                optional "resource" (request body)

        Returns:
            The decoded API response

        Raises:
            InvalidApiParameters: If the parameters do not fit the method
            googleapiclient.errors.HttpError: If Google returns an error
        """
        params = dict(params)
        auth = params.pop("auth", None)
        resource = params.pop("resource", None)
        if resource is not None:
            params["body"] = resource
        params = coerce_booleans(params, parameter_types(method))

        try:
            request = method(**params)
        except (TypeError, ValueError) as e:
            # ex: unknown parameter, missing fileId, pageSize=ten
            raise InvalidApiParameters(str(e)) from e

        if auth is None:
            return request.execute()
        return request.execute(http=auth.authorized_http())
