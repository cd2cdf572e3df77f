"""
Dynamic method resolution against a Google API client.

A discovery service exposes collections as methods (service.files()) and
operations as methods on the returned resource (files().list), so a command
path like "files/list" is walked attribute by attribute, calling collection
factories along the way.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Optional

from googleapiclient.discovery import Resource, fix_method_name

from .parser import split_path

logger = logging.getLogger(__name__)


def _child(node: Any, name: str) -> Any:
    if isinstance(node, Mapping):
        return node.get(name)
    # Private attributes of the client are never part of a route
    if name.startswith("_"):
        return None
    return getattr(node, name, None)


def _discovery_child(resource: Resource, name: str, is_last: bool) -> Any:
    """
    Look up a name described by a discovery resource.

    Intermediate segments must be collections and the last segment must be a
    method, so helpers such as close() or new_batch_http_request() and paths
    ending on a collection never resolve.
    """
    description = resource._resourceDesc
    described = description.get("methods" if is_last else "resources", {})
    if name not in described:
        return None
    return getattr(resource, fix_method_name(name), None)


def resolve_api_method(client: Any, path: str) -> Optional[Callable[..., Any]]:
    """
    Resolve a slash or dot delimited path to a method of an API client.

    Args:
        client: A client representation of a Google API (ex: drive v2 service)
        path: The path to the method (ex: "about/get" or "about.get")

    Returns:
        The callable at the end of the path, or None if any segment is missing
        or the path ends on a collection
    """
    chunks = split_path(path)
    if client is None or not chunks:
        return None

    node = client
    for index, chunk in enumerate(chunks):
        is_last = index == len(chunks) - 1
        if isinstance(node, Resource):
            node = _discovery_child(node, chunk, is_last)
        else:
            node = _child(node, chunk)
        if node is None:
            logger.debug(f"Segment '{chunk}' of '{path}' did not resolve")
            return None

        if not is_last and callable(node):
            # Collection factory, ex: service.about()
            try:
                node = node()
            except TypeError:
                logger.debug(f"Segment '{chunk}' of '{path}' is a method, not a collection")
                return None

    return node if callable(node) else None
