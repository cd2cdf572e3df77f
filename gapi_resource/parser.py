"""
Request parsing.

Turns /<instance>/<api>/<apiVersion>/<command> plus query and body into a
RequestDescriptor. Segments are not validated; missing ones come out as None
and fail later in config lookup or method resolution.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .models import RequestDescriptor


_SEPARATORS = re.compile(r"[/.]")


def split_path(path: str) -> List[str]:
    """
    Split a request path into its segments.

    Both slash and dot delimiters are accepted, and the empty strings left by
    leading/trailing slashes are dropped.

    Args:
        path: A path such as /<instance>/<api>/<apiVersion>/<command>

    Returns:
        The non-empty path segments
    """
    return [chunk for chunk in _SEPARATORS.split(path or "") if chunk]


def parse_query(items: Iterable[Tuple[str, str]]) -> Dict[str, Any]:
    """
    Collect querystring pairs into a dict.

    A key given once maps to its value, a repeated key maps to the list of
    its values in order (ex: labelIds=INBOX&labelIds=UNREAD).
    """
    query: Dict[str, Any] = {}
    for key, value in items:
        if key not in query:
            query[key] = value
        elif isinstance(query[key], list):
            query[key].append(value)
        else:
            query[key] = [query[key], value]
    return query


def parse_request(
    url: str,
    path: str,
    host: Optional[str] = None,
    query: Optional[Mapping[str, Any]] = None,
    body: Any = None,
) -> RequestDescriptor:
    """
    Build a RequestDescriptor from the raw parts of a request.

    Args:
        url: The full request url, kept for reference
        path: The path component of the url
        host: The Host header (<hostname>:<port>)
        query: Parsed querystring parameters
        body: Parsed request body

    Returns:
        RequestDescriptor with empty query/body collapsed to None
    """
    chunks = split_path(path)

    instance = chunks.pop(0) if chunks else None
    api = chunks.pop(0) if chunks else None
    api_version = chunks.pop(0) if chunks else None

    return RequestDescriptor(
        url=url,
        host=host,
        instance=instance,
        api=api,
        api_version=api_version,
        command="/".join(chunks),
        query=dict(query) if query else None,
        body=body if body else None,
    )
