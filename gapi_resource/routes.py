"""
Google API resource routes.

A single catch-all route hands every request to the RequestRouter:
- /<instance>/auth/v1/init            OAuth consent redirect
- /<instance>/auth/v1/oauth2callback  OAuth code exchange
- /<instance>/<api>/<version>/<command...>  Google API call
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from googleapiclient.errors import HttpError

from .auth import User, get_optional_user
from .exceptions import GapiResourceError
from .parser import parse_query, parse_request
from .router import RequestRouter

logger = logging.getLogger(__name__)


router = APIRouter(tags=["gapi"])


def get_request_router(request: Request) -> RequestRouter:
    """Get the RequestRouter configured on the app."""
    return request.app.state.request_router


async def read_body(request: Request) -> Any:
    """Decode a JSON request body, None when there is no body."""
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise HTTPException(status_code=400, detail=f"Request body is not valid JSON: {e}")


@router.api_route("/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def handle_resource(
    path: str,
    request: Request,
    user: Optional[User] = Depends(get_optional_user),
    gapi_router: RequestRouter = Depends(get_request_router),
):
    """Route a request for a resource instance."""
    descriptor = parse_request(
        url=str(request.url),
        path=path,
        host=request.headers.get("host"),
        query=parse_query(request.query_params.multi_items()),
        body=await read_body(request),
    )

    try:
        return await gapi_router.handle(descriptor, user)
    except GapiResourceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except HttpError as e:
        logger.warning(f"Google API error for {descriptor.url}: {e}")
        raise HTTPException(status_code=e.resp.status, detail=e.reason or str(e))
