"""Probe endpoints.

Endpoints:
  GET /health         : every registered check, plus the configured group names
  GET /health/{group} : one group; 200 when UP, 503 otherwise, 404 if unknown
"""

from __future__ import annotations

import logging
import secrets
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from probegate.health.engine import HealthEngine
from probegate.health.errors import GroupNotFoundError
from probegate.health.groups import CallerContext

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Health-Token"

health_router = APIRouter()


def caller_context(request: Request) -> CallerContext:
    """Authorized iff the request carries the configured health token."""
    expected: str = request.app.state.health_token
    if not expected:
        return CallerContext(authorized=False)
    provided = request.headers.get(TOKEN_HEADER, "")
    return CallerContext(authorized=secrets.compare_digest(provided.encode(), expected.encode()))


def _engine(request: Request) -> HealthEngine:
    return request.app.state.health_engine


@health_router.get("/health")
async def root_health(
    request: Request, caller: CallerContext = Depends(caller_context),
) -> JSONResponse:
    engine = _engine(request)
    code, result = await engine.query_root(caller)
    body: dict[str, Any] = result.to_dict()
    groups = engine.group_names()
    if groups:
        body["groups"] = groups
    return JSONResponse(status_code=code, content=body)


@health_router.get("/health/{group}")
async def group_health(
    group: str, request: Request, caller: CallerContext = Depends(caller_context),
) -> JSONResponse:
    try:
        code, result = await _engine(request).query(group, caller)
    except GroupNotFoundError:
        raise HTTPException(status_code=404, detail=f"Health group not found: {group}") from None
    return JSONResponse(status_code=code, content=result.to_dict())
