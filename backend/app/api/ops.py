"""Health probes and the Prometheus scrape endpoint."""

from __future__ import annotations

import secrets
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from app.obs import health
from app.settings import settings

router = APIRouter(tags=["ops"])


def _presented_token(x_admin_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
	if x_admin_token:
		return x_admin_token
	scheme, _, credentials = (authorization or "").partition(" ")
	if scheme.lower() != "bearer":
		return None
	return credentials.strip() or None


async def require_metrics_access(
	x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
	authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
	"""Open when metrics are public; otherwise the ops admin token must match."""
	if settings.obs_metrics_public:
		return
	expected = settings.obs_admin_token
	if not expected:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="admin_token_not_configured")
	presented = _presented_token(x_admin_token, authorization)
	if presented is None or not secrets.compare_digest(presented, expected):
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")


@router.get("/health/live")
async def health_live() -> Dict[str, Any]:
	return await health.liveness()


@router.get("/health/ready")
async def health_ready() -> JSONResponse:
	status_code, payload = await health.readiness()
	return JSONResponse(content=payload, status_code=status_code)


@router.get("/api/health")
async def api_health() -> Dict[str, Any]:
	return health.summary()


@router.get("/metrics", dependencies=[Depends(require_metrics_access)])
async def prometheus_metrics() -> Response:
	return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
