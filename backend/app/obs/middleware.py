"""HTTP instrumentation: request ids, access logs and request metrics."""

from __future__ import annotations

import logging
import time
from uuid import uuid4

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from app.obs import logging as obs_logging
from app.obs import metrics

_LOG = logging.getLogger("parish_feed.http")

REQUEST_ID_HEADER = "X-Request-Id"


def _route_template(request: Request) -> str:
	# the matched route is only known once routing ran; unmatched paths share one label
	route = request.scope.get("route")
	return getattr(route, "path", None) or "unmatched"


class ObservabilityMiddleware(BaseHTTPMiddleware):
	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
		request.state.request_id = request_id
		token = obs_logging.bind_context(
			request_id=request_id,
			route=request.url.path,
			client_ip=request.client.host if request.client else None,
		)
		start = time.perf_counter()
		status_code = 500
		try:
			response = await call_next(request)
			status_code = response.status_code
		finally:
			elapsed = time.perf_counter() - start
			metrics.observe_request(_route_template(request), request.method, status_code, elapsed)
			level = logging.WARNING if status_code >= 500 else logging.INFO
			_LOG.log(
				level,
				"http.request",
				extra={"method": request.method, "status": status_code, "latency_ms": round(elapsed * 1000, 3)},
			)
			obs_logging.reset_context(token)
		response.headers.setdefault(REQUEST_ID_HEADER, request_id)
		return response


def install(app: FastAPI) -> None:
	app.add_middleware(ObservabilityMiddleware)
