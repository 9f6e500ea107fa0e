"""Authentication helpers for FastAPI endpoints and socket handshakes.

- Bearer JWTs (HS256) are verified with settings.secret_key.
- Revoked tokens are looked up in the Redis blacklist.
- Dev-only X-User-* headers are accepted for local tools.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.infra import jwt as jwt_helper
from app.infra import token_blacklist
from app.obs import logging as obs_logging
from app.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	role: str = "probation"
	name: Optional[str] = None
	token: Optional[str] = None
	token_ttl_seconds: int = 0

	def has_role(self, role: str) -> bool:
		return self.role == role

	@property
	def is_admin(self) -> bool:
		return self.role == "admin"


_bearer_scheme = HTTPBearer(auto_error=False)


def _unauthenticated(detail: str = "invalid_token") -> HTTPException:
	return HTTPException(
		status_code=status.HTTP_401_UNAUTHORIZED,
		detail=detail,
		headers={"WWW-Authenticate": "Bearer"},
	)


async def authenticate_token(token: str) -> AuthenticatedUser:
	"""Resolve a raw bearer token to the caller identity or raise 401."""
	token = (token or "").strip()
	if not token:
		raise _unauthenticated("missing_token")
	try:
		payload = jwt_helper.decode_access(token)
	except Exception:
		# Normalise all decode failures to invalid_token for the API surface
		raise _unauthenticated()
	if await token_blacklist.is_token_blacklisted(token):
		raise _unauthenticated("token_revoked")
	name = payload.get("name")
	return AuthenticatedUser(
		id=str(payload["sub"]).strip(),
		role=str(payload["role"]),
		name=str(name) if name is not None else None,
		token=token,
		token_ttl_seconds=jwt_helper.remaining_seconds(payload),
	)


def _bound(user: Optional[AuthenticatedUser]) -> Optional[AuthenticatedUser]:
	if user is not None:
		obs_logging.bind_context(user_id=user.id, role=user.role)
	return user


def _dev_user(x_user_id: Optional[str], x_user_role: Optional[str]) -> Optional[AuthenticatedUser]:
	if not settings.is_dev() or not x_user_id:
		return None
	role = (x_user_role or "active").strip()
	if role not in jwt_helper.ROLES:
		raise _unauthenticated()
	return AuthenticatedUser(id=x_user_id, role=role)


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_role: Optional[str] = Header(default=None, alias="X-User-Role"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user.

	In development we allow simple headers. In all other environments, headers are
	ignored and a valid Bearer JWT is required.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		return _bound(await authenticate_token(credentials.credentials))
	user = _bound(_dev_user(x_user_id, x_user_role))
	if user is not None:
		return user
	raise _unauthenticated("missing_token")


async def get_optional_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_role: Optional[str] = Header(default=None, alias="X-User-Role"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[AuthenticatedUser]:
	"""Like get_current_user, but anonymous callers resolve to None.

	A presented but invalid token is still rejected.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		return _bound(await authenticate_token(credentials.credentials))
	return _bound(_dev_user(x_user_id, x_user_role))
