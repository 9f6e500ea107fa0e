"""Session routes; tokens are issued elsewhere and only revoked here."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.feeds.schemas import dto
from app.infra import token_blacklist
from app.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/auth", tags=["auth"])

_LOG = logging.getLogger(__name__)


@router.post("/logout", response_model=dto.MessageResponse)
async def logout_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dto.MessageResponse:
	if auth_user.token:
		await token_blacklist.add_to_blacklist(auth_user.token, ttl_seconds=auth_user.token_ttl_seconds)
		_LOG.info("auth.logout.revoked", extra={"ttl_seconds": auth_user.token_ttl_seconds})
	return dto.MessageResponse(message="Logged out successfully")
