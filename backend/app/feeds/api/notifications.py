"""Notification inbox routes for the authenticated member."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from app.feeds.api._errors import to_http_error
from app.feeds.domain import container
from app.feeds.domain.notifications import NotificationService
from app.feeds.schemas import dto
from app.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[dto.NotificationResponse])
async def list_notifications_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: NotificationService = Depends(container.get_notification_service),
) -> List[dto.NotificationResponse]:
	try:
		return await service.list_for_user(auth_user.id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/unread-count", response_model=dto.UnreadCountResponse)
async def unread_count_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: NotificationService = Depends(container.get_notification_service),
) -> dto.UnreadCountResponse:
	try:
		return await service.unread_count(auth_user.id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/mark-all-read", response_model=dto.MessageResponse)
async def mark_all_read_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: NotificationService = Depends(container.get_notification_service),
) -> dto.MessageResponse:
	try:
		return await service.mark_all_read(auth_user.id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.delete("/clear", response_model=dto.MessageResponse)
async def clear_notifications_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: NotificationService = Depends(container.get_notification_service),
) -> dto.MessageResponse:
	try:
		return await service.clear(auth_user.id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/{notification_id}/read", response_model=dto.NotificationResponse)
async def mark_read_endpoint(
	notification_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: NotificationService = Depends(container.get_notification_service),
) -> dto.NotificationResponse:
	try:
		return await service.mark_read(auth_user.id, notification_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.delete("/{notification_id}", response_model=dto.MessageResponse)
async def delete_notification_endpoint(
	notification_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: NotificationService = Depends(container.get_notification_service),
) -> dto.MessageResponse:
	try:
		return await service.delete(auth_user.id, notification_id)
	except Exception as exc:
		raise to_http_error(exc) from exc
