"""Feed routes: posting, reading, likes, comments, edits and pins."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from pydantic import TypeAdapter

from app.feeds.api._errors import to_http_error
from app.feeds.domain import container, models
from app.feeds.domain.exceptions import InvalidArgumentError
from app.feeds.domain.services import FeedService
from app.feeds.schemas import dto
from app.infra.auth import AuthenticatedUser, get_current_user, get_optional_user

router = APIRouter(prefix="/feeds", tags=["feeds"])

_create_adapter: TypeAdapter = TypeAdapter(dto.CreateFeedRequest)


async def _read_image(image: Optional[UploadFile], max_bytes: int) -> Optional[dto.ImageUpload]:
	if image is None or not image.filename:
		return None
	if image.size is not None and image.size > max_bytes:
		raise InvalidArgumentError("image_too_large")
	# one byte past the limit is enough for storage to reject it
	data = await image.read(max_bytes + 1)
	return dto.ImageUpload(
		filename=image.filename,
		content_type=image.content_type or "application/octet-stream",
		data=data,
	)


def _base_url(request: Request) -> str:
	return str(request.base_url).rstrip("/")


@router.post("", response_model=dto.FeedView, status_code=201)
async def create_feed_endpoint(
	request: Request,
	text: Optional[str] = Form(default=None),
	type: str = Form(default="original"),
	original_feed_id: Optional[str] = Form(default=None, alias="originalFeedId"),
	image: Optional[UploadFile] = File(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: FeedService = Depends(container.get_feed_service),
) -> dto.FeedView:
	try:
		if type == models.FeedKind.RESHARE.value and not (original_feed_id or "").strip():
			raise InvalidArgumentError("original_feed_required")
		payload = _create_adapter.validate_python(
			{
				"type": type,
				"text": text,
				"original_feed_id": (original_feed_id or "").strip() or None,
				"image": await _read_image(image, service.images.max_bytes),
			}
		)
		return await service.create_feed(auth_user, payload, base_url=_base_url(request))
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("", response_model=List[dto.FeedView])
async def list_feeds_endpoint(
	page: int = Query(default=1, ge=1),
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
	service: FeedService = Depends(container.get_feed_service),
) -> List[dto.FeedView]:
	try:
		return await service.list_page(models.Viewer.from_user(auth_user), page)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/me", response_model=List[dto.FeedView])
async def my_feeds_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: FeedService = Depends(container.get_feed_service),
) -> List[dto.FeedView]:
	try:
		return await service.list_mine(auth_user)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/user/{user_id}", response_model=List[dto.FeedView])
async def user_feeds_endpoint(
	user_id: str,
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
	service: FeedService = Depends(container.get_feed_service),
) -> List[dto.FeedView]:
	try:
		return await service.list_by_author(models.Viewer.from_user(auth_user), user_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/{feed_id}", response_model=dto.FeedView)
async def get_feed_endpoint(
	feed_id: str,
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
	service: FeedService = Depends(container.get_feed_service),
) -> dto.FeedView:
	try:
		return await service.get_feed(models.Viewer.from_user(auth_user), feed_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{feed_id}/like", response_model=dto.LikeResponse)
async def toggle_like_endpoint(
	feed_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: FeedService = Depends(container.get_feed_service),
) -> dto.LikeResponse:
	try:
		return await service.toggle_like(auth_user, feed_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.post("/{feed_id}/comment", response_model=dto.CommentView, status_code=201)
async def add_comment_endpoint(
	feed_id: str,
	payload: dto.CommentCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: FeedService = Depends(container.get_feed_service),
) -> dto.CommentView:
	try:
		return await service.add_comment(auth_user, feed_id, payload)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.put("/{feed_id}", response_model=dto.FeedView)
async def edit_feed_endpoint(
	feed_id: str,
	request: Request,
	text: Optional[str] = Form(default=None),
	remove_image: bool = Form(default=False, alias="removeImage"),
	image: Optional[UploadFile] = File(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: FeedService = Depends(container.get_feed_service),
) -> dto.FeedView:
	try:
		upload = await _read_image(image, service.images.max_bytes)
		payload = dto.FeedUpdateRequest(text=text, image=upload, remove_image=remove_image)
		return await service.edit_feed(auth_user, feed_id, payload, base_url=_base_url(request))
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.delete("/{feed_id}", response_model=dto.DeleteFeedResponse)
async def delete_feed_endpoint(
	feed_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: FeedService = Depends(container.get_feed_service),
) -> dto.DeleteFeedResponse:
	try:
		return await service.delete_feed(auth_user, feed_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.delete("/{feed_id}/comment/{comment_id}", response_model=List[dto.CommentView])
async def delete_comment_endpoint(
	feed_id: str,
	comment_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: FeedService = Depends(container.get_feed_service),
) -> List[dto.CommentView]:
	try:
		return await service.remove_comment(auth_user, feed_id, comment_id)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.patch("/{feed_id}/toggle-pin", response_model=dto.TogglePinResponse)
async def toggle_pin_endpoint(
	feed_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: FeedService = Depends(container.get_feed_service),
) -> dto.TogglePinResponse:
	try:
		return await service.toggle_pin(auth_user, feed_id)
	except Exception as exc:
		raise to_http_error(exc) from exc
