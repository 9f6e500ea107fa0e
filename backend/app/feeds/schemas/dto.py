"""Pydantic schemas for the feeds API and real-time payloads.

JSON field names are camelCase (``likeCount``, ``feedId``); Python attributes
stay snake_case.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

	def to_payload(self) -> dict:
		"""Serialise for socket emission the same way responses are rendered."""
		return self.model_dump(mode="json", by_alias=True)


class ImageUpload(BaseModel):
	"""An image received in a multipart request, not yet stored."""

	filename: str
	content_type: str
	data: bytes


class AuthorView(CamelModel):
	id: str
	name: str
	profile_pic: Optional[str] = None
	church: str
	role: Optional[str] = None
	is_admin: bool = False


class CommentView(CamelModel):
	id: UUID
	author_id: str
	author: AuthorView
	text: str
	created_at: datetime


class OriginalRef(CamelModel):
	"""Resolved origin of a reshare; ``available`` is False once the original is gone."""

	id: UUID
	available: bool
	author_name: Optional[str] = None
	text: Optional[str] = None
	image: Optional[str] = None


class FeedView(CamelModel):
	id: UUID
	author_id: str
	author: AuthorView
	text: Optional[str] = None
	display_text: str = ""
	image: Optional[str] = None
	kind: Literal["original", "reshare"]
	original_feed_id: Optional[UUID] = None
	original: Optional[OriginalRef] = None
	likes: List[str] = Field(default_factory=list)
	like_count: int = 0
	comment_count: int = 0
	comments: List[CommentView] = Field(default_factory=list)
	is_pinned: bool = False
	pinned_at: Optional[datetime] = None
	created_at: datetime
	updated_at: datetime
	is_liked_by_viewer: bool = False
	can_edit: bool = False
	can_delete: bool = False
	can_pin: bool = False


class OriginalFeedRequest(CamelModel):
	type: Literal["original"] = "original"
	text: Optional[str] = Field(default=None, max_length=10000)
	image: Optional[ImageUpload] = None


class ReshareFeedRequest(CamelModel):
	type: Literal["reshare"]
	original_feed_id: str = Field(..., min_length=1)
	text: Optional[str] = Field(default=None, max_length=10000)
	image: Optional[ImageUpload] = None


CreateFeedRequest = Annotated[
	Union[OriginalFeedRequest, ReshareFeedRequest],
	Field(discriminator="type"),
]


class FeedUpdateRequest(CamelModel):
	text: Optional[str] = Field(default=None, max_length=10000)
	image: Optional[ImageUpload] = None
	remove_image: bool = False


class CommentCreateRequest(CamelModel):
	text: str = Field(default="", max_length=2000)


class LikeResponse(CamelModel):
	like_count: int
	liked: bool


class DeleteFeedResponse(CamelModel):
	message: str
	feed_id: str


class TogglePinResponse(CamelModel):
	message: str
	feed: FeedView


class FeedLikedEvent(CamelModel):
	feed_id: UUID
	like_count: int


class CommentAddedEvent(CamelModel):
	feed_id: UUID
	comment: CommentView


class CommentDeletedEvent(CamelModel):
	feed_id: UUID
	comment_id: UUID


class NotificationResponse(CamelModel):
	id: UUID
	user_id: str
	actor_id: str
	actor: Optional[AuthorView] = None
	type: str
	feed_id: Optional[UUID] = None
	text: str
	is_read: bool
	created_at: datetime


class UnreadCountResponse(CamelModel):
	count: int


class MessageResponse(CamelModel):
	message: str
