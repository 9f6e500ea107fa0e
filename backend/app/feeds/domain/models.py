"""Domain models for the feed aggregate and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

if TYPE_CHECKING:  # pragma: no cover - type hints only
	from app.infra.auth import AuthenticatedUser


class FeedKind(str, Enum):
	ORIGINAL = "original"
	RESHARE = "reshare"


class Role(str, Enum):
	PROBATION = "probation"
	ACTIVE = "active"
	ADMIN = "admin"


@dataclass(frozen=True, slots=True)
class Viewer:
	"""Identity a decision or projection is made for; user_id is None for anonymous."""

	user_id: Optional[str] = None
	role: Optional[str] = None

	@classmethod
	def anonymous(cls) -> "Viewer":
		return cls()

	@classmethod
	def from_user(cls, user: "AuthenticatedUser | None") -> "Viewer":
		if user is None:
			return cls()
		return cls(user_id=str(user.id), role=user.role)

	@property
	def is_authenticated(self) -> bool:
		return self.user_id is not None


class Comment(BaseModel):
	"""A comment embedded in exactly one feed."""

	id: UUID
	author_id: str
	text: str
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


class Feed(BaseModel):
	"""Feed aggregate root: a post plus its like set and embedded comments."""

	id: UUID
	author_id: str
	text: Optional[str] = None
	image: Optional[str] = None
	likes: list[str] = Field(default_factory=list)
	comments: list[Comment] = Field(default_factory=list)
	kind: FeedKind = FeedKind.ORIGINAL
	original_feed_id: Optional[UUID] = None
	is_pinned: bool = False
	pinned_at: Optional[datetime] = None
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)

	@model_validator(mode="after")
	def _check_invariants(self) -> "Feed":
		if (self.kind is FeedKind.RESHARE) != (self.original_feed_id is not None):
			raise ValueError("original_feed_id must be set exactly when kind is reshare")
		if len(set(self.likes)) != len(self.likes):
			raise ValueError("likes must not contain duplicate user ids")
		return self

	@property
	def like_count(self) -> int:
		return len(self.likes)

	@property
	def comment_count(self) -> int:
		return len(self.comments)

	@property
	def is_reshare(self) -> bool:
		return self.kind is FeedKind.RESHARE

	def find_comment(self, comment_id: UUID) -> Optional[Comment]:
		for comment in self.comments:
			if comment.id == comment_id:
				return comment
		return None


class UserProfile(BaseModel):
	"""Display fields for a member, owned by the user directory."""

	id: str
	name: str
	role: Role = Role.PROBATION
	church: Optional[str] = None
	profile_pic: Optional[str] = None

	model_config = ConfigDict(from_attributes=True)


class Notification(BaseModel):
	"""An inbox entry for one recipient."""

	id: UUID
	user_id: str
	actor_id: str
	type: str
	feed_id: Optional[UUID] = None
	text: str
	is_read: bool = False
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)
