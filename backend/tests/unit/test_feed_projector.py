from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from app.feeds.domain import models, projector

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

PROFILES = {
	"alice": models.UserProfile(id="alice", name="Alice", role=models.Role.ACTIVE, church="st_marys"),
	"priest": models.UserProfile(id="priest", name="Father P", role=models.Role.ADMIN, church="st_brendan"),
}


def _original(**overrides) -> models.Feed:
	data = dict(id=uuid4(), author_id="alice", text="Mass at 8", likes=["priest"], created_at=NOW, updated_at=NOW)
	data.update(overrides)
	return models.Feed(**data)


def _reshare(original_id, text) -> models.Feed:
	return models.Feed(
		id=uuid4(),
		author_id="priest",
		text=text,
		kind=models.FeedKind.RESHARE,
		original_feed_id=original_id,
		created_at=NOW,
		updated_at=NOW,
	)


def test_project_counts_and_viewer_flags_for_author():
	feed = _original()
	view = projector.project(feed, models.Viewer(user_id="alice", role="active"), profiles=PROFILES)
	assert view.like_count == 1
	assert view.comment_count == 0
	assert view.is_liked_by_viewer is False
	assert view.can_edit is True
	assert view.can_delete is True
	assert view.can_pin is False
	assert view.author.name == "Alice"
	assert view.author.church == "St. Mary's Catholic Church Ijagemo"
	assert view.author.is_admin is False


def test_project_for_admin_liker():
	feed = _original()
	view = projector.project(feed, models.Viewer(user_id="priest", role="admin"), profiles=PROFILES)
	assert view.is_liked_by_viewer is True
	assert view.can_edit is False
	assert view.can_delete is True
	assert view.can_pin is True


def test_missing_author_renders_placeholder():
	feed = _original(author_id="ghost")
	view = projector.project(feed, models.Viewer.anonymous(), profiles=PROFILES)
	assert view.author.name == projector.UNKNOWN_MEMBER
	assert view.author.church == projector.UNKNOWN_PARISH


def test_church_names_fall_back_to_unknown_parish():
	assert projector.church_display_name("ss_joachim_and_anne") == "SS Joachim & Anne Catholic Church Ijegun"
	assert projector.church_display_name("st_elsewhere") == "Unknown Parish"
	assert projector.church_display_name(None) == "Unknown Parish"


def test_default_reshare_caption_is_hidden_but_kept():
	original = _original()
	caption = projector.default_reshare_caption(original.id)
	reshare = _reshare(original.id, caption)
	view = projector.project(reshare, models.Viewer.anonymous(), profiles=PROFILES, original=original)
	assert view.display_text == ""
	assert view.text == caption
	assert view.original is not None
	assert view.original.available is True
	assert view.original.author_name == "Alice"
	assert view.original.text == "Mass at 8"


def test_custom_reshare_caption_is_displayed():
	original = _original()
	reshare = _reshare(original.id, "Please come!")
	view = projector.project(reshare, models.Viewer.anonymous(), profiles=PROFILES, original=original)
	assert view.display_text == "Please come!"


def test_caption_for_a_different_feed_is_not_suppressed():
	original = _original()
	reshare = _reshare(original.id, projector.default_reshare_caption(uuid4()))
	view = projector.project(reshare, models.Viewer.anonymous(), profiles=PROFILES, original=original)
	assert view.display_text == reshare.text


def test_dangling_reshare_marks_original_unavailable():
	missing_id = uuid4()
	reshare = _reshare(missing_id, "still here")
	view = projector.project(reshare, models.Viewer.anonymous(), profiles=PROFILES, original=None)
	assert view.original is not None
	assert view.original.id == missing_id
	assert view.original.available is False
	assert view.original.text is None


def test_localize_recomputes_flags_for_another_viewer():
	feed = _original()
	broadcast = projector.project(feed, models.Viewer.anonymous(), profiles=PROFILES)
	assert not any([broadcast.can_edit, broadcast.can_delete, broadcast.can_pin, broadcast.is_liked_by_viewer])

	mine = projector.localize(broadcast, models.Viewer(user_id="alice", role="active"))
	assert mine.can_edit and mine.can_delete and not mine.can_pin

	admin = projector.localize(broadcast, models.Viewer(user_id="priest", role="admin"))
	assert admin.is_liked_by_viewer and admin.can_pin and admin.can_delete and not admin.can_edit


def test_payload_uses_camel_case_keys():
	view = projector.project(_original(), models.Viewer.anonymous(), profiles=PROFILES)
	payload = view.to_payload()
	assert "likeCount" in payload
	assert "isPinned" in payload
	assert "displayText" in payload
	assert payload["author"]["profilePic"] is None
