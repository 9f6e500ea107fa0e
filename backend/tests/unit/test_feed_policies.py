from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from app.feeds.domain import models, policies
from app.feeds.domain.exceptions import ForbiddenError

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

OWNER = models.Viewer(user_id="owner", role="active")
STRANGER = models.Viewer(user_id="stranger", role="active")
PROBATION = models.Viewer(user_id="newcomer", role="probation")
ADMIN = models.Viewer(user_id="admin", role="admin")
ANONYMOUS = models.Viewer.anonymous()


def _feed(author_id: str = "owner") -> models.Feed:
	return models.Feed(id=uuid4(), author_id=author_id, text="hello", created_at=NOW, updated_at=NOW)


def _comment(author_id: str) -> models.Comment:
	return models.Comment(id=uuid4(), author_id=author_id, text="amen", created_at=NOW)


def test_only_the_author_can_edit():
	feed = _feed()
	assert policies.can_edit(OWNER, feed)
	assert not policies.can_edit(STRANGER, feed)
	assert not policies.can_edit(ADMIN, feed)
	assert not policies.can_edit(ANONYMOUS, feed)


def test_delete_feed_allows_owner_or_admin():
	feed = _feed()
	assert policies.can_delete_feed(OWNER, feed)
	assert policies.can_delete_feed(ADMIN, feed)
	assert not policies.can_delete_feed(STRANGER, feed)
	assert not policies.can_delete_feed(PROBATION, feed)


def test_delete_comment_checks_comment_author_not_feed_author():
	feed = _feed()
	comment = _comment("stranger")
	assert policies.can_delete_comment(STRANGER, feed, comment)
	assert policies.can_delete_comment(ADMIN, feed, comment)
	assert not policies.can_delete_comment(OWNER, feed, comment)


def test_pin_and_badge_are_admin_only():
	assert policies.can_pin(ADMIN)
	assert policies.can_view_admin_badge(ADMIN)
	for viewer in (OWNER, PROBATION, ANONYMOUS):
		assert not policies.can_pin(viewer)
		assert not policies.can_view_admin_badge(viewer)


def test_assert_helpers_raise_forbidden_with_detail():
	feed = _feed()
	with pytest.raises(ForbiddenError) as excinfo:
		policies.assert_can_edit(STRANGER, feed)
	assert excinfo.value.detail == "not_feed_owner"
	assert excinfo.value.status_code == 403

	with pytest.raises(ForbiddenError) as excinfo:
		policies.assert_can_pin(OWNER)
	assert excinfo.value.detail == "admin_role_required"

	policies.assert_can_delete_feed(ADMIN, feed)
	policies.assert_can_delete_comment(OWNER, feed, _comment("owner"))
