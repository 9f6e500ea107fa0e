from __future__ import annotations

from uuid import uuid4

import pytest


async def _seed(api_client, headers_for) -> str:
	alice = headers_for("user-alice")
	bob = headers_for("user-bob")
	feed = (await api_client.post("/api/feeds", data={"text": "Choir rota"}, headers=alice)).json()
	await api_client.post(f"/api/feeds/{feed['id']}/like", headers=bob)
	await api_client.post(f"/api/feeds/{feed['id']}/comment", json={"text": "I can sing"}, headers=bob)
	return feed["id"]


@pytest.mark.asyncio
async def test_inbox_lists_newest_first_with_unread_count(api_client, headers_for, bus):
	feed_id = await _seed(api_client, headers_for)
	alice = headers_for("user-alice")

	inbox = await api_client.get("/api/notifications", headers=alice)
	assert inbox.status_code == 200
	items = inbox.json()
	assert [item["type"] for item in items] == ["feed_commented", "feed_liked"]
	assert items[0]["text"] == "Bob commented on your post"
	assert items[0]["feedId"] == feed_id
	assert items[0]["actor"]["name"] == "Bob"
	assert items[0]["isRead"] is False

	count = await api_client.get("/api/notifications/unread-count", headers=alice)
	assert count.json() == {"count": 2}

	pushed = [(user, payload["type"]) for user, event, payload in bus.direct if event == "newNotification"]
	assert pushed == [("user-alice", "feed_liked"), ("user-alice", "feed_commented")]

	assert (await api_client.get("/api/notifications", headers=headers_for("user-bob"))).json() == []


@pytest.mark.asyncio
async def test_mark_read_delete_and_clear(api_client, headers_for):
	await _seed(api_client, headers_for)
	alice = headers_for("user-alice")
	items = (await api_client.get("/api/notifications", headers=alice)).json()

	read = await api_client.put(f"/api/notifications/{items[0]['id']}/read", headers=alice)
	assert read.status_code == 200
	assert read.json()["isRead"] is True
	assert (await api_client.get("/api/notifications/unread-count", headers=alice)).json() == {"count": 1}

	others = await api_client.put(f"/api/notifications/{items[1]['id']}/read", headers=headers_for("user-bob"))
	assert others.status_code == 404

	marked = await api_client.put("/api/notifications/mark-all-read", headers=alice)
	assert marked.status_code == 200
	assert (await api_client.get("/api/notifications/unread-count", headers=alice)).json() == {"count": 0}

	deleted = await api_client.delete(f"/api/notifications/{items[0]['id']}", headers=alice)
	assert deleted.status_code == 200
	again = await api_client.delete(f"/api/notifications/{items[0]['id']}", headers=alice)
	assert again.status_code == 404
	assert again.json()["detail"] == "notification_not_found"

	cleared = await api_client.delete("/api/notifications/clear", headers=alice)
	assert cleared.status_code == 200
	assert (await api_client.get("/api/notifications", headers=alice)).json() == []


@pytest.mark.asyncio
async def test_unknown_or_malformed_notification_ids(api_client, headers_for):
	alice = headers_for("user-alice")
	assert (await api_client.put(f"/api/notifications/{uuid4()}/read", headers=alice)).status_code == 404
	assert (await api_client.put("/api/notifications/nope/read", headers=alice)).status_code == 404
	assert (await api_client.get("/api/notifications")).status_code == 401
