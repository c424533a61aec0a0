"""
Tests for event endpoints: creation from multipart forms, listing, reads,
partial updates and deletes.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from devevent.api.routes import events as events_routes
from devevent.core.config import Settings
from devevent.db.connection import ConnectionManager
from devevent.db.session import get_connection_manager
from devevent.main import app
from devevent.services.cache_service import EventListCache, get_event_cache
from tests.helpers import FakeRedis, post_event


@pytest.mark.asyncio
async def test_create_event(client: AsyncClient, event_form, image_file, uploader):
    """Fields are normalized and the uploaded image URL is stored."""
    response = await post_event(client, event_form, image_file)
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Event created successfully"

    event = body["event"]
    assert event["title"] == "React Summit 2026"
    assert event["slug"] == "react-summit-2026"
    assert event["date"] == "2026-06-12"
    assert event["time"] == "09:00 AM"
    assert event["mode"] == "hybrid"
    assert event["agenda"] == ["Keynote", "Server components deep dive", "Panel"]
    assert event["tags"] == ["react", "frontend"]
    assert event["image"] == "https://media.test/DevEvent/1-cover.png"
    assert uploader.uploads == [{"filename": "cover.png", "content_type": "image/png", "size": 18}]


@pytest.mark.asyncio
async def test_create_event_mode_is_lowercased(client: AsyncClient, event_form, image_file):
    event_form["mode"] = "Online"
    response = await post_event(client, event_form, image_file)
    assert response.status_code == 201
    assert response.json()["event"]["mode"] == "online"


@pytest.mark.asyncio
async def test_create_event_invalid_mode(client: AsyncClient, event_form, image_file, uploader):
    event_form["mode"] = "invalid"
    response = await post_event(client, event_form, image_file)
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"
    assert uploader.uploads == []


@pytest.mark.asyncio
async def test_create_event_empty_agenda(client: AsyncClient, event_form, image_file):
    event_form["agenda"] = "[]"
    response = await post_event(client, event_form, image_file)
    assert response.status_code == 400
    assert response.json()["message"] == "Agenda must have at least one item"


@pytest.mark.asyncio
async def test_create_event_agenda_as_json_string(client: AsyncClient, event_form, image_file):
    event_form["agenda"] = '["Opening", "Closing"]'
    event_form["tags"] = '["js"]'
    response = await post_event(client, event_form, image_file)
    assert response.status_code == 201
    assert response.json()["event"]["agenda"] == ["Opening", "Closing"]
    assert response.json()["event"]["tags"] == ["js"]


@pytest.mark.asyncio
async def test_create_event_bracketed_item_is_plain_text(client: AsyncClient, event_form, image_file):
    event_form["agenda"] = "[Workshop] Intro to hooks"
    response = await post_event(client, event_form, image_file)
    assert response.status_code == 201
    assert response.json()["event"]["agenda"] == ["[Workshop] Intro to hooks"]


@pytest.mark.asyncio
async def test_create_event_without_image(client: AsyncClient, event_form):
    response = await post_event(client, event_form)
    assert response.status_code == 400
    assert response.json()["message"] == "Image file is required"


@pytest.mark.asyncio
async def test_create_event_rejects_non_image_upload(client: AsyncClient, event_form):
    files = {"image": ("notes.txt", b"plain text", "text/plain")}
    response = await post_event(client, event_form, files)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_event_missing_title(client: AsyncClient, event_form, image_file, uploader):
    """Validation happens before the upload, so nothing is uploaded."""
    del event_form["title"]
    response = await post_event(client, event_form, image_file)
    assert response.status_code == 400
    assert response.json()["message"] == "Event title is required"
    assert uploader.uploads == []


@pytest.mark.asyncio
async def test_create_event_invalid_date(client: AsyncClient, event_form, image_file):
    event_form["date"] = "not-a-date"
    response = await post_event(client, event_form, image_file)
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid date format"


@pytest.mark.asyncio
async def test_create_event_blank_time(client: AsyncClient, event_form, image_file):
    event_form["time"] = "   "
    response = await post_event(client, event_form, image_file)
    assert response.status_code == 400
    assert response.json()["message"] == "Time cannot be empty"


@pytest.mark.asyncio
async def test_create_event_duplicate_slug(client: AsyncClient, event_form, image_file):
    """Titles that normalize to the same slug conflict."""
    first = await post_event(client, event_form, image_file)
    assert first.status_code == 201

    event_form["title"] = "react summit 2026!!"
    second = await post_event(client, event_form, image_file)
    assert second.status_code == 409
    assert second.json()["error"] == "conflict"

    listing = await client.get("/api/v1/events/")
    assert listing.json()["total"] == 1


@pytest.mark.asyncio
async def test_create_event_upload_failure_writes_nothing(client: AsyncClient, event_form, image_file, uploader):
    uploader.fail = True
    response = await post_event(client, event_form, image_file)
    assert response.status_code == 502
    assert response.json() == {"error": "upload_error", "message": "Image upload failed"}

    listing = await client.get("/api/v1/events/")
    assert listing.json()["events"] == []


@pytest.mark.asyncio
async def test_create_event_without_database_url(client: AsyncClient, event_form, image_file):
    unconfigured = ConnectionManager(Settings(DATABASE_URL="", REDIS_ENABLED=False))
    app.dependency_overrides[get_connection_manager] = lambda: unconfigured

    response = await post_event(client, event_form, image_file)
    assert response.status_code == 500
    assert response.json()["error"] == "configuration_error"


@pytest.mark.asyncio
async def test_list_events_newest_first(client: AsyncClient, event_form, image_file):
    for title in ("First Meetup", "Second Meetup", "Third Meetup"):
        event_form["title"] = title
        response = await post_event(client, event_form, image_file)
        assert response.status_code == 201

    response = await client.get("/api/v1/events/")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Event list fetched successfully"
    assert data["total"] == 3
    assert data["cached"] is False
    assert [e["slug"] for e in data["events"]] == ["third-meetup", "second-meetup", "first-meetup"]


class ReaderDuringInvalidateCache(EventListCache):
    """Issues a listing request from inside invalidate(), like a concurrent reader."""

    def __init__(self, http: AsyncClient):
        super().__init__(Settings(REDIS_ENABLED=True), client=FakeRedis())
        self.http = http
        self.seen_totals = []

    async def invalidate(self) -> None:
        response = await self.http.get("/api/v1/events/")
        self.seen_totals.append(response.json()["total"])
        await super().invalidate()


@pytest.mark.asyncio
async def test_listing_cache_never_keeps_pre_write_list(client: AsyncClient, event_form, image_file):
    """The write is committed before the cache is dropped, so a reader in between sees it."""
    cache = ReaderDuringInvalidateCache(client)
    app.dependency_overrides[get_event_cache] = lambda: cache

    response = await post_event(client, event_form, image_file)
    assert response.status_code == 201
    assert cache.seen_totals == [1]

    listing = await client.get("/api/v1/events/")
    assert listing.json()["total"] == 1

    patched = await client.patch("/api/v1/events/react-summit-2026", json={"title": "React Summit Remote"})
    assert patched.status_code == 200
    listing = await client.get("/api/v1/events/")
    assert [e["slug"] for e in listing.json()["events"]] == ["react-summit-remote"]

    assert (await client.delete("/api/v1/events/react-summit-remote")).status_code == 204
    listing = await client.get("/api/v1/events/")
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
async def test_list_events_failure_returns_500(client: AsyncClient, monkeypatch):
    async def broken_list_events(db):
        raise OperationalError("SELECT * FROM events", {}, Exception("database is locked"))

    monkeypatch.setattr(events_routes, "list_events", broken_list_events)

    response = await client.get("/api/v1/events/")
    assert response.status_code == 500
    assert response.json()["message"] == "Event fetching failed"
    assert "locked" not in response.text


@pytest.mark.asyncio
async def test_get_event(client: AsyncClient, created_event):
    response = await client.get(f"/api/v1/events/{created_event['slug']}")
    assert response.status_code == 200
    assert response.json()["id"] == created_event["id"]


@pytest.mark.asyncio
async def test_get_event_not_found(client: AsyncClient):
    response = await client.get("/api/v1/events/no-such-event")
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_update_title_regenerates_slug(client: AsyncClient, created_event):
    response = await client.patch(
        f"/api/v1/events/{created_event['slug']}",
        json={"title": "React Summit 2026: Remote Edition"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["slug"] == "react-summit-2026-remote-edition"
    assert data["date"] == created_event["date"]

    assert (await client.get("/api/v1/events/react-summit-2026")).status_code == 404


@pytest.mark.asyncio
async def test_update_date_keeps_slug(client: AsyncClient, created_event):
    response = await client.patch(
        f"/api/v1/events/{created_event['slug']}",
        json={"date": "July 1, 2026", "time": " 6 PM "},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["slug"] == created_event["slug"]
    assert data["date"] == "2026-07-01"
    assert data["time"] == "6 PM"


@pytest.mark.asyncio
async def test_update_rejects_invalid_values(client: AsyncClient, created_event):
    slug = created_event["slug"]
    assert (await client.patch(f"/api/v1/events/{slug}", json={"mode": "in-person"})).status_code == 400
    assert (await client.patch(f"/api/v1/events/{slug}", json={"tags": []})).status_code == 400
    assert (await client.patch(f"/api/v1/events/{slug}", json={"date": "soon"})).status_code == 400

    unchanged = await client.get(f"/api/v1/events/{slug}")
    assert unchanged.json()["mode"] == "hybrid"


@pytest.mark.asyncio
async def test_update_title_into_existing_slug_conflicts(client: AsyncClient, created_event, event_form, image_file):
    event_form["title"] = "Vue Nation"
    other = await post_event(client, event_form, image_file)
    assert other.status_code == 201

    response = await client.patch("/api/v1/events/vue-nation", json={"title": "React Summit 2026"})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_delete_event(client: AsyncClient, created_event):
    response = await client.delete(f"/api/v1/events/{created_event['slug']}")
    assert response.status_code == 204

    listing = await client.get("/api/v1/events/")
    assert listing.json()["total"] == 0


@pytest.mark.asyncio
async def test_delete_event_with_bookings_is_refused(client: AsyncClient, created_event):
    booking = await client.post(
        "/api/v1/bookings/",
        json={"event_id": created_event["id"], "email": "dev@example.com"},
    )
    assert booking.status_code == 201

    response = await client.delete(f"/api/v1/events/{created_event['slug']}")
    assert response.status_code == 409
    assert (await client.get(f"/api/v1/events/{created_event['slug']}")).status_code == 200


@pytest.mark.asyncio
async def test_health_and_root(client: AsyncClient):
    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert health.json()["cache"] == {"status": "disabled"}

    root = await client.get("/")
    assert root.json()["docs"] == "/docs"


@pytest.mark.asyncio
async def test_metrics_endpoint(client: AsyncClient, created_event):
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "devevent_event_operations_total" in response.text
