from datetime import timedelta

from pymongo.errors import ServerSelectionTimeoutError

from database import CATEGORIES, CONTACT_MESSAGES, EVENTS, PRAYER_REQUESTS, SUBSCRIBERS, get_db, now_utc
from main import app


def test_root(client):
    assert client.get("/").json() == {"message": "Ministry Content Hub API running"}


def test_site_info_has_contact_links(client, settings):
    body = client.get("/api/site").json()
    assert body["name"] == settings.SITE_NAME
    assert body["contact"]["phone"] == f"tel:{settings.CONTACT_PHONE}"
    assert body["contact"]["whatsapp"].startswith("https://wa.me/")


def test_default_categories_when_none_stored(client, make_post):
    make_post("Morning Devotion", category="devotionals")
    categories = client.get("/api/categories").json()
    assert len(categories) == 8
    assert [c["name"] for c in categories] == sorted(c["name"] for c in categories)
    devotionals = next(c for c in categories if c["slug"] == "devotionals")
    assert devotionals["post_count"] == 1


def test_category_lookup(client, make_post):
    make_post("Sunday Sermon", minutes=1)
    make_post("Evening Sermon", minutes=2)
    assert client.get("/api/categories/sermons").json()["name"] == "Sermons"
    assert client.get("/api/categories/unknown").status_code == 404

    body = client.get("/api/categories/sermons/posts").json()
    assert [p["title"] for p in body["items"]] == ["Evening Sermon", "Sunday Sermon"]
    assert client.get("/api/categories/unknown/posts").status_code == 404


def test_category_admin(client, make_user, db):
    admin = make_user("admin")
    assert client.post("/api/admin/categories/seed", headers=admin["headers"]).json()["seeded"] is True
    assert client.post("/api/admin/categories/seed", headers=admin["headers"]).json()["seeded"] is False

    res = client.post("/api/admin/categories", json={"name": "Youth Ministry"}, headers=admin["headers"])
    assert res.status_code == 201
    category = res.json()
    assert category["slug"] == "youth-ministry"

    res = client.post("/api/admin/categories", json={"name": "Youth  Ministry!"}, headers=admin["headers"])
    assert res.status_code == 400

    res = client.patch(
        f"/api/admin/categories/{category['id']}", json={"description": "Teens"}, headers=admin["headers"]
    )
    assert res.json()["description"] == "Teens"
    assert client.delete(f"/api/admin/categories/{category['id']}", headers=admin["headers"]).json()["deleted"]
    assert db[CATEGORIES].count_documents({}) == 8


def test_events(client, make_user, db):
    admin = make_user("admin")
    now = now_utc()
    for days, title in [(-3, "Past Vigil"), (10, "Later Retreat"), (2, "Soon Bible Study")]:
        res = client.post(
            "/api/admin/events",
            json={"title": title, "date": (now + timedelta(days=days)).isoformat(), "location": "Chapel"},
            headers=admin["headers"],
        )
        assert res.status_code == 201

    all_events = client.get("/api/events").json()
    assert [e["title"] for e in all_events] == ["Past Vigil", "Soon Bible Study", "Later Retreat"]

    upcoming = client.get("/api/events/upcoming", params={"limit": 1}).json()
    assert [e["title"] for e in upcoming] == ["Soon Bible Study"]

    event_id = upcoming[0]["id"]
    links = client.get(f"/api/events/{event_id}/calendar").json()
    assert links["google"].startswith("https://calendar.google.com/")
    assert links["ics"] == f"/api/events/{event_id}/ics"

    res = client.get(f"/api/events/{event_id}/ics")
    assert res.headers["content-type"].startswith("text/calendar")
    assert "SUMMARY:Soon Bible Study" in res.text
    assert 'filename="soon-bible-study.ics"' in res.headers["content-disposition"]

    res = client.patch(f"/api/admin/events/{event_id}", json={"is_online": True}, headers=admin["headers"])
    assert res.json()["is_online"] is True
    assert client.delete(f"/api/admin/events/{event_id}", headers=admin["headers"]).json()["deleted"]
    assert client.get(f"/api/events/{event_id}").status_code == 404
    assert db[EVENTS].count_documents({}) == 2


def test_readers_cannot_manage_events(client, make_user):
    reader = make_user("reader")
    res = client.post(
        "/api/admin/events", json={"title": "Picnic", "date": now_utc().isoformat()}, headers=reader["headers"]
    )
    assert res.status_code == 403


def test_prayer_requests(client, make_user, db):
    admin = make_user("admin")
    res = client.post("/api/prayer-requests", json={"name": "Eli", "request": "Pray for my family", "is_private": True})
    assert res.status_code == 201
    assert client.post("/api/prayer-requests", json={"name": "Eli", "request": ""}).status_code == 422

    requests = client.get("/api/admin/prayer-requests", headers=admin["headers"]).json()
    assert requests[0]["is_private"] is True
    assert client.delete(f"/api/admin/prayer-requests/{requests[0]['id']}", headers=admin["headers"]).json()["deleted"]
    assert db[PRAYER_REQUESTS].count_documents({}) == 0


def test_contact_messages(client, make_user, db):
    admin = make_user("admin")
    res = client.post(
        "/api/contact",
        json={"name": "Lydia", "email": "lydia@gracechurch.org", "subject": "Visit", "message": "When is service?"},
    )
    message_id = res.json()["id"]
    messages = client.get("/api/admin/contact-messages", headers=admin["headers"]).json()
    assert messages[0]["is_read"] is False

    assert client.patch(f"/api/admin/contact-messages/{message_id}/read", headers=admin["headers"]).json() == {"updated": True}
    assert db[CONTACT_MESSAGES].find_one({})["is_read"] is True
    assert client.delete(f"/api/admin/contact-messages/{message_id}", headers=admin["headers"]).json()["deleted"]


def test_newsletter(client, make_user, db):
    admin = make_user("admin")
    email = "joel@gracechurch.org"

    assert client.post("/api/newsletter/subscribe", json={"email": email}).json()["success"] is True
    again = client.post("/api/newsletter/subscribe", json={"email": email}).json()
    assert again == {"success": False, "message": "You are already subscribed!"}

    assert client.post("/api/newsletter/unsubscribe", json={"email": email}).json()["success"] is True
    assert client.get("/api/admin/subscribers", headers=admin["headers"]).json() == []

    back = client.post("/api/newsletter/subscribe", json={"email": email}).json()
    assert back["message"] == "Welcome back! You have been resubscribed."
    subscribers = client.get("/api/admin/subscribers", headers=admin["headers"]).json()
    assert [s["email"] for s in subscribers] == [email]

    unknown = client.post("/api/newsletter/unsubscribe", json={"email": "nobody@gracechurch.org"}).json()
    assert unknown["success"] is False
    assert db[SUBSCRIBERS].count_documents({}) == 1


def test_stats(client, make_user, make_post):
    admin = make_user("admin")
    make_post("One", views=3)
    make_post("Two", views=4, status="draft")
    body = client.get("/api/admin/stats", headers=admin["headers"]).json()
    assert body["posts"] == 2
    assert body["published"] == 1
    assert body["drafts"] == 1
    assert body["views"] == 7
    assert body["users"] == 1


class BrokenDatabase:
    def __getitem__(self, name):
        raise ServerSelectionTimeoutError("no servers available")


def test_backend_failure_is_a_generic_503(client):
    app.dependency_overrides[get_db] = lambda: BrokenDatabase()
    res = client.get("/api/posts/recent")
    assert res.status_code == 503
    assert res.json() == {"detail": "Service temporarily unavailable"}
