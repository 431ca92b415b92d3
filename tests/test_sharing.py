from datetime import datetime, timezone

import pytest

import sharing
from config import Settings


@pytest.fixture
def site():
    s = Settings()
    s.SITE_NAME = "Grace Church"
    s.SITE_URL = "https://grace.example.org"
    s.CONTACT_WHATSAPP = "2347000000000"
    s.CONTACT_PHONE = "07000000000"
    s.CONTACT_EMAIL = "hello@gracechurch.org"
    return s


POST = {"title": "Faith & Hope", "slug": "faith-hope", "excerpt": "Short read"}


def test_share_urls_are_encoded(site):
    links = sharing.share_urls(POST, site)
    encoded_url = "https%3A%2F%2Fgrace.example.org%2Fpost%2Ffaith-hope"
    assert links["facebook"] == f"https://www.facebook.com/sharer/sharer.php?u={encoded_url}"
    assert links["whatsapp"] == f"https://wa.me/?text=Faith%20%26%20Hope%20{encoded_url}"
    assert links["twitter"].endswith(f"&url={encoded_url}")
    assert links["email"].startswith("mailto:?subject=Faith%20%26%20Hope&body=")
    assert set(links) == {"whatsapp", "facebook", "twitter", "linkedin", "telegram", "email"}


def test_og_tags_fall_back_to_default_image(site):
    tags = sharing.og_tags(POST, site)
    assert tags["og:image"] == "https://grace.example.org/og-default.jpg"
    assert tags["og:url"] == "https://grace.example.org/post/faith-hope"
    assert tags["og:site_name"] == "Grace Church"

    tags = sharing.og_tags({**POST, "thumbnail": "https://cdn/x.jpg"}, site)
    assert tags["twitter:image"] == "https://cdn/x.jpg"


EVENT = {
    "id": "abc",
    "title": "Night of Worship",
    "description": "Songs, prayer; fellowship",
    "date": datetime(2024, 6, 1, 18, 0, tzinfo=timezone.utc),
    "location": "Main Hall",
}


def test_google_calendar_link_defaults_to_two_hours():
    link = sharing.google_calendar_link(EVENT)
    assert link.startswith("https://calendar.google.com/calendar/render?action=TEMPLATE")
    assert "dates=20240601T180000Z%2F20240601T200000Z" in link
    assert "location=Main+Hall" in link


def test_google_calendar_link_uses_end_date():
    event = {**EVENT, "end_date": "2024-06-01T21:30:00+00:00"}
    assert "20240601T213000Z" in sharing.google_calendar_link(event)


def test_ics_calendar(site):
    ics = sharing.ics_calendar(EVENT, site)
    lines = ics.split("\r\n")
    assert lines[0] == "BEGIN:VCALENDAR"
    assert "DTSTART:20240601T180000Z" in lines
    assert "DTEND:20240601T200000Z" in lines
    assert "SUMMARY:Night of Worship" in lines
    assert "DESCRIPTION:Songs\\, prayer\\; fellowship" in lines
    assert "UID:abc@grace.example.org" in lines


def test_contact_links(site):
    assert sharing.whatsapp_link(site) == "https://wa.me/2347000000000"
    assert sharing.whatsapp_link(site, "Hi there") == "https://wa.me/2347000000000?text=Hi%20there"
    assert sharing.phone_link(site) == "tel:07000000000"
    assert sharing.email_link(site, "Prayer") == "mailto:hello@gracechurch.org?subject=Prayer"
