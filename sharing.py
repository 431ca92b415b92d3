"""Outbound links: share targets, calendars and contact shortcuts."""

from datetime import datetime, timedelta, timezone
from typing import Dict, Optional
from urllib.parse import quote, urlencode

from config import Settings

DEFAULT_EVENT_DURATION = timedelta(hours=2)


def post_url(settings: Settings, slug: str) -> str:
    return f"{settings.SITE_URL}/post/{slug}"


def share_urls(post: dict, settings: Settings) -> Dict[str, str]:
    url = quote(post_url(settings, post.get("slug", "")), safe="")
    title = quote(post.get("title", ""), safe="")
    text = quote(f"{post.get('title', '')} - {post.get('excerpt', '')}", safe="")
    return {
        "whatsapp": f"https://wa.me/?text={title}%20{url}",
        "facebook": f"https://www.facebook.com/sharer/sharer.php?u={url}",
        "twitter": f"https://twitter.com/intent/tweet?text={title}&url={url}",
        "linkedin": f"https://www.linkedin.com/sharing/share-offsite/?url={url}",
        "telegram": f"https://t.me/share/url?url={url}&text={title}",
        "email": f"mailto:?subject={title}&body={text}%0A%0A{url}",
    }


def og_tags(post: dict, settings: Settings) -> Dict[str, str]:
    image = post.get("thumbnail") or f"{settings.SITE_URL}/og-default.jpg"
    return {
        "og:title": post.get("title", ""),
        "og:description": post.get("excerpt", ""),
        "og:image": image,
        "og:url": post_url(settings, post.get("slug", "")),
        "og:type": "article",
        "og:site_name": settings.SITE_NAME,
        "twitter:card": "summary_large_image",
        "twitter:title": post.get("title", ""),
        "twitter:description": post.get("excerpt", ""),
        "twitter:image": image,
    }


def _as_utc(value) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _event_window(event: dict):
    start = _as_utc(event["date"])
    end = _as_utc(event["end_date"]) if event.get("end_date") else start + DEFAULT_EVENT_DURATION
    return start, end


def _calendar_stamp(value: datetime) -> str:
    return value.strftime("%Y%m%dT%H%M%SZ")


def google_calendar_link(event: dict) -> str:
    start, end = _event_window(event)
    params = urlencode({
        "action": "TEMPLATE",
        "text": event.get("title", ""),
        "dates": f"{_calendar_stamp(start)}/{_calendar_stamp(end)}",
        "details": event.get("description", ""),
        "location": event.get("location") or "",
    })
    return f"https://calendar.google.com/calendar/render?{params}"


def _ics_escape(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def ics_calendar(event: dict, settings: Settings) -> str:
    start, end = _event_window(event)
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:-//{settings.SITE_NAME}//Events//EN",
        "BEGIN:VEVENT",
        f"UID:{event.get('id', '')}@{settings.SITE_URL.split('://')[-1]}",
        f"DTSTAMP:{_calendar_stamp(datetime.now(timezone.utc))}",
        f"DTSTART:{_calendar_stamp(start)}",
        f"DTEND:{_calendar_stamp(end)}",
        f"SUMMARY:{_ics_escape(event.get('title', ''))}",
        f"DESCRIPTION:{_ics_escape(event.get('description', ''))}",
        f"LOCATION:{_ics_escape(event.get('location') or '')}",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines) + "\r\n"


def whatsapp_link(settings: Settings, message: Optional[str] = None) -> str:
    text = f"?text={quote(message, safe='')}" if message else ""
    return f"https://wa.me/{settings.CONTACT_WHATSAPP}{text}"


def phone_link(settings: Settings) -> str:
    return f"tel:{settings.CONTACT_PHONE}"


def email_link(settings: Settings, subject: Optional[str] = None) -> str:
    subject_param = f"?subject={quote(subject, safe='')}" if subject else ""
    return f"mailto:{settings.CONTACT_EMAIL}{subject_param}"
