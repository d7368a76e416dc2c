"""
Calendar feed export - bin collections as an iCalendar document.

Event UIDs depend only on (bin type, date), so re-downloading the feed
updates a subscribed calendar instead of duplicating events.
"""

import hashlib
from datetime import datetime, timedelta, timezone
from urllib.parse import quote

from icalendar import Calendar, Event

import config
from services.binfinder.models import CollectionEntry


def event_uid(entry: CollectionEntry) -> str:
    digest = hashlib.md5(f"{entry.bin_type}{entry.collection_date:%Y%m%d}".encode()).hexdigest()
    return f"{digest}@{config.FEED_UID_DOMAIN}"


def build_calendar(entries: list[CollectionEntry], name: str | None = None) -> Calendar:
    cal = Calendar()
    cal.add("prodid", config.FEED_PRODID)
    cal.add("version", "2.0")
    cal.add("x-wr-calname", name or config.FEED_CALENDAR_NAME)

    stamp = datetime.now(timezone.utc)
    for entry in entries:
        event = Event()
        event.add("uid", event_uid(entry))
        event.add("dtstamp", stamp)
        event.add("dtstart", entry.collection_date)
        event.add("dtend", entry.collection_date + timedelta(days=1))
        event.add("summary", f"Bin: {entry.bin_type}")
        event.add("transp", "TRANSPARENT")
        cal.add_component(event)
    return cal


def export_ics(entries: list[CollectionEntry], name: str | None = None) -> bytes:
    return build_calendar(entries, name).to_ical()


def generate_subscription_links(feed_url: str) -> dict:
    """
    Links for subscribing to a feed: webcal:// for desktop/phone calendars and
    a Google Calendar "add by URL" link.
    """
    webcal_url = feed_url.replace("https://", "webcal://", 1).replace("http://", "webcal://", 1)
    return {
        "ics": feed_url,
        "webcal": webcal_url,
        "google": f"https://www.google.com/calendar/render?cid={quote(feed_url, safe='')}",
    }
