"""
Normalizer - one result shape and one error taxonomy for every source.
"""

import logging
import re
from datetime import date, datetime
from typing import Any, Iterable

from services.binfinder.errors import (
    AdapterExecutionError,
    BinLookupError,
    NotFoundError,
    ParseError,
)
from services.binfinder.models import DISPLAY_DATE_FORMAT, CollectionEntry, DispatchPlan
from services.common.logging_utils import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

MISSING_SCHEMA_RE = re.compile(
    r"missing ?schema|no scheme supplied|invalid ?url|failed to parse", re.IGNORECASE
)
NOT_FOUND_RE = re.compile(r"not found|invalid", re.IGNORECASE)

MISSING_URL_MESSAGE = (
    "This council likely needs a URL rather than a postcode. "
    "Paste the address of your council's bin collection page."
)
NOT_FOUND_MESSAGE = "The council did not recognise this address."
NOT_FOUND_HINT = "Try adding your house number, e.g. '10 SN8 1RA'."

_MAX_DIAGNOSTIC_CHARS = 500


def parse_collection_date(value: str) -> date:
    """
    Accepts DD/MM/YYYY (council scripts) or ISO-8601 date / date-time (waste APIs).
    """
    text = str(value).strip()
    try:
        return datetime.strptime(text, DISPLAY_DATE_FORMAT).date()
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    return date.fromisoformat(text[:10])


def dedupe_entries(entries: Iterable[CollectionEntry]) -> list[CollectionEntry]:
    """Drop repeated (type, date) pairs, keeping first-seen order."""
    seen = set()
    unique = []
    for entry in entries:
        if entry in seen:
            continue
        seen.add(entry)
        unique.append(entry)
    return unique


def normalise_payload(payload: Any, plan: DispatchPlan | None = None) -> list[CollectionEntry]:
    """
    Turn {"bins": [...]} (or a bare list) into CollectionEntry items.

    An empty result obtained with a placeholder postcode means the council did
    not know the address, so it is reported as NotFoundError.
    """
    if isinstance(payload, dict):
        if "bins" not in payload:
            raise ParseError("Council data did not contain a bin list.")
        items = payload["bins"]
    elif isinstance(payload, list):
        items = payload
    else:
        raise ParseError("Council data was not in a recognised format.")

    if not isinstance(items, list):
        raise ParseError("Council bin list was not a list.")

    entries = []
    for item in items:
        try:
            bin_type = str(item["type"]).strip()
            collection_date = parse_collection_date(item["collectionDate"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Skipping malformed bin entry %r: %s", item, e)
            continue
        if bin_type:
            entries.append(CollectionEntry(bin_type=bin_type, collection_date=collection_date))

    if not entries and plan is not None and plan.used_placeholder_postcode:
        raise NotFoundError(NOT_FOUND_MESSAGE, hint="Add your postcode after the UPRN.")

    return dedupe_entries(entries)


def classify_adapter_failure(diagnostic: str, plan: DispatchPlan | None = None) -> BinLookupError:
    """Map raw script/HTTP diagnostics to a caller-facing error."""
    text = (diagnostic or "").strip()

    if MISSING_SCHEMA_RE.search(text):
        return AdapterExecutionError(MISSING_URL_MESSAGE, diagnostic=text)

    if NOT_FOUND_RE.search(text) or (plan is not None and plan.used_placeholder_postcode):
        return NotFoundError(NOT_FOUND_MESSAGE, hint=NOT_FOUND_HINT)

    if not text:
        return AdapterExecutionError("The council script failed without saying why.")

    # Last line is normally the exception itself; tracebacks above it are noise.
    last_line = text.splitlines()[-1].strip()
    return AdapterExecutionError(
        f"Script failed: {last_line[:_MAX_DIAGNOSTIC_CHARS]}", diagnostic=text
    )


def bins_envelope(entries: list[CollectionEntry]) -> dict:
    return {"bins": [entry.to_dict() for entry in entries]}
