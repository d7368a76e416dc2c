"""
Bin lookup pipeline.

    text -> [result cache] -> parse -> (resolve UPRN) -> dispatch plan -> adapter -> normalise

A cache hit skips everything after the cache.

Every BinLookupError is turned into an error envelope here; nothing
unstructured reaches the caller.
"""

import logging
from typing import Callable, Optional

import config
from services.binfinder.adapters import SourceAdapter, default_adapters
from services.binfinder.address_parser import parse_address
from services.binfinder.address_resolver import resolve_uprn
from services.binfinder.calendar_export import export_ics
from services.binfinder.dispatch import (
    build_plan,
    ensure_known_council,
    needs_address_resolution,
    normalise_council_id,
)
from services.binfinder.errors import BinLookupError, InputError
from services.binfinder.models import CollectionEntry, RawQuery, Strategy
from services.binfinder.normalizer import bins_envelope
from services.binfinder.result_cache import ResultCache, make_cache_key
from services.common.logging_utils import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

INTERNAL_ERROR_ENVELOPE = {
    "error": "Unexpected server error. Please try again.",
    "error_code": "INTERNAL_ERROR",
}

Resolver = Callable[[str, str, Optional[str]], Optional[str]]


class BinLookupService:
    def __init__(
        self,
        cache: ResultCache | None = None,
        adapters: dict[Strategy, SourceAdapter] | None = None,
        resolver: Resolver = resolve_uprn,
    ):
        self.cache = cache if cache is not None else ResultCache()
        self.adapters = adapters if adapters is not None else default_adapters()
        self.resolver = resolver

    def lookup(self, query: RawQuery) -> list[CollectionEntry]:
        """Collections for a query. Raises BinLookupError subclasses."""
        text = (query.text or "").strip()
        if not text:
            raise InputError("Please enter a postcode.", hint="e.g. 'SN8 1RA' or '10 SN8 1RA'.")

        council_id = normalise_council_id(query.council_id)
        ensure_known_council(council_id)
        key = make_cache_key(council_id, query.text)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        intent = parse_address(text)
        resolved_uprn = None
        if needs_address_resolution(intent):
            api_key = query.privileged_api_key or config.ADDRESS_API_KEY
            resolved_uprn = self.resolver(intent.postcode, intent.house_identifier, api_key)

        plan = build_plan(intent, council_id, resolved_uprn)
        logger.info(
            "Dispatching %s via %s (args=%s, placeholder=%s)",
            council_id,
            plan.strategy.value,
            [flag for flag, _ in plan.identifier_args],
            plan.used_placeholder_postcode,
        )

        entries = self.adapters[plan.strategy].execute(plan)
        self.cache.put(key, entries)
        return entries

    def get_bins(self, query: RawQuery) -> tuple[dict, int]:
        """Canonical response envelope and HTTP status for a query."""
        try:
            entries = self.lookup(query)
        except BinLookupError as e:
            logger.info("Lookup for %r failed: %s (%s)", query.text, e.message, e.error_code)
            return e.to_envelope(), e.http_status
        except Exception:
            logger.exception("Unexpected error looking up %r for %s", query.text, query.council_id)
            return dict(INTERNAL_ERROR_ENVELOPE), 500
        return bins_envelope(entries), 200

    def get_calendar_feed(self, query: RawQuery) -> tuple[bytes | dict, int]:
        """iCalendar bytes on success, otherwise the same error envelope as get_bins."""
        try:
            entries = self.lookup(query)
        except BinLookupError as e:
            return e.to_envelope(), e.http_status
        except Exception:
            logger.exception("Unexpected error building feed for %r", query.text)
            return dict(INTERNAL_ERROR_ENVELOPE), 500
        return export_ics(entries), 200
