"""
Address resolver - turns postcode + house name/number into a UPRN.

Two interchangeable directories are supported:
- privileged: OS Places postcode search (needs an API key)
- public: an unauthenticated HTML directory whose address links carry the UPRN

Lookups are best-effort. Anything short of a rejected API key ends up as
"not found" (None) and the caller dispatches without a UPRN.
"""

import logging
import re

import requests
from bs4 import BeautifulSoup

import config
from services.binfinder.errors import UpstreamAuthError
from services.binfinder.models import AddressCandidate
from services.common.logging_utils import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

_UPRN_IN_LINK_RE = re.compile(r"(?<!\d)(\d{8,12})(?!\d)")


def is_usable_api_key(api_key: str | None) -> bool:
    return bool(api_key) and len(api_key.strip()) > config.MIN_API_KEY_LENGTH


def find_matching_candidate(
    candidates: list[AddressCandidate], house_identifier: str
) -> AddressCandidate | None:
    """
    First candidate whose address contains house_identifier (case-insensitive).

    Deliberately permissive: "1" also matches "10 High Street".
    """
    needle = house_identifier.strip().lower()
    if not needle:
        return None
    for candidate in candidates:
        if needle in candidate.display_address.lower():
            return candidate
    return None


class PrivilegedAddressDirectory:
    """OS Places style postcode lookup; every result carries its UPRN."""

    def __init__(self, api_key: str, base_url: str | None = None, timeout: int | None = None):
        self.api_key = api_key
        self.base_url = base_url or config.PRIVILEGED_ADDRESS_API_URL
        self.timeout = timeout or config.HTTP_TIMEOUT_SECONDS

    def fetch_candidates(self, postcode: str) -> list[AddressCandidate]:
        response = requests.get(
            self.base_url,
            params={"postcode": postcode, "key": self.api_key},
            timeout=self.timeout,
        )
        if response.status_code == 401:
            raise UpstreamAuthError(
                "The address lookup API key was rejected.",
                hint="Check the API key, or leave it blank to use the public address directory.",
            )
        response.raise_for_status()

        data = response.json()
        if not isinstance(data, dict):
            logger.warning("Address API returned %s instead of an object for %s", type(data).__name__, postcode)
            return []
        results = data.get("results") or []
        if not isinstance(results, list):
            logger.warning("Address API results for %s were not a list", postcode)
            return []

        candidates = []
        for result in results:
            if not isinstance(result, dict):
                continue
            record = result.get("DPA") or result.get("LPI")
            if not isinstance(record, dict):
                continue
            uprn = record.get("UPRN")
            address = record.get("ADDRESS")
            if uprn and address:
                candidates.append(AddressCandidate(uprn=str(uprn), display_address=address))
        return candidates


class PublicAddressDirectory:
    """Public postcode pages listing one link per address."""

    def __init__(self, url_template: str | None = None, timeout: int | None = None):
        self.url_template = url_template or config.PUBLIC_ADDRESS_DIRECTORY_URL
        self.timeout = timeout or config.HTTP_TIMEOUT_SECONDS

    def fetch_candidates(self, postcode: str) -> list[AddressCandidate]:
        url = self.url_template.format(postcode=postcode.replace(" ", ""))
        response = requests.get(url, timeout=self.timeout)
        response.raise_for_status()
        return parse_directory_html(response.text)


def parse_directory_html(html: str) -> list[AddressCandidate]:
    soup = BeautifulSoup(html, features="html.parser")
    candidates = []
    seen = set()
    for anchor in soup.find_all("a", href=True):
        match = _UPRN_IN_LINK_RE.search(anchor["href"])
        if not match:
            continue
        address = anchor.get_text(" ", strip=True)
        uprn = match.group(1)
        if not address or uprn in seen:
            continue
        seen.add(uprn)
        candidates.append(AddressCandidate(uprn=uprn, display_address=address))
    return candidates


def select_directory(api_key: str | None):
    if is_usable_api_key(api_key):
        return PrivilegedAddressDirectory(api_key.strip())
    return PublicAddressDirectory()


def list_candidates(postcode: str, api_key: str | None = None) -> list[AddressCandidate]:
    """
    All addresses the directory knows for a postcode.

    Raises UpstreamAuthError for a rejected key and requests/ValueError
    exceptions for transport problems; callers decide how to degrade.
    """
    directory = select_directory(api_key)
    candidates = directory.fetch_candidates(postcode)
    logger.debug(
        "%s returned %d candidates for %s", type(directory).__name__, len(candidates), postcode
    )
    return candidates


def resolve_uprn(postcode: str, house_identifier: str, api_key: str | None = None) -> str | None:
    """
    Best-effort UPRN for a house within a postcode. Returns None when not found.
    """
    if not postcode or not house_identifier:
        return None
    try:
        candidates = list_candidates(postcode, api_key)
    except requests.RequestException as e:
        logger.warning("Address lookup failed for %s: %s", postcode, e)
        return None
    except ValueError as e:
        # Body was not JSON
        logger.warning("Address lookup returned unreadable data for %s: %s", postcode, e)
        return None

    match = find_matching_candidate(candidates, house_identifier)
    if match is None:
        logger.info("No address matching %r in %s (%d candidates)", house_identifier, postcode, len(candidates))
        return None
    logger.info("Resolved %r %s to UPRN %s", house_identifier, postcode, match.uprn)
    return match.uprn


def address_candidates_for_display(postcode: str, api_key: str | None = None) -> list[dict]:
    """
    Address picker data. On total failure a single sentinel entry with an
    empty UPRN carries the reason.
    """
    try:
        candidates = list_candidates(postcode, api_key)
    except UpstreamAuthError as e:
        return [{"uprn": "", "address": f"Error: {e.message}"}]
    except (requests.RequestException, ValueError) as e:
        logger.warning("Address listing failed for %s: %s", postcode, e)
        return [{"uprn": "", "address": "Error: address lookup unavailable"}]

    if not candidates:
        return [{"uprn": "", "address": "No addresses found"}]
    return [candidate.to_dict() for candidate in candidates]
