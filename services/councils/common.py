"""
Shared pieces for council scripts: the base class every council implements
and the input checks they use.
"""

import re
from abc import ABC, abstractmethod

import requests

import config

date_format = "%d/%m/%Y"

_POSTCODE_RE = re.compile(r"^(GIR ?0AA|[A-Z]{1,2}\d{1,2}[A-Z]? ?\d[A-Z]{2})$", re.IGNORECASE)
_UPRN_RE = re.compile(r"^\d{1,12}$")
_URL_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)

DEFAULT_HEADERS = {
    "Accept": "*/*",
    "Accept-Language": "en-GB,en;q=0.9",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
}


def check_postcode(postcode) -> None:
    if not postcode or not _POSTCODE_RE.match(str(postcode).strip()):
        raise ValueError(f"Invalid postcode: {postcode!r}")


def check_uprn(uprn) -> None:
    if uprn is None or not _UPRN_RE.match(str(uprn).strip()):
        raise ValueError(f"Invalid UPRN: {uprn!r}")


class AbstractGetBinDataClass(ABC):
    """
    Template for council scripts: optionally download the council page, then
    hand it to parse_data(), which returns {"bins": [{"type", "collectionDate"}]}.
    """

    def get_and_parse_data(self, url: str | None, **kwargs) -> dict:
        page = ""
        if url and not kwargs.get("skip_get_url"):
            page = self.get_data(url)
        return self.parse_data(page, url=url, **kwargs)

    def get_data(self, url: str) -> str:
        # Anything without http(s):// fails as MissingSchema, never as a request.
        if not _URL_SCHEME_RE.match(url.strip()):
            raise requests.exceptions.MissingSchema(f"Invalid URL {url!r}: No scheme supplied.")
        response = requests.get(url, headers=DEFAULT_HEADERS, timeout=config.COUNCIL_HTTP_TIMEOUT_SECONDS)
        response.raise_for_status()
        return response.text

    @abstractmethod
    def parse_data(self, page: str, **kwargs) -> dict:
        """Extract bins from the page (or fetch them however the council needs)."""
