"""
Address parser - splits free-text address input into URL, postcode, UPRN
and whatever house name/number text is left over.

Slots are filled in a fixed order, each match removed from the working text
before the next slot is looked for:

1. URL        - first http(s):// token
2. Postcode   - UK postcode grammar (plus GIR 0AA), upper-cased with one space
3. UPRN       - standalone run of 8-12 digits
4. House id   - the remainder, trimmed of punctuation and whitespace

If neither a postcode nor a UPRN (nor a URL) is found, the whole input is
passed on unchanged as the postcode so the council script can reject it.
"""

import re
import string

from services.binfinder.models import ParsedIntent

URL_RE = re.compile(r"https?://\S+", re.IGNORECASE)
POSTCODE_RE = re.compile(
    r"(?<![A-Z])(GIR\s?0AA|[A-Z]{1,2}\d{1,2}[A-Z]?\s?\d[A-Z]{2})(?![A-Z0-9])",
    re.IGNORECASE,
)
UPRN_RE = re.compile(r"(?<!\d)(\d{8,12})(?!\d)")

_WHITESPACE_RE = re.compile(r"\s+")
_TRIM_CHARS = string.punctuation + string.whitespace


def normalise_postcode(raw: str) -> str:
    """Upper-case and re-space a matched postcode as "OUTWARD INWARD"."""
    compact = _WHITESPACE_RE.sub("", raw).upper()
    return f"{compact[:-3]} {compact[-3:]}"


def _take(pattern: re.Pattern, text: str) -> tuple[str | None, str]:
    """Return (first match, text with that match cut out)."""
    match = pattern.search(text)
    if not match:
        return None, text
    return match.group(0), f"{text[:match.start()]} {text[match.end():]}"


def parse_address(text: str) -> ParsedIntent:
    """Classify free-text input. Never raises."""
    raw_text = text or ""
    working = raw_text

    url, working = _take(URL_RE, working)
    if url:
        url = url.rstrip(",;")

    postcode, working = _take(POSTCODE_RE, working)
    if postcode:
        postcode = normalise_postcode(postcode)

    uprn, working = _take(UPRN_RE, working)

    house_identifier = _WHITESPACE_RE.sub(" ", working).strip(_TRIM_CHARS)

    if not (url or postcode or uprn):
        return ParsedIntent(
            raw_text=raw_text,
            postcode=raw_text,
            postcode_is_fallback=True,
        )

    return ParsedIntent(
        raw_text=raw_text,
        url=url,
        postcode=postcode,
        uprn=uprn,
        house_identifier=house_identifier,
    )
