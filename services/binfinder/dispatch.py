"""
Dispatch builder - decides how a parsed request is sent to a council source.

Council-specific quirks live in COUNCIL_OVERRIDES rather than in the
decision logic below.
"""

import re
from dataclasses import dataclass

import config
from services.binfinder.errors import InputError
from services.binfinder.models import DispatchPlan, ParsedIntent, Strategy
from services.councils import COUNCILS


@dataclass(frozen=True)
class CouncilOverride:
    # Always used as the script URL; any URL the user typed is ignored.
    default_url: str | None = None
    extra_flags: tuple[str, ...] = ()
    # The council script cannot work from a UPRN alone.
    requires_postcode: bool = False


COUNCIL_OVERRIDES: dict[str, CouncilOverride] = {
    "WiltshireCouncil": CouncilOverride(
        default_url="https://ilambassadorformsprod.azurewebsites.net/wastecollectiondays/index",
        extra_flags=("-s",),
        requires_postcode=True,
    ),
}

_WORD_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def normalise_council_id(council: str) -> str:
    """'Wiltshire Council' and 'WiltshireCouncil' both name the same council."""
    return re.sub(r"\s+", "", council or "")


def humanise_council_id(council_id: str) -> str:
    return _WORD_BOUNDARY_RE.sub(" ", council_id)


def is_standardized_api_council(council_id: str) -> bool:
    return council_id in config.STANDARDIZED_API_COUNCILS


def known_council_ids() -> list[str]:
    return sorted(set(COUNCILS) | set(config.STANDARDIZED_API_COUNCILS))


def list_council_names() -> list[str]:
    """Known councils, alphabetical, in display form."""
    return [humanise_council_id(council_id) for council_id in known_council_ids()]


def ensure_known_council(council_id: str) -> None:
    if council_id not in known_council_ids():
        raise InputError(
            f"Unknown council: {council_id or '(none)'}",
            hint="Pick a council from the council list.",
        )


def needs_address_resolution(intent: ParsedIntent) -> bool:
    return (
        not intent.uprn
        and not intent.postcode_is_fallback
        and bool(intent.postcode)
        and bool(intent.house_identifier)
    )


def build_plan(
    intent: ParsedIntent, council_id: str, resolved_uprn: str | None = None
) -> DispatchPlan:
    """
    Build the invocation for one request.

    Raises InputError when the request cannot be served by the council as given.
    """
    ensure_known_council(council_id)

    if is_standardized_api_council(council_id):
        return _standardized_api_plan(intent, council_id, resolved_uprn)

    override = COUNCIL_OVERRIDES.get(council_id, CouncilOverride())
    used_placeholder = False

    if intent.uprn:
        postcode = intent.postcode
        if not postcode:
            if override.requires_postcode:
                raise InputError(
                    "This council needs your postcode as well as the UPRN.",
                    hint=f"Add your postcode after the UPRN, e.g. '{intent.uprn} SN8 1RA'.",
                )
            postcode = config.PLACEHOLDER_POSTCODE
            used_placeholder = True
        identifier_args = (("-u", intent.uprn), ("-p", postcode))
    elif resolved_uprn and intent.postcode:
        identifier_args = (("-u", resolved_uprn), ("-p", intent.postcode))
    elif intent.postcode_is_fallback:
        identifier_args = (("-p", intent.raw_text),)
    elif intent.postcode and intent.house_identifier:
        identifier_args = (("-p", intent.postcode), ("-n", intent.house_identifier))
    elif intent.postcode:
        identifier_args = (("-p", intent.postcode),)
    else:
        identifier_args = ()

    return DispatchPlan(
        strategy=Strategy.GENERIC_ADAPTER,
        council_id=council_id,
        target_url=override.default_url or intent.url,
        identifier_args=identifier_args,
        extra_flags=override.extra_flags,
        used_placeholder_postcode=used_placeholder,
    )


def _standardized_api_plan(
    intent: ParsedIntent, council_id: str, resolved_uprn: str | None
) -> DispatchPlan:
    uprn = intent.uprn or resolved_uprn
    if not (intent.url and uprn):
        raise InputError(
            "This council needs both its waste API address and your UPRN.",
            hint="Enter the council's waste API URL followed by your UPRN, "
            "e.g. 'https://waste.example.gov.uk/api 100120992798'.",
        )
    return DispatchPlan(
        strategy=Strategy.STANDARDIZED_API,
        council_id=council_id,
        target_url=intent.url,
        identifier_args=(("-u", uprn),),
    )
