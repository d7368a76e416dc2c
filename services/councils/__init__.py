"""
Council scripts, keyed by council id.
"""

from services.councils import wiltshire_council

COUNCILS = {
    "WiltshireCouncil": wiltshire_council.CouncilClass,
}


def get_council_class(council_id: str):
    try:
        return COUNCILS[council_id]
    except KeyError:
        raise ValueError(f"Council not found: {council_id}") from None
