"""
Known DATEX II publication variants.

Each variant names the block boundary, the identifier carrier, the two value
elements that get paired and the leaves that are echoed as announcements.
"""

from typing import Dict, List

from .constants import (
    PUBLICATION_TIME,
    SITE_MEASUREMENTS,
    MEASUREMENT_SITE_REFERENCE,
    SPEED,
    VEHICLE_FLOW_RATE,
    MEASUREMENT_SITE_TABLE,
    MEASUREMENT_SITE_RECORD,
    MEASUREMENT_SITE_RECORD_VERSION_TIME,
    LATITUDE,
    LONGITUDE,
    SITE_ID_ATTRIBUTE,
)
from .types import VariantDefinition


SPEED_FLOW = VariantDefinition(
    name="speed-flow",
    block_element=SITE_MEASUREMENTS,
    site_element=MEASUREMENT_SITE_REFERENCE,
    site_attribute=SITE_ID_ATTRIBUTE,
    first_element=SPEED,
    first_kind="float",
    second_element=VEHICLE_FLOW_RATE,
    second_kind="int",
    announcement_elements=(PUBLICATION_TIME,),
    record_fields=("index", "site", "first", "second"),
)

COORDINATES = VariantDefinition(
    name="coordinates",
    block_element=MEASUREMENT_SITE_TABLE,
    site_element=MEASUREMENT_SITE_RECORD,
    site_attribute=SITE_ID_ATTRIBUTE,
    context_element=MEASUREMENT_SITE_RECORD_VERSION_TIME,
    first_element=LATITUDE,
    first_kind="float",
    second_element=LONGITUDE,
    second_kind="float",
    announcement_elements=(PUBLICATION_TIME,),
    record_fields=("site", "context", "first", "second"),
)

VARIANTS: Dict[str, VariantDefinition] = {
    SPEED_FLOW.name: SPEED_FLOW,
    COORDINATES.name: COORDINATES,
}


def get_variant(name: str) -> VariantDefinition:
    """
    Look up a variant by name.

    Raises:
        ValueError: If the name is not registered
    """
    try:
        return VARIANTS[name]
    except KeyError:
        raise ValueError(
            f"variant must be one of {sorted(VARIANTS)}, got: {name}"
        ) from None


def variant_names() -> List[str]:
    return sorted(VARIANTS)
