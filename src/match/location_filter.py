"""
Location filter builder for ProviderSearch.

Builds the place-name predicate for a kind from its own location fields
(see ``src.search.kinds.KIND_TABLE``).
"""

import logging
from typing import Optional, Sequence

from ..store.predicates import Predicate, always, any_of, contains

logger = logging.getLogger(__name__)


def build_location_predicate(place: Optional[str], field_set: Sequence[str]) -> Predicate:
    """
    Build a place-name predicate.

    Args:
        place: Free-text place name (city, state, locality)
        field_set: Location fields of the entity kind

    Returns:
        Predicate satisfied when any field contains ``place``
        case-insensitively; always true for a blank place
    """
    if place is None or not str(place).strip():
        return always()

    place = str(place).strip()
    return any_of(*[contains(field, place) for field in field_set])
