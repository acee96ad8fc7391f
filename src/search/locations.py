"""
Known locations index for ProviderSearch.

Scans active entities of every public kind and collects the place names
found in their location fields. Built on demand, never stored.
"""

import logging
from typing import List

from ..match.token_matcher import record_field_values
from ..store.entity_store import EntityStore
from ..store.predicates import is_active
from .kinds import KIND_TABLE, public_kinds

logger = logging.getLogger(__name__)


def list_known_locations(store: EntityStore) -> List[str]:
    """
    Collect place names from all public kinds.

    Args:
        store: Entity store

    Returns:
        Sorted, deduplicated, trimmed place strings
    """
    locations = set()

    for kind in public_kinds():
        spec = KIND_TABLE[kind]
        records = store.find(spec.collection, where=is_active())
        for record in records:
            for field in spec.location_fields:
                for value in record_field_values(record, field):
                    if isinstance(value, str) and value.strip():
                        locations.add(value.strip())

    logger.info(f"Collected {len(locations)} known locations")
    return sorted(locations)
