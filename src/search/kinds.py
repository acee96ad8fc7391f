"""
Per-kind field mapping for ProviderSearch.

Provider kinds were stored by different teams and do not share a schema:
the same logical field (city, coordinates, services) lives under different
names per kind. This table records the mapping explicitly, one row per
kind. Adding a kind means adding a row here and a matcher in
``src.match.entity_matchers``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .errors import InvalidRequest

CATEGORY_COLLECTION = "departments"
ALL_KINDS = "all"


class EntityKind(Enum):
    """Searchable kinds, valued by their request selector."""

    PRACTITIONER = "doctors"
    CLINIC = "clinics"
    DIAGNOSTIC_LAB = "pathology"
    PHARMACY = "pharmacies"
    AMBULANCE = "ambulance"
    PATIENT = "patients"


@dataclass(frozen=True)
class KindSpec:
    kind: EntityKind
    collection: str
    result_key: str
    suggestion_type: str
    text_fields: Tuple[str, ...]
    location_fields: Tuple[str, ...]
    coordinates_field: Optional[str] = None
    # Fields covered by the collection's full-text index
    index_fields: Tuple[str, ...] = ()
    use_text_index: bool = False
    default_sort: Tuple[Tuple[str, bool], ...] = (("name", True),)
    rating_field: Optional[str] = None
    hidden_fields: Tuple[str, ...] = ("reviews", "__v")
    # Only visible to privileged callers
    restricted: bool = False
    suggest_fields: Tuple[str, ...] = ("name",)
    subtext_fields: Tuple[str, ...] = ()

    @property
    def selector(self) -> str:
        return self.kind.value


KIND_TABLE: Dict[EntityKind, KindSpec] = {
    EntityKind.PRACTITIONER: KindSpec(
        kind=EntityKind.PRACTITIONER,
        collection="doctors",
        result_key="doctors",
        suggestion_type="doctor",
        text_fields=("name", "specialization", "bio"),
        location_fields=("address.city", "address.state", "city", "state"),
        coordinates_field="address.location.coordinates",
        index_fields=("name", "specialization", "address.city"),
        default_sort=(("rating.average", False), ("name", True)),
        rating_field="rating.average",
        suggest_fields=("name", "specialization"),
        subtext_fields=("specialization",),
    ),
    EntityKind.CLINIC: KindSpec(
        kind=EntityKind.CLINIC,
        collection="clinics",
        result_key="clinics",
        suggestion_type="clinic",
        text_fields=("name", "services", "servicesOffered"),
        location_fields=("address.city", "address.state", "place", "state"),
        coordinates_field="coordinates",
        index_fields=("name", "services", "address.city"),
        default_sort=(("rating.average", False), ("name", True)),
        rating_field="rating.average",
        subtext_fields=("address.city", "place", "state"),
    ),
    EntityKind.DIAGNOSTIC_LAB: KindSpec(
        kind=EntityKind.DIAGNOSTIC_LAB,
        collection="pathology",
        result_key="pathologies",
        suggestion_type="pathology",
        text_fields=("name", "category", "description", "servicesOffered", "testsOffered.name"),
        location_fields=("place", "state", "address", "city"),
        coordinates_field="coordinates",
        index_fields=("name", "address.city", "servicesOffered", "testsOffered.name"),
        default_sort=(("rating.average", False), ("name", True)),
        rating_field="rating.average",
        suggest_fields=("name", "category"),
        subtext_fields=("category", "place", "state"),
    ),
    EntityKind.PHARMACY: KindSpec(
        kind=EntityKind.PHARMACY,
        collection="pharmacies",
        result_key="pharmacies",
        suggestion_type="pharmacy",
        text_fields=("name", "services", "servicesOffered"),
        location_fields=("address.city", "address.state", "city", "state"),
        coordinates_field="coordinates",
        index_fields=("name", "services", "address.city"),
        use_text_index=True,
        default_sort=(("createdAt", False), ("name", True)),
        rating_field="rating.average",
        hidden_fields=("reviews", "medications", "__v"),
        subtext_fields=("address.city", "state"),
    ),
    EntityKind.AMBULANCE: KindSpec(
        kind=EntityKind.AMBULANCE,
        collection="ambulance",
        result_key="ambulances",
        suggestion_type="ambulance",
        text_fields=("name", "city", "location", "driverName"),
        location_fields=("city", "state", "location"),
        coordinates_field="coordinates",
        index_fields=("name", "city", "location"),
        use_text_index=True,
        default_sort=(("isAvailable", False), ("name", True)),
        suggest_fields=("name", "city", "state"),
        subtext_fields=("city", "state"),
    ),
    EntityKind.PATIENT: KindSpec(
        kind=EntityKind.PATIENT,
        collection="patients",
        result_key="patients",
        suggestion_type="patient",
        text_fields=("firstName", "lastName", "email", "phone"),
        location_fields=("address.city", "address.state"),
        default_sort=(("lastName", True), ("firstName", True)),
        hidden_fields=("password", "medicalHistory", "allergies", "__v"),
        restricted=True,
    ),
}

PRIVILEGED_ROLES = frozenset({"admin", "superuser"})


def get_spec(kind: EntityKind) -> KindSpec:
    return KIND_TABLE[kind]


def public_kinds() -> List[EntityKind]:
    return [kind for kind, spec in KIND_TABLE.items() if not spec.restricted]


def parse_kind_selector(selector: Optional[str], role: Optional[str] = None) -> List[EntityKind]:
    """
    Resolve a ``type`` selector to the kinds to search.

    ``all`` (or nothing) selects every kind the caller may see; otherwise a
    comma-separated list of selectors picks an explicit subset. Restricted
    kinds are dropped for unprivileged callers.

    Args:
        selector: Raw selector value
        role: Pre-verified caller role, if any

    Returns:
        Kinds in table order

    Raises:
        InvalidRequest: If a selector names no known kind
    """
    privileged = role in PRIVILEGED_ROLES

    if selector is None or not str(selector).strip() or str(selector).strip() == ALL_KINDS:
        return [kind for kind, spec in KIND_TABLE.items() if privileged or not spec.restricted]

    wanted = set()
    for raw in str(selector).split(","):
        name = raw.strip().lower()
        if not name:
            continue
        try:
            wanted.add(EntityKind(name))
        except ValueError:
            raise InvalidRequest(f"Unknown search type '{raw.strip()}'", parameter="type")

    return [kind for kind, spec in KIND_TABLE.items()
            if kind in wanted and (privileged or not spec.restricted)]


def text_index_fields() -> Dict[str, List[str]]:
    """Full-text index definition per collection, for building a store."""
    return {spec.collection: list(spec.index_fields)
            for spec in KIND_TABLE.values() if spec.index_fields}
