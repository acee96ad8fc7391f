"""
Per-kind matchers for ProviderSearch.

Each matcher runs one planned strategy against one provider kind:

* GEO_TEXT: proximity query over-fetching candidates, then the token
  matcher, then truncation to the page. Proximity ordering and text
  filtering cannot run in one indexed query, so this is two-phase.
* TEXT: full-text index when the kind enables it, otherwise (or when the
  index finds nothing) token predicates over the kind's text fields,
  ordered by name.
* GEO: proximity query sorted by distance.
* FILTER: plain filtered query in the kind's default order.

Kinds differ in the extra links they follow: practitioners also match
through their category, clinics through the practitioners attached to them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type

from ..search.filters import AttributeFilters
from ..search.kinds import KIND_TABLE, EntityKind, KindSpec
from ..search.planner import SearchPlan, Strategy
from ..store.entity_store import EntityStore
from ..store.predicates import (
    Predicate, all_of, any_element_in, any_of, equals, is_active, is_in,
    matches_tokens, never,
)
from .category_resolver import CategoryResolver
from .location_filter import build_location_predicate
from .token_matcher import record_field_values, record_matches, tokenize

logger = logging.getLogger(__name__)

NAME_ORDER = [("name", True)]


@dataclass
class MatchPage:
    """One kind's page of results."""

    kind: EntityKind
    items: List[Dict[str, Any]]
    considered_count: int
    strategy: Strategy
    used_text_index: bool = False


@dataclass
class TextMatch:
    """The two forms of one text query: store-side and in-memory."""

    predicate: Predicate
    record_test: Callable[[Dict[str, Any]], bool]


class EntityMatcher:
    """
    Base matcher. Subclasses set ``kind`` and override the hooks
    ``build_filter``, ``build_text_match`` and ``present`` where their kind
    differs.
    """

    kind: EntityKind = None

    def __init__(self, store: EntityStore, resolver: CategoryResolver,
                 config: Optional[Dict] = None):
        """
        Initialize matcher.

        Args:
            store: Entity store
            resolver: Category resolver
            config: Full search configuration
        """
        self.spec: KindSpec = KIND_TABLE[self.kind]
        self.store = store
        self.resolver = resolver

        overrides = ((config or {}).get("kinds") or {}).get(self.spec.selector) or {}
        self.use_text_index = bool(overrides.get("use_text_index", self.spec.use_text_index))

    @property
    def collection(self) -> str:
        return self.spec.collection

    def build_filter(self, filters: AttributeFilters) -> Predicate:
        """Active flag plus the declared filters this kind supports."""
        predicates = [is_active()]
        if filters.rating and self.spec.rating_field:
            predicates.append(filters.rating.to_predicate(self.spec.rating_field))
        return all_of(*predicates)

    def build_text_match(self, query: str) -> TextMatch:
        fields = self.spec.text_fields
        return TextMatch(
            predicate=matches_tokens(fields, query),
            record_test=lambda record: record_matches(query, record, fields),
        )

    def present(self, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Strip fields that are never returned by search."""
        hidden = set(self.spec.hidden_fields)
        return [{key: value for key, value in item.items() if key not in hidden}
                for item in items]

    def search(self, plan: SearchPlan, filters: AttributeFilters) -> MatchPage:
        """
        Run the planned strategy for this kind.

        Args:
            plan: Planned search
            filters: Parsed attribute filters

        Returns:
            MatchPage with at most ``plan.page_size`` items

        Raises:
            StoreUnavailable: If the store cannot be queried
        """
        strategy = plan.strategy
        if self.spec.coordinates_field is None and strategy in (Strategy.GEO_TEXT, Strategy.GEO):
            strategy = Strategy.TEXT if strategy == Strategy.GEO_TEXT else Strategy.FILTER
            logger.debug(f"{self.spec.selector} has no coordinates, using {strategy.value}")

        where = all_of(
            self.build_filter(filters),
            build_location_predicate(plan.place, self.spec.location_fields),
        )

        used_index = False
        if strategy == Strategy.GEO_TEXT:
            items, considered = self._geo_text(plan, where)
        elif strategy == Strategy.TEXT:
            items, considered, used_index = self._text(plan, where)
        elif strategy == Strategy.GEO:
            items, considered = self._geo(plan, where)
        else:
            items, considered = self._filter_only(plan, where)

        logger.debug(f"{self.spec.selector}: {strategy.value} returned {len(items)} "
                     f"of {considered} considered")
        return MatchPage(
            kind=self.kind,
            items=self.present(items),
            considered_count=considered,
            strategy=strategy,
            used_text_index=used_index,
        )

    def _geo_text(self, plan: SearchPlan, where: Predicate):
        candidates = self.store.near(
            self.collection, plan.geo, self.spec.coordinates_field,
            plan.max_distance_km, where=where, limit=plan.candidate_limit,
        )
        text_match = self.build_text_match(plan.query)
        matched = [candidate for candidate in candidates if text_match.record_test(candidate)]
        return matched[plan.skip:plan.skip + plan.page_size], len(candidates)

    def _text(self, plan: SearchPlan, where: Predicate):
        hits = self.try_indexed_text_search(plan, where) if self.use_text_index else None
        if hits:
            return hits[plan.skip:plan.skip + plan.page_size], len(hits), True

        if hits is None:
            logger.debug(f"{self.spec.selector}: text index unavailable, using token fallback")
        else:
            logger.debug(f"{self.spec.selector}: text index found nothing, using token fallback")
        items = self.token_fallback(plan, where)
        return items, len(items), False

    def try_indexed_text_search(self, plan: SearchPlan,
                                where: Predicate) -> Optional[List[Dict[str, Any]]]:
        """
        Query the kind's full-text index.

        Returns:
            Hits ordered by text score then name, an empty list when the
            index matched nothing, or None when no index exists
        """
        if not self.store.has_text_index(self.collection):
            return None
        return self.store.text_search(self.collection, plan.query, where=where, sort=NAME_ORDER)

    def token_fallback(self, plan: SearchPlan, where: Predicate) -> List[Dict[str, Any]]:
        text_match = self.build_text_match(plan.query)
        return self.store.find(
            self.collection, where=all_of(where, text_match.predicate),
            sort=NAME_ORDER, skip=plan.skip, limit=plan.page_size,
        )

    def _geo(self, plan: SearchPlan, where: Predicate):
        items = self.store.near(
            self.collection, plan.geo, self.spec.coordinates_field,
            plan.max_distance_km, where=where, skip=plan.skip, limit=plan.page_size,
        )
        return items, len(items)

    def _filter_only(self, plan: SearchPlan, where: Predicate):
        items = self.store.find(
            self.collection, where=where, sort=list(self.spec.default_sort),
            skip=plan.skip, limit=plan.page_size,
        )
        return items, len(items)


class PractitionerMatcher(EntityMatcher):
    """Practitioners: category-aware text matching and clinical filters."""

    kind = EntityKind.PRACTITIONER

    def build_filter(self, filters: AttributeFilters) -> Predicate:
        predicates = [super().build_filter(filters)]

        if filters.specialization:
            predicates.append(equals("specialization", filters.specialization))

        if filters.category:
            category_ids = self.resolver.resolve(filters.category)
            # An unknown category must empty the result, not widen it
            predicates.append(is_in("department", category_ids) if category_ids else never())

        if filters.experience:
            predicates.append(filters.experience.to_predicate("experience"))
        if filters.fee:
            predicates.append(filters.fee.to_predicate("consultationFee"))

        return all_of(*predicates)

    def build_text_match(self, query: str) -> TextMatch:
        base = super().build_text_match(query)
        category_ids = self.resolver.resolve_many(tokenize(query))
        if not category_ids:
            return base

        wanted = set(category_ids)

        def record_test(record: Dict[str, Any]) -> bool:
            if base.record_test(record):
                return True
            return any(value in wanted for value in record_field_values(record, "department")
                       if not isinstance(value, dict))

        return TextMatch(
            predicate=any_of(base.predicate, is_in("department", category_ids)),
            record_test=record_test,
        )

    CLINIC_FIELDS = ("name", "address", "place", "state", "city")

    def present(self, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Populate the category and clinic references of each practitioner."""
        items = super().present(items)
        self._populate_departments(items)
        self._populate_clinics(items)
        return items

    def _populate_departments(self, items: List[Dict[str, Any]]) -> None:
        refs = [item.get("department") for item in items
                if item.get("department") is not None and not isinstance(item.get("department"), dict)]
        if not refs:
            return

        departments = self.resolver.describe(refs)
        for item in items:
            ref = item.get("department")
            if not isinstance(ref, dict) and ref in departments:
                item["department"] = departments[ref]

    def _populate_clinics(self, items: List[Dict[str, Any]]) -> None:
        refs = set()
        for item in items:
            for detail in _clinic_details(item):
                ref = detail.get("clinic")
                if ref is not None and not isinstance(ref, dict):
                    refs.add(ref)
        if not refs:
            return

        clinic_spec = KIND_TABLE[EntityKind.CLINIC]
        found = self.store.find(clinic_spec.collection, where=is_in("id", refs))
        clinics = {
            clinic["id"]: dict({"id": clinic["id"]},
                               **{field: clinic.get(field) for field in self.CLINIC_FIELDS})
            for clinic in found
        }

        for item in items:
            details = _clinic_details(item)
            if not details:
                continue
            populated = []
            for detail in details:
                ref = detail.get("clinic")
                detail = dict(detail)
                if ref is not None and not isinstance(ref, dict):
                    # Dangling references populate to None
                    detail["clinic"] = clinics.get(ref)
                populated.append(detail)
            item["clinicDetails"] = populated


def _clinic_details(item: Dict[str, Any]) -> List[Dict[str, Any]]:
    details = item.get("clinicDetails")
    if not isinstance(details, (list, tuple)):
        return []
    return [detail for detail in details if isinstance(detail, dict)]


class ClinicMatcher(EntityMatcher):
    """Clinics: also matched through the practitioners attached to them."""

    kind = EntityKind.CLINIC

    PRACTITIONER_LINK = "doctors.doctor"

    def _matching_practitioner_ids(self, query: str) -> List[Any]:
        practitioners = KIND_TABLE[EntityKind.PRACTITIONER]
        text = matches_tokens(("name", "specialization"), query)
        category_ids = self.resolver.resolve_many(tokenize(query))
        if category_ids:
            text = any_of(text, is_in("department", category_ids))

        found = self.store.find(practitioners.collection, where=all_of(is_active(), text))
        return [record["id"] for record in found if record.get("id") is not None]

    def build_text_match(self, query: str) -> TextMatch:
        base = super().build_text_match(query)
        practitioner_ids = self._matching_practitioner_ids(query)
        if not practitioner_ids:
            return base

        wanted = set(practitioner_ids)

        def record_test(record: Dict[str, Any]) -> bool:
            if base.record_test(record):
                return True
            return any(value in wanted for value in record_field_values(record, self.PRACTITIONER_LINK)
                       if not isinstance(value, dict))

        return TextMatch(
            predicate=any_of(base.predicate, any_element_in(self.PRACTITIONER_LINK, practitioner_ids)),
            record_test=record_test,
        )


class DiagnosticLabMatcher(EntityMatcher):
    kind = EntityKind.DIAGNOSTIC_LAB


class PharmacyMatcher(EntityMatcher):
    kind = EntityKind.PHARMACY


class AmbulanceMatcher(EntityMatcher):
    kind = EntityKind.AMBULANCE


class PatientMatcher(EntityMatcher):
    """Patient directory; only reachable for privileged callers."""

    kind = EntityKind.PATIENT


MATCHER_CLASSES: Dict[EntityKind, Type[EntityMatcher]] = {
    EntityKind.PRACTITIONER: PractitionerMatcher,
    EntityKind.CLINIC: ClinicMatcher,
    EntityKind.DIAGNOSTIC_LAB: DiagnosticLabMatcher,
    EntityKind.PHARMACY: PharmacyMatcher,
    EntityKind.AMBULANCE: AmbulanceMatcher,
    EntityKind.PATIENT: PatientMatcher,
}


def create_matchers(store: EntityStore, resolver: CategoryResolver,
                    config: Optional[Dict] = None) -> Dict[EntityKind, EntityMatcher]:
    """
    Convenience function to build one matcher per kind.

    Args:
        store: Entity store
        resolver: Category resolver
        config: Full search configuration

    Returns:
        Mapping of kind to matcher
    """
    return {kind: matcher_class(store, resolver, config)
            for kind, matcher_class in MATCHER_CLASSES.items()}
