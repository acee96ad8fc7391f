"""
Typeahead suggestions for ProviderSearch.

Cheap, low-precision lookups for a search box: a few names per kind,
ordered by fuzzy closeness to what has been typed so far.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional
from thefuzz import fuzz

from ..match.category_resolver import ALIAS_FIELDS, CategoryResolver
from ..match.token_matcher import record_field_values
from ..store.entity_store import EntityStore
from ..store.predicates import all_of, is_active, matches_tokens
from .errors import InvalidRequest
from .kinds import ALL_KINDS, CATEGORY_COLLECTION, KIND_TABLE, EntityKind

logger = logging.getLogger(__name__)

DEPARTMENT_SELECTOR = "departments"

# Order in which kinds contribute before the overall cap applies
SUGGESTION_ORDER = [
    EntityKind.PRACTITIONER.value,
    EntityKind.CLINIC.value,
    DEPARTMENT_SELECTOR,
    EntityKind.DIAGNOSTIC_LAB.value,
    EntityKind.PHARMACY.value,
    EntityKind.AMBULANCE.value,
]


@dataclass
class Suggestion:
    type: str
    text: str
    subtext: str
    id: Any

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TypeaheadService:
    """
    Builds suggestion lists.

    With no query the list is the default set of active categories so an
    empty search box still offers something to pick.
    """

    def __init__(self, store: EntityStore, resolver: CategoryResolver,
                 config: Optional[Dict] = None):
        """
        Initialize typeahead service.

        Args:
            store: Entity store
            resolver: Category resolver
            config: ``typeahead`` configuration section
        """
        config = config or {}
        self.store = store
        self.resolver = resolver
        self.max_suggestions = int(config.get("max_suggestions", 15))
        self.per_kind_limit = int(config.get("per_kind_limit", 10))
        self.default_category_limit = int(config.get("default_category_limit", 10))

    def suggest(self, partial_query: Optional[str] = None,
                kind: Optional[str] = None) -> List[Suggestion]:
        """
        Suggest entities for a partial query.

        Args:
            partial_query: Text typed so far
            kind: ``all`` or one selector (``doctors``, ``departments``, ...)

        Returns:
            At most ``max_suggestions`` suggestions

        Raises:
            InvalidRequest: For an unknown kind selector
            StoreUnavailable: If the store cannot be queried
        """
        query = (partial_query or "").strip()
        if not query:
            return self._default_suggestions()

        selector = (kind or ALL_KINDS).strip().lower() or ALL_KINDS
        if selector != ALL_KINDS and selector not in SUGGESTION_ORDER:
            raise InvalidRequest(f"Unknown suggestion type '{kind}'", parameter="type")

        suggestions: List[Suggestion] = []
        for name in SUGGESTION_ORDER:
            if selector not in (ALL_KINDS, name):
                continue
            if name == DEPARTMENT_SELECTOR:
                suggestions.extend(self._category_suggestions(query))
            else:
                suggestions.extend(self._kind_suggestions(EntityKind(name), query))

        logger.debug(f"Typeahead '{query}' produced {len(suggestions)} suggestions")
        return suggestions[:self.max_suggestions]

    def _default_suggestions(self) -> List[Suggestion]:
        return [self._category_suggestion(category)
                for category in self.resolver.active_categories(self.default_category_limit)]

    def _category_suggestion(self, category: Dict[str, Any]) -> Suggestion:
        return Suggestion(
            type="department",
            text=category.get("heading") or category.get("name") or "",
            subtext=category.get("specialization") or "Department",
            id=category.get("id"),
        )

    def _category_suggestions(self, query: str) -> List[Suggestion]:
        categories = self.store.find(
            CATEGORY_COLLECTION,
            where=all_of(is_active(), matches_tokens(ALIAS_FIELDS, query)),
            sort=[("name", True)],
            limit=self.per_kind_limit,
        )
        return self._rank(query, [self._category_suggestion(c) for c in categories])

    def _kind_suggestions(self, kind: EntityKind, query: str) -> List[Suggestion]:
        spec = KIND_TABLE[kind]
        records = self.store.find(
            spec.collection,
            where=all_of(is_active(), matches_tokens(spec.suggest_fields, query)),
            sort=[("name", True)],
            limit=self.per_kind_limit,
        )

        suggestions = []
        for record in records:
            name = record.get("name") or ""
            text = f"Dr. {name}" if kind == EntityKind.PRACTITIONER else name
            suggestions.append(Suggestion(
                type=spec.suggestion_type,
                text=text,
                subtext=self._subtext(record, spec.subtext_fields, spec.suggestion_type),
                id=record.get("id"),
            ))
        return self._rank(query, suggestions)

    @staticmethod
    def _subtext(record: Dict[str, Any], fields, fallback: str) -> str:
        for field in fields:
            for value in record_field_values(record, field):
                if isinstance(value, str) and value.strip():
                    return value
        return fallback.capitalize()

    @staticmethod
    def _rank(query: str, suggestions: List[Suggestion]) -> List[Suggestion]:
        # Stable sort keeps name order among equally close suggestions
        return sorted(suggestions,
                      key=lambda s: fuzz.partial_ratio(query.lower(), s.text.lower()),
                      reverse=True)
