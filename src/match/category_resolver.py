"""
Category resolver for ProviderSearch.

Maps free-text department or specialization names to the category ids
practitioners reference. Categories are matched on any of their name
aliases: ``name`` (``cardiology``), ``heading`` (``Cardiology``) and
``specialization``.
"""

import logging
from typing import Any, Dict, Iterable, List

from ..search.kinds import CATEGORY_COLLECTION
from ..store.entity_store import EntityStore
from ..store.predicates import all_of, any_of, contains, is_active, is_in

logger = logging.getLogger(__name__)

ALIAS_FIELDS = ("name", "heading", "specialization")


class CategoryResolver:
    """
    Resolves category names to ids through the category store.

    Lookups are read-only. An unresolvable name returns an empty list; the
    caller is responsible for turning that into an empty result set.
    """

    def __init__(self, store: EntityStore, collection: str = CATEGORY_COLLECTION):
        self.store = store
        self.collection = collection

    def resolve(self, name: str) -> List[Any]:
        """
        Resolve a name to active category ids.

        Args:
            name: Free-text category name

        Returns:
            Matching category ids (zero, one or many)
        """
        if name is None or not str(name).strip():
            return []

        name = str(name).strip()
        where = all_of(
            is_active(),
            any_of(*[contains(field, name) for field in ALIAS_FIELDS]),
        )
        categories = self.store.find(self.collection, where=where)
        ids = [category["id"] for category in categories if category.get("id") is not None]

        if not ids:
            logger.info(f"No active category matches '{name}'")
        else:
            logger.debug(f"Category '{name}' resolved to {ids}")
        return ids

    def resolve_many(self, names: Iterable[str]) -> List[Any]:
        """Union of ``resolve`` over several names, first-seen order."""
        seen = []
        for name in names:
            for category_id in self.resolve(name):
                if category_id not in seen:
                    seen.append(category_id)
        return seen

    def describe(self, ids: Iterable[Any]) -> Dict[Any, Dict[str, Any]]:
        """
        Look up display names for category ids.

        Args:
            ids: Category ids

        Returns:
            Mapping of id to ``{"id", "name"}``
        """
        wanted = [category_id for category_id in set(ids) if category_id is not None]
        if not wanted:
            return {}

        categories = self.store.find(self.collection, where=is_in("id", wanted))
        return {
            category["id"]: {"id": category["id"], "name": category.get("name")}
            for category in categories
        }

    def active_categories(self, limit: int) -> List[Dict[str, Any]]:
        """Active categories sorted by name, for default suggestions."""
        return self.store.find(self.collection, where=is_active(),
                               sort=[("name", True)], limit=limit)
