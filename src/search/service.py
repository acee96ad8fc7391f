"""
Directory search service for ProviderSearch.

Single entry point for the calling layer: full search, typeahead
suggestions and the known locations list.
"""

import logging
from typing import Any, Dict, List, Optional

from ..match.category_resolver import CategoryResolver
from ..match.entity_matchers import create_matchers
from ..store.entity_store import EntityStore
from .aggregator import AggregateResponse, ResultAggregator
from .config import get_default_search_config, merge_configs
from .errors import SearchError
from .locations import list_known_locations
from .planner import QueryPlanner
from .request import SearchRequest
from .typeahead import Suggestion, TypeaheadService

logger = logging.getLogger(__name__)


class DirectoryService:
    """
    Facade over the search core.

    Stateless apart from configuration: every call reads the store afresh
    and nothing is written back.
    """

    def __init__(self, store: EntityStore, config: Optional[Dict[str, Any]] = None):
        """
        Initialize service.

        Args:
            store: Entity store holding provider and category collections
            config: Search configuration (merged over defaults)
        """
        self.config = merge_configs(get_default_search_config(), config or {})
        self.search_config = self.config.get("search", {})
        self.store = store

        self.resolver = CategoryResolver(store)
        self.matchers = create_matchers(store, self.resolver, self.config)
        self.aggregator = ResultAggregator(
            self.matchers, self.search_config, QueryPlanner(self.search_config)
        )
        self.typeahead = TypeaheadService(store, self.resolver, self.config.get("typeahead", {}))

        logger.info("Initialized DirectoryService")

    def search(self, params: Dict[str, Any], role: Optional[str] = None) -> AggregateResponse:
        """
        Run a federated search.

        Args:
            params: Raw request parameters
            role: Pre-verified caller role, if any

        Returns:
            Aggregate response

        Raises:
            InvalidRequest: For unusable parameters
            StoreUnavailable: If the store cannot be queried
        """
        request = SearchRequest.from_params(params, self.search_config, role=role)
        return self.aggregator.aggregate(request)

    def suggest(self, partial_query: Optional[str] = None,
                kind: Optional[str] = None) -> List[Suggestion]:
        return self.typeahead.suggest(partial_query, kind)

    def list_known_locations(self) -> List[str]:
        return list_known_locations(self.store)


def error_response(error: SearchError) -> Dict[str, Any]:
    """
    User-facing envelope for a search error.

    Store details stay in the logs; callers only see the generic message.

    Args:
        error: Raised search error

    Returns:
        Response dictionary
    """
    body = {"success": False, "message": error.user_message}
    parameter = getattr(error, "parameter", None)
    if parameter:
        body["parameter"] = parameter
        body["detail"] = str(error)
    return body
