"""
Result aggregator for ProviderSearch.

Runs the selected per-kind matchers concurrently and merges their pages
into one response envelope.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..match.entity_matchers import EntityMatcher, MatchPage
from .errors import StoreUnavailable
from .kinds import KIND_TABLE, EntityKind
from .planner import QueryPlanner, SearchPlan
from .request import SearchRequest

logger = logging.getLogger(__name__)


class SearchStatus(Enum):
    OK = "ok"
    # A well-formed query that matched nothing in any kind
    NO_RESULTS = "no_results"


@dataclass
class AggregateResponse:
    by_kind: Dict[EntityKind, List[Dict[str, Any]]]
    total_count: int
    page: int
    page_size: int
    echoed: Dict[str, Any]
    status: SearchStatus = SearchStatus.OK
    strategy: Optional[str] = None
    unavailable: List[EntityKind] = field(default_factory=list)

    @property
    def no_results(self) -> bool:
        return self.status == SearchStatus.NO_RESULTS

    def to_dict(self) -> Dict[str, Any]:
        """JSON envelope returned to the calling layer."""
        body = {
            "success": True,
            "status": self.status.value,
            "results": {KIND_TABLE[kind].result_key: items for kind, items in self.by_kind.items()},
            "totalResults": self.total_count,
            "page": self.page,
            "limit": self.page_size,
            "query": self.echoed,
        }
        if self.no_results:
            body["message"] = "No results found"
        if self.unavailable:
            body["unavailable"] = [KIND_TABLE[kind].result_key for kind in self.unavailable]
        return body


class ResultAggregator:
    """
    Fan-out/fan-in over the per-kind matchers.

    All selected matchers start together and the aggregator waits for every
    one of them. What happens when one kind fails is a policy choice:
    ``partial_results: false`` fails the whole request with the first
    StoreUnavailable, ``partial_results: true`` drops the failed kinds and
    reports them in ``unavailable``.
    """

    def __init__(self, matchers: Dict[EntityKind, EntityMatcher],
                 config: Optional[Dict] = None,
                 planner: Optional[QueryPlanner] = None):
        """
        Initialize aggregator.

        Args:
            matchers: Matcher per kind
            config: ``search`` configuration section
            planner: Query planner (built from config when omitted)
        """
        config = config or {}
        self.matchers = matchers
        self.planner = planner or QueryPlanner(config)
        self.partial_results = bool(config.get("partial_results", False))
        self.max_workers = max(1, int(config.get("max_workers", len(KIND_TABLE))))

        logger.info(f"Initialized ResultAggregator (partial_results={self.partial_results}, "
                    f"max_workers={self.max_workers})")

    def aggregate(self, request: SearchRequest) -> AggregateResponse:
        """
        Search every requested kind and merge the pages.

        Args:
            request: Parsed search request

        Returns:
            AggregateResponse; ``total_count`` counts the items on this page

        Raises:
            StoreUnavailable: Per the failure policy
        """
        plan = self.planner.plan(request)
        kinds = [kind for kind in request.kinds if kind in self.matchers]
        pages, failures = self._fan_out(kinds, plan, request)

        if failures:
            failed = [kind for kind in kinds if kind in failures]
            if not self.partial_results or len(failed) == len(kinds):
                first = failures[failed[0]]
                logger.error(f"Search failed: {first}")
                raise first
            logger.warning(f"Returning partial results, unavailable: "
                           f"{[kind.value for kind in failed]}")
        else:
            failed = []

        by_kind = {kind: pages[kind].items for kind in kinds if kind in pages}
        total = sum(len(items) for items in by_kind.values())
        status = SearchStatus.NO_RESULTS if total == 0 and not failed else SearchStatus.OK

        logger.info(f"Search '{request.query}' ({plan.strategy.value}) returned {total} results "
                    f"across {len(by_kind)} kinds")

        return AggregateResponse(
            by_kind=by_kind,
            total_count=total,
            page=request.page,
            page_size=request.page_size,
            echoed=self._echo(request),
            status=status,
            strategy=plan.strategy.value,
            unavailable=failed,
        )

    def _fan_out(self, kinds: List[EntityKind], plan: SearchPlan, request: SearchRequest):
        pages: Dict[EntityKind, MatchPage] = {}
        failures: Dict[EntityKind, StoreUnavailable] = {}
        if not kinds:
            return pages, failures

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(kinds))) as executor:
            futures = {
                executor.submit(self.matchers[kind].search, plan, request.filters): kind
                for kind in kinds
            }
            wait(futures)

        for future, kind in futures.items():
            try:
                pages[kind] = future.result()
            except StoreUnavailable as e:
                logger.error(f"{kind.value} search failed: {e}")
                failures[kind] = e

        return pages, failures

    def _echo(self, request: SearchRequest) -> Dict[str, Any]:
        filters = request.filters.echo()
        filters["distance"] = request.max_distance_km
        return {
            "searchTerm": request.query,
            "type": request.selector,
            "location": request.location_label(),
            "filters": filters,
        }
