"""
Query planner for ProviderSearch.

Classifies a request by which inputs it carries and picks the matching
strategy every per-kind matcher runs.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from ..store.geo import GeoPoint
from .request import SearchRequest

logger = logging.getLogger(__name__)


class Strategy(Enum):
    GEO_TEXT = "geo_text"
    TEXT = "text"
    GEO = "geo"
    FILTER = "filter"


@dataclass(frozen=True)
class SearchPlan:
    strategy: Strategy
    query: str
    geo: Optional[GeoPoint]
    place: Optional[str]
    max_distance_km: float
    page: int
    page_size: int
    overfetch_factor: int = 5

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def candidate_limit(self) -> int:
        """Candidates fetched by the geo+text strategy before token filtering."""
        return self.overfetch_factor * self.page_size


class QueryPlanner:
    """
    Selects a matching strategy from the shape of a request.

    Free text and coordinates together give GEO_TEXT; either alone gives
    TEXT or GEO; neither gives FILTER. A place name never changes the
    strategy, it only adds a location predicate.
    """

    def __init__(self, config: Optional[Dict] = None):
        config = config or {}
        self.overfetch_factor = int(config.get("geo_text_overfetch_factor", 5))

    def classify(self, has_text: bool, has_geo: bool) -> Strategy:
        if has_geo and has_text:
            return Strategy.GEO_TEXT
        if has_text:
            return Strategy.TEXT
        if has_geo:
            return Strategy.GEO
        return Strategy.FILTER

    def plan(self, request: SearchRequest) -> SearchPlan:
        strategy = self.classify(request.has_text, request.geo is not None)
        logger.debug(f"Planned {strategy.value} search for query='{request.query}' "
                     f"geo={request.geo} place={request.place}")
        return SearchPlan(
            strategy=strategy,
            query=request.query.strip(),
            geo=request.geo,
            place=request.place,
            max_distance_km=request.max_distance_km,
            page=request.page,
            page_size=request.page_size,
            overfetch_factor=self.overfetch_factor,
        )
