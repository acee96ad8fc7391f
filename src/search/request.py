"""
Search request model for ProviderSearch.

Turns the raw query-string style parameters of the calling layer into a
typed request. Parameter problems the caller must fix raise InvalidRequest;
malformed filter values are dropped instead.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..store.geo import GeoPoint
from .errors import InvalidRequest
from .filters import AttributeFilters
from .kinds import ALL_KINDS, EntityKind, parse_kind_selector

logger = logging.getLogger(__name__)


@dataclass
class SearchRequest:
    query: str = ""
    kinds: List[EntityKind] = field(default_factory=list)
    selector: str = ALL_KINDS
    geo: Optional[GeoPoint] = None
    place: Optional[str] = None
    filters: AttributeFilters = field(default_factory=AttributeFilters)
    max_distance_km: float = 25.0
    page: int = 1
    page_size: int = 20
    role: Optional[str] = None

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def has_text(self) -> bool:
        return bool(self.query.strip())

    def location_label(self) -> Optional[str]:
        if self.place:
            return self.place
        if self.geo:
            return self.geo.label()
        return None

    @classmethod
    def from_params(cls, params: Dict[str, Any], config: Dict[str, Any],
                    role: Optional[str] = None) -> "SearchRequest":
        """
        Build a request from raw parameters.

        Args:
            params: Raw parameters (``q``, ``type``, ``lat``, ``lng``,
                ``city``/``place``, filters, ``distance``, ``page``, ``limit``)
            config: ``search`` configuration section
            role: Pre-verified caller role, if any

        Returns:
            SearchRequest

        Raises:
            InvalidRequest: For unknown types, bad paging or, when the
                configuration forbids it, text combined with geography
        """
        query = str(params.get("q") or params.get("query") or "").strip()
        selector = str(params.get("type") or ALL_KINDS).strip() or ALL_KINDS
        kinds = parse_kind_selector(selector, role)

        geo = GeoPoint.parse(params.get("lng"), params.get("lat"))
        if geo is None and (params.get("lat") not in (None, "") or params.get("lng") not in (None, "")):
            logger.debug("Partial or non-numeric coordinates ignored")

        place = str(params.get("city") or params.get("place") or "").strip() or None

        if query and (geo or place) and config.get("reject_text_with_geography", False):
            raise InvalidRequest("Free-text search cannot be combined with a location",
                                 parameter="q")

        default_distance = float(config.get("max_distance_km", 25))
        max_distance_km = _positive_float(params.get("distance"), default_distance)

        page = _positive_int(params.get("page"), 1, "page")
        page_size = _positive_int(params.get("limit"), int(config.get("default_page_size", 20)), "limit")
        max_page_size = int(config.get("max_page_size", 100))
        if page_size > max_page_size:
            raise InvalidRequest(f"limit must not exceed {max_page_size}", parameter="limit")

        return cls(
            query=query,
            kinds=kinds,
            selector=selector,
            geo=geo,
            place=place,
            filters=AttributeFilters.from_params(params),
            max_distance_km=max_distance_km,
            page=page,
            page_size=page_size,
            role=role,
        )


def _positive_int(raw: Any, default: int, name: str) -> int:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise InvalidRequest(f"{name} must be an integer", parameter=name) from None
    if value < 1:
        raise InvalidRequest(f"{name} must be at least 1", parameter=name)
    return value


def _positive_float(raw: Any, default: float) -> float:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default
