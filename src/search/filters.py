"""
Attribute filters for ProviderSearch.

Parses the ``experience``, ``fee`` and ``rating`` request values into
inclusive numeric ranges. Unparseable values are treated as absent rather
than rejected.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..store.predicates import Predicate, in_range

logger = logging.getLogger(__name__)

_NUMBER = r"\d+(?:\.\d+)?"
_BOUNDED = re.compile(rf"^({_NUMBER})\s*-\s*({_NUMBER})$")
_OPEN_ENDED = re.compile(rf"^({_NUMBER})\s*\+?$")


@dataclass(frozen=True)
class RangeFilter:
    """Inclusive numeric range; ``maximum`` of None means unbounded."""

    minimum: float
    maximum: Optional[float] = None

    def to_predicate(self, path: str) -> Predicate:
        return in_range(path, self.minimum, self.maximum)

    def describe(self) -> str:
        if self.maximum is None:
            return f"{_fmt(self.minimum)}+"
        return f"{_fmt(self.minimum)}-{_fmt(self.maximum)}"


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def parse_range(raw: Any) -> Optional[RangeFilter]:
    """
    Parse a range filter value.

    Accepts ``"min-max"``, ``"N+"`` and a bare ``"N"`` (same as ``"N+"``).

    Args:
        raw: Raw request value

    Returns:
        RangeFilter, or None when the value is empty or malformed
    """
    if raw is None or isinstance(raw, bool):
        return None

    if isinstance(raw, (int, float)):
        if not math.isfinite(raw) or raw < 0:
            return None
        return RangeFilter(minimum=float(raw))

    text = str(raw).strip()
    if not text:
        return None

    match = _BOUNDED.match(text)
    if match:
        minimum, maximum = float(match.group(1)), float(match.group(2))
        if minimum > maximum:
            logger.debug(f"Ignoring inverted range filter '{text}'")
            return None
        return RangeFilter(minimum=minimum, maximum=maximum)

    match = _OPEN_ENDED.match(text)
    if match:
        return RangeFilter(minimum=float(match.group(1)))

    logger.debug(f"Ignoring malformed range filter '{text}'")
    return None


@dataclass(frozen=True)
class AttributeFilters:
    """Declared filters of a search request, already parsed."""

    specialization: Optional[str] = None
    category: Optional[str] = None
    experience: Optional[RangeFilter] = None
    fee: Optional[RangeFilter] = None
    rating: Optional[RangeFilter] = None

    @classmethod
    def from_params(cls, params: Dict[str, Any]) -> "AttributeFilters":
        return cls(
            specialization=_clean(params.get("specialization")),
            category=_clean(params.get("department") or params.get("category")),
            experience=parse_range(params.get("experience")),
            fee=parse_range(params.get("fee")),
            rating=parse_range(params.get("rating")),
        )

    def echo(self) -> Dict[str, Optional[str]]:
        """Filter values as echoed back in the response envelope."""
        return {
            "specialization": self.specialization,
            "department": self.category,
            "experience": self.experience.describe() if self.experience else None,
            "fee": self.fee.describe() if self.fee else None,
            "rating": self.rating.describe() if self.rating else None,
        }


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
