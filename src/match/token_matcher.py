"""
Token matcher for ProviderSearch.

In-memory text filter used after index-backed queries that cannot express
text matching themselves (proximity-sorted candidates). Any query token
found in any field is a match: recall is preferred over precision.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


def tokenize(query: Optional[str]) -> List[str]:
    """
    Split a query into lowercase whitespace tokens.

    Args:
        query: Raw query text

    Returns:
        List of tokens, empty for a blank query
    """
    if not query or not isinstance(query, str):
        return []
    return query.lower().split()


def matches(query: Optional[str], fields: Sequence[Any]) -> bool:
    """
    Decide whether any query token is a substring of any field.

    Matching is case-insensitive. Non-string fields are skipped. A blank
    query always matches. Tokens of any length participate.

    Args:
        query: Raw query text
        fields: Field values to search

    Returns:
        True on a match
    """
    tokens = tokenize(query)
    if not tokens:
        return True

    values = [value.lower() for value in fields if isinstance(value, str)]
    return any(token in value for token in tokens for value in values)


def record_field_values(record: Dict[str, Any], path: str) -> List[Any]:
    """
    Read a dotted field path from a record.

    Handles both nested documents and records whose keys are already
    flattened (``"address.city"``). Lists along the path are expanded, so
    ``testsOffered.name`` yields every test name.

    Args:
        record: Entity record
        path: Dotted field path

    Returns:
        Leaf values found (possibly empty)
    """
    if path in record:
        return _as_list(record[path])

    parts = path.split(".")
    for split_at in range(len(parts) - 1, 0, -1):
        head = ".".join(parts[:split_at])
        if head in record:
            return _collect(record[head], parts[split_at:])
    return []


def _collect(value: Any, parts: List[str]) -> List[Any]:
    if not parts:
        return _as_list(value)
    if isinstance(value, dict):
        return _collect(value.get(parts[0]), parts[1:])
    if isinstance(value, (list, tuple)):
        found = []
        for item in value:
            found.extend(_collect(item, parts))
        return found
    return []


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def record_matches(query: Optional[str], record: Dict[str, Any], paths: Sequence[str]) -> bool:
    """Apply ``matches`` to the values of ``paths`` in ``record``."""
    fields = []
    for path in paths:
        fields.extend(record_field_values(record, path))
    return matches(query, fields)
