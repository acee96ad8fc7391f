"""
Query predicates for the ProviderSearch entity store.

A predicate is a callable taking a flattened collection DataFrame and
returning a boolean Series aligned with it. Predicates compose with
``all_of`` / ``any_of`` the way document-store filters compose with
$and / $or.
"""

import logging
from typing import Any, Callable, Iterable, List, Optional
import pandas as pd

logger = logging.getLogger(__name__)

Predicate = Callable[[pd.DataFrame], pd.Series]


def column_values(df: pd.DataFrame, path: str) -> pd.Series:
    """
    Resolve a dotted field path against a flattened DataFrame.

    Paths that reach inside a list of sub-documents (``testsOffered.name``)
    resolve to a Series of lists.

    Args:
        df: Flattened collection DataFrame
        path: Dotted field path

    Returns:
        Series of raw values, None where the field is absent
    """
    if path in df.columns:
        return df[path]

    parts = path.split(".")
    for split_at in range(len(parts) - 1, 0, -1):
        head = ".".join(parts[:split_at])
        if head in df.columns:
            rest = parts[split_at:]
            return df[head].map(lambda value: _dig(value, rest))

    return pd.Series([None] * len(df), index=df.index, dtype=object)


def _dig(value: Any, parts: List[str]) -> Any:
    if not parts:
        return value
    if isinstance(value, dict):
        return _dig(value.get(parts[0]), parts[1:])
    if isinstance(value, (list, tuple)):
        found = []
        for item in value:
            sub = _dig(item, parts)
            if isinstance(sub, list):
                found.extend(sub)
            elif sub is not None:
                found.append(sub)
        return found
    return None


def _contains_text(value: Any, needle: str) -> bool:
    if isinstance(value, str):
        return needle in value.lower()
    if isinstance(value, (list, tuple)):
        return any(isinstance(item, str) and needle in item.lower() for item in value)
    return False


def always() -> Predicate:
    """Predicate matching every row."""
    return lambda df: pd.Series(True, index=df.index, dtype=bool)


def never() -> Predicate:
    """Predicate matching no row."""
    return lambda df: pd.Series(False, index=df.index, dtype=bool)


def is_active() -> Predicate:
    """Active entities only. A missing flag counts as active."""
    def predicate(df: pd.DataFrame) -> pd.Series:
        if "isActive" not in df.columns:
            return pd.Series(True, index=df.index, dtype=bool)
        return df["isActive"].map(_truthy_flag).astype(bool)
    return predicate


def _truthy_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("false", "0", "no")
    if value is None:
        return True
    try:
        if pd.isna(value):
            return True
    except (TypeError, ValueError):
        pass
    return bool(value)


def contains(path: str, text: str) -> Predicate:
    """Case-insensitive substring match on a field (or any element of a list field)."""
    needle = text.lower()

    def predicate(df: pd.DataFrame) -> pd.Series:
        return column_values(df, path).map(lambda v: _contains_text(v, needle)).astype(bool)
    return predicate


def equals(path: str, value: Any) -> Predicate:
    def predicate(df: pd.DataFrame) -> pd.Series:
        return column_values(df, path).map(lambda v: v == value).astype(bool)
    return predicate


def is_in(path: str, values: Iterable[Any]) -> Predicate:
    """Field value is one of ``values``. An empty value set matches nothing."""
    wanted = set(values)

    def predicate(df: pd.DataFrame) -> pd.Series:
        return column_values(df, path).map(lambda v: _hashable(v) in wanted).astype(bool)
    return predicate


def any_element_in(path: str, values: Iterable[Any]) -> Predicate:
    """For list fields: at least one element is one of ``values``."""
    wanted = set(values)

    def predicate(df: pd.DataFrame) -> pd.Series:
        def check(v: Any) -> bool:
            if isinstance(v, (list, tuple)):
                return any(_hashable(item) in wanted for item in v)
            return _hashable(v) in wanted
        return column_values(df, path).map(check).astype(bool)
    return predicate


def _hashable(value: Any) -> Any:
    try:
        hash(value)
        return value
    except TypeError:
        return None


def in_range(path: str, minimum: Optional[float] = None,
             maximum: Optional[float] = None) -> Predicate:
    """Inclusive numeric range; a None bound is open."""
    def predicate(df: pd.DataFrame) -> pd.Series:
        numbers = pd.to_numeric(column_values(df, path), errors="coerce")
        mask = numbers.notna()
        if minimum is not None:
            mask &= numbers >= minimum
        if maximum is not None:
            mask &= numbers <= maximum
        return mask.astype(bool)
    return predicate


def all_of(*predicates: Optional[Predicate]) -> Predicate:
    """Logical AND. None entries are skipped."""
    active = [p for p in predicates if p is not None]

    def predicate(df: pd.DataFrame) -> pd.Series:
        mask = pd.Series(True, index=df.index, dtype=bool)
        for p in active:
            mask &= p(df)
        return mask
    return predicate


def any_of(*predicates: Optional[Predicate]) -> Predicate:
    """Logical OR. None entries are skipped; no predicates matches nothing."""
    active = [p for p in predicates if p is not None]

    def predicate(df: pd.DataFrame) -> pd.Series:
        mask = pd.Series(False, index=df.index, dtype=bool)
        for p in active:
            mask |= p(df)
        return mask
    return predicate


def matches_tokens(paths: Iterable[str], query: Optional[str]) -> Predicate:
    """
    Store-side form of the token matcher: any whitespace token of ``query``
    is a substring of any of ``paths``. An empty query matches everything.
    """
    tokens = (query or "").lower().split()
    if not tokens:
        return always()
    paths = list(paths)
    return any_of(*[contains(path, token) for token in tokens for path in paths])
