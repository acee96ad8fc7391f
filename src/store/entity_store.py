"""
Entity store for ProviderSearch.

Read-only query layer over provider collections. Each collection is kept
as its original records plus a flattened pandas DataFrame (dotted column
names, as produced by ``pandas.json_normalize``) that predicates, sorts,
proximity queries and the full-text index run against.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union
import numpy as np
import pandas as pd

from ..search.errors import StoreUnavailable
from .geo import GeoPoint, haversine_km
from .predicates import Predicate, column_values
from .text_index import InvertedTextIndex

logger = logging.getLogger(__name__)

SortSpec = Sequence[Tuple[str, bool]]


class EntityStore:
    """
    Read-only query interface consumed by the matchers.

    Implementations raise StoreUnavailable when the underlying data cannot
    be reached; they never mutate entity state.
    """

    def find(self, collection: str, where: Optional[Predicate] = None,
             sort: Optional[SortSpec] = None, skip: int = 0,
             limit: Optional[int] = None) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def near(self, collection: str, origin: GeoPoint, coordinates_field: str,
             max_distance_km: float, where: Optional[Predicate] = None,
             skip: int = 0, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def text_search(self, collection: str, text: str,
                    where: Optional[Predicate] = None,
                    sort: Optional[SortSpec] = None,
                    limit: Optional[int] = None) -> Optional[List[Dict[str, Any]]]:
        raise NotImplementedError

    def has_text_index(self, collection: str) -> bool:
        return False


class DataFrameEntityStore(EntityStore):
    """
    In-memory EntityStore backed by pandas.

    Security note: patient records are held in the same process as public
    directory data; the search layer decides which collections a caller
    may query.
    """

    def __init__(self, collections: Dict[str, Union[pd.DataFrame, Iterable[Dict[str, Any]]]],
                 text_index_fields: Optional[Dict[str, List[str]]] = None):
        """
        Initialize store with collection data.

        Args:
            collections: Mapping of collection name to records or a DataFrame
            text_index_fields: Mapping of collection name to fields to index
                for full-text search
        """
        self._records: Dict[str, List[Dict[str, Any]]] = {}
        self._frames: Dict[str, pd.DataFrame] = {}
        self._indexes: Dict[str, InvertedTextIndex] = {}

        for name, data in collections.items():
            records = self._to_records(data)
            self._records[name] = records
            self._frames[name] = self._flatten(records)
            logger.info(f"Loaded collection '{name}' with {len(records)} records")

        for name, fields in (text_index_fields or {}).items():
            if name not in self._frames:
                logger.warning(f"Text index requested for unknown collection '{name}'")
                continue
            self._indexes[name] = InvertedTextIndex(self._frames[name], fields)

        logger.info(f"Initialized DataFrameEntityStore with {len(self._frames)} collections")

    @staticmethod
    def _to_records(data: Union[pd.DataFrame, Iterable[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        if isinstance(data, pd.DataFrame):
            cleaned = data.astype(object).where(pd.notna(data), None)
            records = cleaned.to_dict("records")
        else:
            records = [dict(record) for record in data]

        for record in records:
            if record.get("id") is None and record.get("_id") is not None:
                record["id"] = record["_id"]
        return records

    @staticmethod
    def _flatten(records: List[Dict[str, Any]]) -> pd.DataFrame:
        if not records:
            return pd.DataFrame()
        df = pd.json_normalize(records)
        df.index = pd.RangeIndex(len(df))
        return df

    def _frame(self, collection: str) -> pd.DataFrame:
        return self._frames.get(collection, pd.DataFrame())

    def _filtered(self, collection: str, where: Optional[Predicate]) -> pd.DataFrame:
        df = self._frame(collection)
        if df.empty or where is None:
            return df
        return df[where(df)]

    def _materialize(self, collection: str, labels: Iterable[int]) -> List[Dict[str, Any]]:
        records = self._records.get(collection, [])
        return [dict(records[label]) for label in labels]

    def _sorted_labels(self, df: pd.DataFrame, sort: Optional[SortSpec],
                       leading: Optional[pd.Series] = None,
                       leading_ascending: bool = True) -> pd.Index:
        keys = {}
        ascending = []
        if leading is not None:
            keys["_lead"] = leading
            ascending.append(leading_ascending)
        for position, (field, is_ascending) in enumerate(sort or []):
            keys[f"_k{position}"] = _sort_key(column_values(df, field))
            ascending.append(is_ascending)
        if not keys:
            return df.index

        # Insertion order breaks remaining ties
        keys["_pos"] = pd.Series(range(len(df)), index=df.index)
        ascending.append(True)
        frame = pd.DataFrame(keys, index=df.index)
        return frame.sort_values(list(frame.columns), ascending=ascending,
                                 na_position="last").index

    def find(self, collection: str, where: Optional[Predicate] = None,
             sort: Optional[SortSpec] = None, skip: int = 0,
             limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Query a collection.

        Args:
            collection: Collection name
            where: Row predicate
            sort: (field, ascending) pairs
            skip: Rows to skip after sorting
            limit: Maximum rows to return

        Returns:
            Matching records
        """
        try:
            df = self._filtered(collection, where)
            labels = self._sorted_labels(df, sort)
            end = None if limit is None else skip + limit
            return self._materialize(collection, labels[skip:end])
        except StoreUnavailable:
            raise
        except Exception as e:
            logger.error(f"Query on '{collection}' failed: {e}")
            raise StoreUnavailable(f"Query on '{collection}' failed: {e}", collection) from e

    def near(self, collection: str, origin: GeoPoint, coordinates_field: str,
             max_distance_km: float, where: Optional[Predicate] = None,
             skip: int = 0, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Proximity query sorted by ascending distance.

        Rows without usable coordinates or beyond ``max_distance_km`` are
        excluded. Each returned record carries ``distance`` in km.

        Args:
            collection: Collection name
            origin: Search origin
            coordinates_field: Dotted path of the [longitude, latitude] field
            max_distance_km: Search radius
            where: Row predicate
            skip: Rows to skip after sorting
            limit: Maximum rows to return

        Returns:
            Matching records, nearest first
        """
        try:
            df = self._filtered(collection, where)
            if df.empty:
                return []

            distances = haversine_km(origin, column_values(df, coordinates_field))
            in_radius = distances.notna() & (distances <= max_distance_km)
            df = df[in_radius]
            distances = distances[in_radius]

            labels = self._sorted_labels(df, None, leading=distances)
            end = None if limit is None else skip + limit
            labels = labels[skip:end]

            results = self._materialize(collection, labels)
            for record, label in zip(results, labels):
                record["distance"] = round(float(distances[label]), 2)
            return results
        except StoreUnavailable:
            raise
        except Exception as e:
            logger.error(f"Proximity query on '{collection}' failed: {e}")
            raise StoreUnavailable(f"Proximity query on '{collection}' failed: {e}", collection) from e

    def text_search(self, collection: str, text: str,
                    where: Optional[Predicate] = None,
                    sort: Optional[SortSpec] = None,
                    limit: Optional[int] = None) -> Optional[List[Dict[str, Any]]]:
        """
        Full-text query through the collection's inverted index.

        Args:
            collection: Collection name
            text: Free-text query
            where: Row predicate applied on top of the index hits
            sort: Tiebreak ordering after text score
            limit: Maximum rows to return

        Returns:
            Records ordered by descending text score, an empty list when
            nothing matched, or None when the collection has no index
        """
        index = self._indexes.get(collection)
        if index is None:
            return None

        try:
            scores = index.search(text)
            if scores.empty:
                return []

            df = self._frame(collection).loc[scores.index]
            if where is not None:
                df = df[where(df)]
            labels = self._sorted_labels(df, sort, leading=scores[df.index],
                                         leading_ascending=False)
            end = None if limit is None else limit
            return self._materialize(collection, labels[:end])
        except StoreUnavailable:
            raise
        except Exception as e:
            logger.error(f"Text query on '{collection}' failed: {e}")
            raise StoreUnavailable(f"Text query on '{collection}' failed: {e}", collection) from e

    def has_text_index(self, collection: str) -> bool:
        return collection in self._indexes


def _sort_key(values: pd.Series) -> pd.Series:
    """
    Build the sort key for one field.

    Datetimes sort chronologically and numbers numerically. Anything else,
    including a column mixing numbers and text, sorts as case-insensitive
    text so a single odd value never blanks the whole column.

    Args:
        values: Raw field values

    Returns:
        Series of comparable keys, NaN/None where the value is missing
    """
    if pd.api.types.is_datetime64_any_dtype(values):
        return pd.to_numeric(values.map(_as_epoch), errors="coerce")

    non_null = [v for v in values if not _is_missing(v)]
    if non_null and all(isinstance(v, (datetime, np.datetime64)) for v in non_null):
        return pd.to_numeric(values.map(_as_epoch), errors="coerce")
    if non_null and all(_is_number(v) for v in non_null):
        return pd.to_numeric(values.map(_as_number), errors="coerce")
    return values.map(lambda v: None if _is_missing(v) else str(v).lower())


def _is_missing(value: Any) -> bool:
    if value is None or isinstance(value, (list, tuple, dict)):
        return value is None
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (bool, int, float, np.bool_, np.number)) and not isinstance(value, str)


def _as_number(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_epoch(value: Any) -> Optional[float]:
    """Nanoseconds since the epoch; timezone-aware values compare in UTC."""
    if _is_missing(value):
        return None
    return float(pd.Timestamp(value).value)
