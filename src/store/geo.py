"""
Geo helpers for ProviderSearch.

Great-circle distances between a search origin and stored
[longitude, latitude] coordinate pairs.
"""

import math
import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple
import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    """Search origin. Both coordinates are always present and finite."""

    longitude: float
    latitude: float

    @classmethod
    def parse(cls, longitude: Any, latitude: Any) -> Optional["GeoPoint"]:
        """
        Build a point from raw request values.

        Partial or non-numeric coordinates yield None so the caller falls
        back to place-name filtering.

        Args:
            longitude: Raw longitude value
            latitude: Raw latitude value

        Returns:
            GeoPoint or None
        """
        lng = _to_float(longitude)
        lat = _to_float(latitude)
        if lng is None or lat is None:
            return None
        if not (-180.0 <= lng <= 180.0 and -90.0 <= lat <= 90.0):
            logger.debug(f"Coordinates out of range: lng={lng}, lat={lat}")
            return None
        return cls(longitude=lng, latitude=lat)

    def label(self) -> str:
        return f"{self.latitude},{self.longitude}"


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def extract_coordinates(value: Any) -> Optional[Tuple[float, float]]:
    """
    Read a stored [longitude, latitude] pair.

    Args:
        value: Stored coordinates (list, tuple or array)

    Returns:
        (longitude, latitude) or None when unusable
    """
    if value is None or isinstance(value, (str, bytes, dict)):
        return None
    try:
        if len(value) != 2:
            return None
    except TypeError:
        return None

    lng = _to_float(value[0])
    lat = _to_float(value[1])
    if lng is None or lat is None:
        return None
    # [0, 0] is the placeholder written for entities without a location
    if lng == 0 and lat == 0:
        return None
    return lng, lat


def haversine_km(origin: GeoPoint, coordinates: pd.Series) -> pd.Series:
    """
    Calculate distances from origin to each coordinate pair.

    Args:
        origin: Search origin
        coordinates: Series of stored [longitude, latitude] values

    Returns:
        Series of distances in km, NaN where coordinates are unusable
    """
    pairs = coordinates.map(extract_coordinates)
    lngs = pairs.map(lambda p: p[0] if p else np.nan).astype(float).to_numpy()
    lats = pairs.map(lambda p: p[1] if p else np.nan).astype(float).to_numpy()

    lat1 = np.radians(origin.latitude)
    lat2 = np.radians(lats)
    d_lat = lat2 - lat1
    d_lng = np.radians(lngs - origin.longitude)

    a = np.sin(d_lat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(d_lng / 2) ** 2
    distances = 2 * EARTH_RADIUS_KM * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return pd.Series(distances, index=coordinates.index)
