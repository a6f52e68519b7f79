"""Great-circle distance helpers (haversine), scalar and vectorised."""

from __future__ import annotations

import numpy as np

# Mean Earth radius (IUGG), metres
EARTH_RADIUS_M = 6_371_008.8


def haversine_array(
    lat: float,
    lng: float,
    lats: np.ndarray,
    lngs: np.ndarray,
) -> np.ndarray:
    """
    Distance in metres from one point to many points.

    Args:
        lat: Latitude of the origin in degrees
        lng: Longitude of the origin in degrees
        lats: Latitudes of the targets in degrees
        lngs: Longitudes of the targets in degrees

    Returns:
        Array of distances in metres, same length as ``lats``
    """
    phi1 = np.radians(lat)
    phi2 = np.radians(np.asarray(lats, dtype=float))
    dphi = phi2 - phi1
    dlambda = np.radians(np.asarray(lngs, dtype=float) - lng)

    a = np.sin(dphi / 2.0) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlambda / 2.0) ** 2
    # Rounding can push ``a`` a hair above 1 for antipodal points
    a = np.clip(a, 0.0, 1.0)
    return 2.0 * EARTH_RADIUS_M * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in metres between two points.

    Shares :func:`haversine_array` with the clusterer so both use one formula.
    """
    return float(haversine_array(lat1, lng1, np.array([lat2]), np.array([lng2]))[0])
