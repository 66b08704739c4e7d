"""
Query construction for the OpenSky Trino database.

Pure functions only: no network or filesystem access happens here.
"""

from skytrace.query.builder import (
    build_history_query,
    build_query_preview,
    compute_day_bounds,
    compute_hour_bounds,
    datetime_to_unix,
)

__all__ = [
    'build_history_query',
    'build_query_preview',
    'compute_day_bounds',
    'compute_hour_bounds',
    'datetime_to_unix',
]
