"""
Data models for skytrace.

- params:      QueryParams / Bounds and the fixed trajectory column set
- flight_data: FlightData, the pandas-backed tabular result
- status:      TokenInfo, QueryState lifecycle and QueryStatus snapshots
"""

from skytrace.models.params import Bounds, QueryParams, FLIGHT_COLUMNS, FLIGHT_COLUMN_DTYPES
from skytrace.models.flight_data import FlightData, PARQUET_EXTENSION
from skytrace.models.status import QueryState, QueryStatus, TokenInfo, TOKEN_EXPIRY_MARGIN

__all__ = [
    'Bounds',
    'QueryParams',
    'FLIGHT_COLUMNS',
    'FLIGHT_COLUMN_DTYPES',
    'FlightData',
    'PARQUET_EXTENSION',
    'QueryState',
    'QueryStatus',
    'TokenInfo',
    'TOKEN_EXPIRY_MARGIN',
]
