"""
skytrace - historical aircraft trajectories from the OpenSky Trino database.

Describe a query with QueryParams instead of writing SQL; the client
handles authentication, paging and local caching.

Modules:
    query/       SQL builder for state vector history (partition-aware)
    ingestion/   Trino statement client, retry helper, result assembly
    models/      QueryParams, FlightData, query/token status types
    cache.py     Parquet result cache keyed by query parameters
    config.py    Settings file + environment configuration
    exceptions.py  Error taxonomy

Example:
    from skytrace import TrinoClient, QueryParams

    client = TrinoClient.from_config()
    params = QueryParams(icao24='485a32').with_time_range(
        '2025-01-01 10:00:00', '2025-01-01 12:00:00')
    data = client.history(params)
    data.to_csv('flight.csv')
"""

__version__ = '0.1.0'

from skytrace.cache import CacheStats, ResultCache, cache_key
from skytrace.config import AppConfig, load_config
from skytrace.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DataConversionError,
    InvalidParameterError,
    QueryCancelledError,
    QueryError,
    ResponseParseError,
    SkytraceError,
    StorageError,
    TransportError,
)
from skytrace.ingestion import TrinoClient
from skytrace.models import (
    Bounds,
    FlightData,
    QueryParams,
    QueryState,
    QueryStatus,
    FLIGHT_COLUMNS,
)
from skytrace.query import build_history_query, build_query_preview

__all__ = [
    'AppConfig',
    'AuthenticationError',
    'Bounds',
    'CacheStats',
    'ConfigurationError',
    'DataConversionError',
    'FLIGHT_COLUMNS',
    'FlightData',
    'InvalidParameterError',
    'QueryCancelledError',
    'QueryError',
    'QueryParams',
    'QueryState',
    'QueryStatus',
    'ResponseParseError',
    'ResultCache',
    'SkytraceError',
    'StorageError',
    'TransportError',
    'TrinoClient',
    'build_history_query',
    'build_query_preview',
    'cache_key',
    'load_config',
]
