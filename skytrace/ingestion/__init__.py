"""
Data ingestion from the OpenSky Trino database.

Handles authentication, statement submission, result paging and
conversion of raw result pages into FlightData frames.
"""

from skytrace.ingestion.trino_client import TrinoClient, ProgressObserver
from skytrace.ingestion.assembler import ColumnKind, rows_to_flight_data
from skytrace.ingestion.retry import linear_backoff, retry_call

__all__ = [
    'TrinoClient',
    'ProgressObserver',
    'ColumnKind',
    'rows_to_flight_data',
    'linear_backoff',
    'retry_call',
]
