"""
SQL query builder for the OpenSky Trino database.

Turns QueryParams into a SELECT against the state vector table,
optionally joined with the flights table when an airport filter is set.

OpenSky stores `time`, `hour` and `day` as Unix epoch integers, not SQL
TIMESTAMP values. The `hour` and `day` predicates are partition-pruning
hints: they let the engine skip storage partitions and do not change
which rows match.

Only single quotes are escaped (by doubling); callers are expected to
validate identifiers such as ICAO24 codes before they get here.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Tuple

from skytrace.exceptions import InvalidParameterError
from skytrace.models.params import FLIGHT_COLUMNS, QueryParams

logger = logging.getLogger(__name__)

STATE_VECTORS_TABLE = 'minio.osky.state_vectors_data4'
FLIGHTS_TABLE = 'minio.osky.flights_data4'

DATETIME_FORMAT = '%Y-%m-%d %H:%M:%S'

START_OF_DAY = '00:00:00'
END_OF_DAY = '23:59:59'


def parse_datetime(value: str, default_time: str = START_OF_DAY) -> datetime:
    """
    Parse a 'YYYY-MM-DD HH:MM:SS' string as a UTC datetime.

    A bare date gets `default_time` appended.
    """
    value = value.strip()
    for candidate in (value, f'{value} {default_time}'):
        try:
            return datetime.strptime(candidate, DATETIME_FORMAT).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    raise InvalidParameterError(
        f'Invalid date-time: {value!r}',
        details={'expected': 'YYYY-MM-DD HH:MM:SS'},
    )


def datetime_to_unix(value: str) -> int:
    """Convert a UTC date-time string to integer epoch seconds."""
    return int(parse_datetime(value).timestamp())


def compute_hour_bounds(start: str, stop: str) -> Tuple[int, int]:
    """
    Hour partition bounds as epoch seconds.

    Returns (start floored to the hour, stop floored to the hour + 1h);
    the upper bound is exclusive.
    """
    start_dt = parse_datetime(start)
    stop_dt = parse_datetime(stop, default_time=END_OF_DAY)

    start_hour = start_dt.replace(minute=0, second=0, microsecond=0)
    stop_hour = stop_dt.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)

    return int(start_hour.timestamp()), int(stop_hour.timestamp())


def compute_day_bounds(start: str, stop: str) -> Tuple[int, int]:
    """Day partition bounds: start midnight, and the midnight after stop."""
    start_dt = parse_datetime(start)
    stop_dt = parse_datetime(stop, default_time=END_OF_DAY)

    start_day = start_dt.replace(hour=0, minute=0, second=0, microsecond=0)
    stop_day = stop_dt.replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1)

    return int(start_day.timestamp()), int(stop_day.timestamp())


def escape_sql(value: str) -> str:
    """Escape single quotes in a SQL string literal."""
    return value.replace("'", "''")


def _is_pattern(value: str) -> bool:
    return '%' in value or '_' in value


def _match_predicate(column: str, value: str) -> str:
    """Equality, or LIKE when the value carries a SQL wildcard."""
    op = 'LIKE' if _is_pattern(value) else '='
    return f"{column} {op} '{escape_sql(value)}'"


def _bounds_predicates(params: QueryParams, prefix: str = '') -> List[str]:
    if params.bounds is None:
        return []
    b = params.bounds
    return [
        f'{prefix}lon >= {b.west}',
        f'{prefix}lon <= {b.east}',
        f'{prefix}lat >= {b.south}',
        f'{prefix}lat <= {b.north}',
    ]


def _time_predicates(start: str, stop: str, prefix: str = '') -> List[str]:
    start_ts = datetime_to_unix(start)
    stop_ts = datetime_to_unix(stop)
    start_hour_ts, stop_hour_ts = compute_hour_bounds(start, stop)
    return [
        f'{prefix}time >= {start_ts}',
        f'{prefix}time <= {stop_ts}',
        f'{prefix}hour >= {start_hour_ts}',
        f'{prefix}hour < {stop_hour_ts}',
    ]


def build_history_query(params: QueryParams) -> str:
    """
    Build the SQL for a trajectory history query.

    Uses the flights table join when any airport filter is set and a
    full time range is available; otherwise a plain state vector scan.
    """
    if params.has_airport_filter:
        if params.has_time_range:
            return _build_airport_join_query(params)
        # Airport filters need day bounds for the flights table
        logger.warning('Airport filter ignored: departure/arrival/airport require both start and stop')

    return _build_simple_query(params)


def _build_simple_query(params: QueryParams) -> str:
    columns = ', '.join(FLIGHT_COLUMNS)
    where = ['1=1']

    if params.has_time_range:
        where.extend(_time_predicates(params.start, params.stop))

    if params.icao24 is not None:
        where.append(_match_predicate('icao24', params.icao24.lower()))

    if params.callsign is not None:
        where.append(_match_predicate('callsign', params.callsign))

    where.extend(_bounds_predicates(params))

    lines = [
        f'SELECT {columns}',
        f'FROM {STATE_VECTORS_TABLE}',
        'WHERE ' + '\n  AND '.join(where),
        'ORDER BY time',
    ]
    if params.limit is not None:
        lines.append(f'LIMIT {int(params.limit)}')

    return '\n'.join(lines)


def _build_airport_join_query(params: QueryParams) -> str:
    start_day_ts, stop_day_ts = compute_day_bounds(params.start, params.stop)

    flights_where = [
        f'day >= {start_day_ts}',
        f'day <= {stop_day_ts}',
    ]
    if params.icao24 is not None:
        flights_where.append(f"icao24 = '{escape_sql(params.icao24.lower())}'")
    if params.callsign is not None:
        flights_where.append(f"callsign = '{escape_sql(params.callsign)}'")
    if params.departure_airport is not None:
        flights_where.append(f"estdepartureairport = '{escape_sql(params.departure_airport)}'")
    if params.arrival_airport is not None:
        flights_where.append(f"estarrivalairport = '{escape_sql(params.arrival_airport)}'")
    if params.airport is not None:
        airport = escape_sql(params.airport)
        flights_where.append(
            f"(estdepartureairport = '{airport}' OR estarrivalairport = '{airport}')"
        )

    flights_subquery = '\n'.join([
        'SELECT icao24, callsign, firstseen, lastseen',
        f'FROM {FLIGHTS_TABLE}',
        'WHERE ' + '\n  AND '.join(flights_where),
    ])

    prefixed_columns = ', '.join(f'sv.{c}' for c in FLIGHT_COLUMNS)

    where = [
        'sv.time >= fl.firstseen',
        'sv.time <= fl.lastseen',
    ]
    where.extend(_time_predicates(params.start, params.stop, prefix='sv.'))
    where.extend(_bounds_predicates(params, prefix='sv.'))

    lines = [
        f'SELECT {prefixed_columns}',
        f'FROM {STATE_VECTORS_TABLE} sv',
        f'JOIN ({flights_subquery}) fl',
        '  ON sv.icao24 = fl.icao24 AND sv.callsign = fl.callsign',
        'WHERE ' + '\n  AND '.join(where),
        'ORDER BY sv.time',
    ]
    if params.limit is not None:
        lines.append(f'LIMIT {int(params.limit)}')

    return '\n'.join(lines)


def build_query_preview(params: QueryParams) -> str:
    """
    Human-readable call-style rendering of the parameters.

    Only set fields are listed, one per line, in QueryParams field order.
    Not executable SQL; meant for display and debugging.
    """
    parts = ['trino.history(']

    if params.icao24 is not None:
        parts.append(f'    icao24="{params.icao24}",')
    if params.start is not None:
        parts.append(f'    start="{params.start}",')
    if params.stop is not None:
        parts.append(f'    stop="{params.stop}",')
    if params.callsign is not None:
        parts.append(f'    callsign="{params.callsign}",')
    if params.bounds is not None:
        b = params.bounds
        parts.append(f'    bounds=({b.west}, {b.south}, {b.east}, {b.north}),')
    if params.departure_airport is not None:
        parts.append(f'    departure_airport="{params.departure_airport}",')
    if params.arrival_airport is not None:
        parts.append(f'    arrival_airport="{params.arrival_airport}",')
    if params.airport is not None:
        parts.append(f'    airport="{params.airport}",')
    if params.limit is not None:
        parts.append(f'    limit={params.limit},')

    parts.append(')')
    return '\n'.join(parts)
