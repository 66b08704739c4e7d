"""
Query parameters for trajectory history lookups.

QueryParams is immutable: the with_* helpers return modified copies, so a
params object handed to the query builder or the cache never changes
underneath them.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple


# State vector columns returned by history queries, in select order
FLIGHT_COLUMNS: Tuple[str, ...] = (
    'time',
    'icao24',
    'lat',
    'lon',
    'velocity',
    'heading',
    'vertrate',
    'callsign',
    'onground',
    'squawk',
    'baroaltitude',
    'geoaltitude',
    'hour',
)

# Pandas nullable dtype of each trajectory column
FLIGHT_COLUMN_DTYPES = {
    'time': 'Int64',
    'icao24': 'string',
    'lat': 'Float64',
    'lon': 'Float64',
    'velocity': 'Float64',
    'heading': 'Float64',
    'vertrate': 'Float64',
    'callsign': 'string',
    'onground': 'boolean',
    'squawk': 'string',
    'baroaltitude': 'Float64',
    'geoaltitude': 'Float64',
    'hour': 'Int64',
}


@dataclass(frozen=True)
class Bounds:
    """
    Geographic bounding box in degrees.

    No normalization is applied: west > east is passed through verbatim.
    """
    west: float
    south: float
    east: float
    north: float

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.west, self.south, self.east, self.north)


@dataclass(frozen=True)
class QueryParams:
    """Filters for a trajectory history query. All fields are optional."""
    # Aircraft ICAO24 transponder code (hex string, e.g. "485a32")
    icao24: Optional[str] = None
    # UTC times, "YYYY-MM-DD HH:MM:SS" (a bare date is accepted)
    start: Optional[str] = None
    stop: Optional[str] = None
    callsign: Optional[str] = None
    bounds: Optional[Bounds] = None
    departure_airport: Optional[str] = None
    arrival_airport: Optional[str] = None
    # Either departure or arrival
    airport: Optional[str] = None
    limit: Optional[int] = None

    def with_icao24(self, icao24: str) -> 'QueryParams':
        return replace(self, icao24=icao24)

    def with_time_range(self, start: str, stop: str) -> 'QueryParams':
        return replace(self, start=start, stop=stop)

    def with_callsign(self, callsign: str) -> 'QueryParams':
        return replace(self, callsign=callsign)

    def with_departure(self, airport: str) -> 'QueryParams':
        return replace(self, departure_airport=airport)

    def with_arrival(self, airport: str) -> 'QueryParams':
        return replace(self, arrival_airport=airport)

    def with_airport(self, airport: str) -> 'QueryParams':
        return replace(self, airport=airport)

    def with_bounds(self, west: float, south: float, east: float, north: float) -> 'QueryParams':
        return replace(self, bounds=Bounds(west, south, east, north))

    def with_limit(self, limit: int) -> 'QueryParams':
        return replace(self, limit=limit)

    @property
    def has_airport_filter(self) -> bool:
        """True when the query needs the flights table join."""
        return (
            self.departure_airport is not None
            or self.arrival_airport is not None
            or self.airport is not None
        )

    @property
    def has_time_range(self) -> bool:
        return self.start is not None and self.stop is not None

    def is_empty(self) -> bool:
        """Check whether no filter at all is set (limit does not count)."""
        return (
            self.icao24 is None
            and self.start is None
            and self.stop is None
            and self.callsign is None
            and self.bounds is None
            and self.departure_airport is None
            and self.arrival_airport is None
            and self.airport is None
        )
