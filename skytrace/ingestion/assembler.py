"""
Convert raw Trino result pages into a typed FlightData frame.

Each declared column is mapped to one of four column kinds by its
engine type tag:

    double, real                       -> FLOAT   (pandas Float64)
    bigint, integer, smallint, tinyint -> INTEGER (pandas Int64)
    boolean                            -> BOOLEAN (pandas boolean)
    anything else (varchar, timestamp) -> STRING  (pandas string)

Null cells stay null in every kind. An empty result always comes back
with the fixed trajectory schema, whatever the engine declared.
"""

import json
import logging
import math
from enum import Enum
from typing import Any, List, Optional, Sequence

import pandas as pd

from skytrace.exceptions import DataConversionError
from skytrace.ingestion.responses import ColumnSpec
from skytrace.models.flight_data import FlightData

logger = logging.getLogger(__name__)


class ColumnKind(str, Enum):
    """Closed set of column kinds, valued by their pandas dtype."""
    FLOAT = 'Float64'
    INTEGER = 'Int64'
    BOOLEAN = 'boolean'
    STRING = 'string'

    @classmethod
    def from_engine_type(cls, type_tag: str) -> 'ColumnKind':
        # Parameterised tags like varchar(8) or timestamp(3) keep their base name
        base = type_tag.split('(', 1)[0].strip().lower()
        if base in ('double', 'real'):
            return cls.FLOAT
        if base in ('bigint', 'integer', 'smallint', 'tinyint'):
            return cls.INTEGER
        if base == 'boolean':
            return cls.BOOLEAN
        return cls.STRING

    @property
    def dtype(self) -> str:
        return self.value

    def convert(self, value: Any) -> Any:
        """
        Convert one JSON cell to this kind.

        Returns None for null cells, raises ValueError on a mismatch.
        """
        if value is None:
            return None
        if self is ColumnKind.FLOAT:
            return _to_float(value)
        if self is ColumnKind.INTEGER:
            return _to_int(value)
        if self is ColumnKind.BOOLEAN:
            return _to_bool(value)
        return _to_str(value)


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(f'boolean {value!r} in floating column')
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        # Trino sends non-finite doubles as "NaN" / "Infinity" / "-Infinity"
        return float(value)
    raise ValueError(f'{type(value).__name__} in floating column')


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f'boolean {value!r} in integer column')
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return int(value)
    raise ValueError(f'{value!r} in integer column')


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    raise ValueError(f'{value!r} in boolean column')


def _to_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _build_column(spec: ColumnSpec, index: int, rows: Sequence[Sequence[Any]]) -> pd.Series:
    kind = ColumnKind.from_engine_type(spec.type)
    values: List[Optional[Any]] = []
    for row_num, row in enumerate(rows):
        raw = row[index] if index < len(row) else None
        try:
            values.append(kind.convert(raw))
        except ValueError as e:
            raise DataConversionError(
                f'Cannot convert value in column {spec.name!r}: {e}',
                details={'type': spec.type, 'row': str(row_num)},
            ) from e
    return pd.Series(values, dtype=kind.dtype, name=spec.name)


def rows_to_flight_data(
    columns: Optional[Sequence[ColumnSpec]],
    rows: Sequence[Sequence[Any]],
) -> FlightData:
    """
    Assemble declared columns and row-major values into FlightData.

    Raises DataConversionError on rows without a declared schema or on
    cells that do not fit their column's type.
    """
    if not rows:
        return FlightData.empty()

    if not columns:
        raise DataConversionError(
            'Received result rows without column declarations',
            details={'rows': str(len(rows))},
        )

    series = [_build_column(spec, i, rows) for i, spec in enumerate(columns)]
    df = pd.concat(series, axis=1)

    logger.debug(f'Assembled {len(df)} rows x {len(df.columns)} columns')
    return FlightData(df)
