"""
FlightData - tabular result of a history query.

Thin wrapper around a pandas DataFrame. Columns use pandas nullable
dtypes (Float64, Int64, boolean, string) so a missing cell is
representable in every column regardless of its type.
"""

import logging
from pathlib import Path
from typing import List, Union

import pandas as pd
import pyarrow as pa

from skytrace.exceptions import DataConversionError, StorageError
from skytrace.models.params import FLIGHT_COLUMNS, FLIGHT_COLUMN_DTYPES

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

PARQUET_EXTENSION = 'parquet'


class FlightData:
    """Query result owned by the caller once returned."""

    def __init__(self, df: pd.DataFrame):
        self._df = df

    @classmethod
    def empty(cls) -> 'FlightData':
        """Zero-row frame with the full trajectory schema."""
        df = pd.DataFrame({
            name: pd.Series([], dtype=FLIGHT_COLUMN_DTYPES[name])
            for name in FLIGHT_COLUMNS
        })
        return cls(df)

    @property
    def dataframe(self) -> pd.DataFrame:
        return self._df

    @property
    def columns(self) -> List[str]:
        return [str(c) for c in self._df.columns]

    def is_empty(self) -> bool:
        return len(self._df) == 0

    def __len__(self) -> int:
        return len(self._df)

    def __repr__(self) -> str:
        return f'FlightData(rows={len(self)}, columns={self.columns})'

    def to_csv(self, path: PathLike) -> None:
        """Export to a CSV file."""
        try:
            self._df.to_csv(path, index=False)
        except OSError as e:
            raise StorageError(f'Failed to write CSV: {e}', details={'path': str(path)}) from e

    def to_parquet(self, path: PathLike) -> None:
        """Export to a Parquet file (pyarrow engine)."""
        try:
            self._df.to_parquet(path, engine='pyarrow', index=False)
        except OSError as e:
            raise StorageError(f'Failed to write Parquet: {e}', details={'path': str(path)}) from e
        except (pa.ArrowException, ValueError, TypeError) as e:
            raise DataConversionError(f'Failed to write Parquet: {e}', details={'path': str(path)}) from e

    @classmethod
    def from_parquet(cls, path: PathLike) -> 'FlightData':
        """Load a Parquet file written by to_parquet()."""
        try:
            df = pd.read_parquet(path, engine='pyarrow')
        except OSError as e:
            raise StorageError(f'Failed to read Parquet: {e}', details={'path': str(path)}) from e
        except (pa.ArrowException, ValueError) as e:
            raise DataConversionError(f'Failed to read Parquet: {e}', details={'path': str(path)}) from e
        return cls(df)
