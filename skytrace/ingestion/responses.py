"""
Typed views of Trino statement protocol responses.

Trino statement response (JSON object, all fields optional):
    id        - engine query id
    nextUri   - pagination cursor; absent once results are exhausted
    columns   - [{name, type}] declared once the schema is known
    data      - row-major array of JSON scalars
    stats     - {state, progressPercentage, ...}
    error     - {message, errorName, ...}; authoritative when present
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional

from skytrace.exceptions import ResponseParseError


@dataclass(frozen=True)
class ColumnSpec:
    """Declared result column: name plus engine type tag (e.g. 'double')."""
    name: str
    type: str

    @classmethod
    def from_json(cls, obj: Any) -> 'ColumnSpec':
        if not isinstance(obj, dict) or 'name' not in obj:
            raise ResponseParseError(f'Malformed column declaration: {obj!r}')
        return cls(name=str(obj['name']), type=str(obj.get('type', 'varchar')))


@dataclass(frozen=True)
class EngineStats:
    state: str = 'RUNNING'
    progress_percentage: Optional[float] = None


@dataclass(frozen=True)
class EngineError:
    message: str
    error_name: Optional[str] = None


def _parse_progress(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ResponseParseError(f'Invalid progressPercentage: {value!r}')
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ResponseParseError(f'Invalid progressPercentage: {value!r}') from e


@dataclass(frozen=True)
class StatementResponse:
    id: Optional[str] = None
    next_uri: Optional[str] = None
    columns: Optional[List[ColumnSpec]] = None
    data: List[List[Any]] = field(default_factory=list)
    stats: Optional[EngineStats] = None
    error: Optional[EngineError] = None

    @property
    def state(self) -> str:
        return self.stats.state if self.stats else 'RUNNING'

    @property
    def progress(self) -> float:
        if self.stats and self.stats.progress_percentage is not None:
            return self.stats.progress_percentage
        return 0.0

    @classmethod
    def from_json(cls, payload: Any) -> 'StatementResponse':
        """
        Parse a decoded statement response.

        Raises ResponseParseError if the payload is not shaped like one.
        """
        if not isinstance(payload, dict):
            raise ResponseParseError(f'Expected JSON object, got {type(payload).__name__}')

        # An error object wins over every other field on the page
        raw_error = payload.get('error')
        if raw_error is not None:
            if isinstance(raw_error, dict):
                error = EngineError(
                    message=str(raw_error.get('message', 'Unknown query error')),
                    error_name=raw_error.get('errorName'),
                )
            else:
                error = EngineError(message=str(raw_error))
            return cls(id=payload.get('id'), error=error)

        columns = None
        raw_columns = payload.get('columns')
        if raw_columns is not None:
            if not isinstance(raw_columns, list):
                raise ResponseParseError('Field "columns" must be an array')
            columns = [ColumnSpec.from_json(c) for c in raw_columns]

        data = payload.get('data') or []
        if not isinstance(data, list) or not all(isinstance(row, list) for row in data):
            raise ResponseParseError('Field "data" must be an array of rows')

        stats = None
        raw_stats = payload.get('stats')
        if isinstance(raw_stats, dict):
            stats = EngineStats(
                state=str(raw_stats.get('state', 'RUNNING')),
                progress_percentage=_parse_progress(raw_stats.get('progressPercentage')),
            )

        return cls(
            id=payload.get('id'),
            next_uri=payload.get('nextUri'),
            columns=columns,
            data=data,
            stats=stats,
        )
