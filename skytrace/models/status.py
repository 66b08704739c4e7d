"""
Session and execution state for Trino queries.

A query moves through an explicit lifecycle:

    SUBMITTED -> RUNNING -> FINISHED
                         -> FAILED
                         -> CANCELLED

CACHED short-circuits the whole sequence when the result is served
from the local cache and no network call is made.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

# A token must outlive "now" by this margin to be reused
TOKEN_EXPIRY_MARGIN = timedelta(minutes=1)


class QueryState(str, Enum):
    """Client-side lifecycle phase of a query."""
    SUBMITTED = 'submitted'
    RUNNING = 'running'
    FINISHED = 'finished'
    FAILED = 'failed'
    CANCELLED = 'cancelled'
    CACHED = 'cached'

    @property
    def is_terminal(self) -> bool:
        return self in (
            QueryState.FINISHED,
            QueryState.FAILED,
            QueryState.CANCELLED,
            QueryState.CACHED,
        )


@dataclass(frozen=True)
class TokenInfo:
    """Bearer token and the absolute instant it expires."""
    access_token: str
    expires_at: datetime

    @classmethod
    def from_lifetime(cls, access_token: str, expires_in: float) -> 'TokenInfo':
        return cls(
            access_token=access_token,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        )

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now + TOKEN_EXPIRY_MARGIN < self.expires_at


@dataclass(frozen=True)
class QueryStatus:
    """
    Snapshot reported to progress observers after each page.

    `state` is the engine's own label (QUEUED, RUNNING, FINISHED, ...) or
    "CACHED" for a cache hit; `phase` is the client-side lifecycle phase.
    """
    query_id: Optional[str]
    state: str
    progress: float
    row_count: int
    phase: QueryState = QueryState.RUNNING

    @classmethod
    def cached(cls, row_count: int) -> 'QueryStatus':
        return cls(
            query_id=None,
            state='CACHED',
            progress=100.0,
            row_count=row_count,
            phase=QueryState.CACHED,
        )
