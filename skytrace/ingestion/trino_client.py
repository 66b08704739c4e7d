"""
Trino HTTP client for the OpenSky historical database.

Handles:
- OAuth password-grant tokens, reused until one minute before expiry
- Statement submission and nextUri polling until the engine is done
- Optional per-page progress reporting
- Cancellation of running queries
- Result caching keyed by query parameters

Protocol outline:
1. POST the SQL text to /v1/statement
2. While the response carries nextUri: wait 100ms, GET nextUri
3. Collect `columns` from the first page that declares them and
   append every `data` page
4. An `error` object on any page aborts the query

Pages are fetched strictly one after another. A client instance holds
one mutable token and is not meant to be shared between threads.
"""

import logging
import time
from typing import Callable, List, Optional

import requests

from skytrace.cache import ResultCache
from skytrace.config import AppConfig, load_config
from skytrace.exceptions import (
    AuthenticationError,
    QueryCancelledError,
    QueryError,
    ResponseParseError,
    SkytraceError,
    TransportError,
)
from skytrace.ingestion.assembler import rows_to_flight_data
from skytrace.ingestion.responses import ColumnSpec, StatementResponse
from skytrace.ingestion.retry import linear_backoff, retry_call
from skytrace.models import FlightData, QueryParams, QueryState, QueryStatus, TokenInfo
from skytrace.query import build_history_query

logger = logging.getLogger(__name__)

USER_AGENT = 'skytrace/0.1.0'

# Acting user when no username is configured
DEFAULT_USER = 'opensky'

ProgressObserver = Callable[[QueryStatus], None]


class TrinoClient:
    """
    Client for the OpenSky Trino database.

    Usage:
        client = TrinoClient.from_config()
        params = QueryParams(icao24='485a32').with_time_range(
            '2025-01-01 10:00:00', '2025-01-01 12:00:00')
        data = client.history(params)
    """

    def __init__(
        self,
        config: AppConfig,
        cache: Optional[ResultCache] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.credentials = config.credentials
        self.trino = config.trino
        self.cache = cache or ResultCache.from_config(config)

        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': USER_AGENT})

        self._token: Optional[TokenInfo] = None
        self._current_query_id: Optional[str] = None
        self._state: Optional[QueryState] = None

        if not self.credentials.has_credentials:
            logger.warning('Trino client created without credentials; queries will fail until configured')

    @classmethod
    def from_config(cls, path=None) -> 'TrinoClient':
        """Create client from the settings file and environment."""
        return cls(load_config(path))

    @property
    def current_query_id(self) -> Optional[str]:
        """Engine id of the query being polled, if any."""
        return self._current_query_id

    @property
    def state(self) -> Optional[QueryState]:
        """Lifecycle phase of the most recent query."""
        return self._state

    @property
    def user(self) -> str:
        return self.credentials.username or DEFAULT_USER

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> 'TrinoClient':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    def get_token(self) -> str:
        """
        Return a bearer token, fetching a new one if needed.

        Transport failures are retried (3 attempts, 500ms x attempt
        backoff). HTTP 400/401 means bad credentials and is not retried.

        Raises:
            ConfigurationError: username/password not configured
            AuthenticationError: credentials rejected
            TransportError: identity endpoint unreachable
        """
        if self._token is not None and self._token.is_valid():
            return self._token.access_token

        username = self.credentials.require_username()
        password = self.credentials.require_password()

        def request_token() -> requests.Response:
            return self.session.request(
                'POST',
                self.trino.auth_url,
                data={
                    'client_id': self.trino.oauth_client_id,
                    'grant_type': 'password',
                    'username': username,
                    'password': password,
                },
                timeout=self.trino.timeout_seconds,
            )

        try:
            response = retry_call(
                request_token,
                max_attempts=self.trino.token_attempts,
                backoff=linear_backoff(self.trino.token_backoff_seconds),
                retry_on=(requests.exceptions.ConnectionError, requests.exceptions.Timeout),
                description='Token request',
            )
        except requests.exceptions.RequestException as e:
            logger.error(f'Token request failed: {e}')
            raise TransportError(f'Token request failed: {e}') from e

        if response.status_code in (400, 401):
            logger.error(f'Authentication rejected for user {username} ({response.status_code})')
            raise AuthenticationError(
                'Authentication failed. Check your username and password.',
                details={'status': str(response.status_code)},
            )
        self._raise_for_status(response, 'Token request')

        payload = self._decode_json(response)
        try:
            token = TokenInfo.from_lifetime(
                access_token=str(payload['access_token']),
                expires_in=float(payload['expires_in']),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ResponseParseError(f'Malformed token response: {e}') from e

        self._token = token
        logger.info(f'Acquired access token, expires at {token.expires_at.isoformat()}')
        return token.access_token

    # -------------------------------------------------------------------------
    # History queries
    # -------------------------------------------------------------------------

    def history(self, params: QueryParams, cached: bool = True) -> FlightData:
        """
        Fetch trajectory history for the given parameters.

        Args:
            params: Query filters
            cached: True to serve from cache when possible and cache
                    non-empty results; False to evict any cached entry
                    and query fresh
        """
        return self._history(params, cached, observer=None)

    def history_with_progress(
        self,
        params: QueryParams,
        observer: ProgressObserver,
        cached: bool = True,
    ) -> FlightData:
        """
        Same as history(), calling `observer` with a QueryStatus after
        every page (or once, with state CACHED, on a cache hit).

        The observer runs synchronously and its exceptions propagate.
        """
        return self._history(params, cached, observer=observer)

    def _history(
        self,
        params: QueryParams,
        cached: bool,
        observer: Optional[ProgressObserver],
    ) -> FlightData:
        if cached:
            data = self.cache.get(params)
            if data is not None:
                logger.info(f'Serving {len(data)} rows from cache')
                self._state = QueryState.CACHED
                if observer is not None:
                    observer(QueryStatus.cached(len(data)))
                return data
        else:
            # Drop the old entry so a later cached call cannot see it
            try:
                self.cache.remove(params)
            except SkytraceError as e:
                logger.warning(f'Failed to evict cache entry: {e}')

        sql = build_history_query(params)
        data = self.execute_query(sql, observer=observer)

        if not data.is_empty():
            try:
                self.cache.put(params, data)
            except Exception as e:
                logger.warning(f'Failed to cache query result: {e}')

        return data

    # -------------------------------------------------------------------------
    # Statement protocol
    # -------------------------------------------------------------------------

    def execute_query(self, sql: str, observer: Optional[ProgressObserver] = None) -> FlightData:
        """
        Run a SQL statement and collect all result pages.

        There is no client-side page limit: polling continues for as
        long as the engine returns a nextUri.

        Raises:
            QueryError: the engine reported an error
            TransportError: network failure or unexpected HTTP status
            ResponseParseError: malformed JSON
            DataConversionError: rows do not fit the declared columns
        """
        token = self.get_token()

        logger.info('Submitting query to Trino')
        logger.debug(f'SQL:\n{sql}')

        self._state = QueryState.SUBMITTED
        columns: Optional[List[ColumnSpec]] = None
        rows: List[list] = []
        pages = 0
        query_id: Optional[str] = None

        try:
            response = self._send(
                'POST',
                self.trino.statement_url,
                data=sql.encode('utf-8'),
                headers=self._statement_headers(token),
            )
            page = self._read_page(response)
            query_id = page.id
            self._current_query_id = query_id

            while True:
                self._raise_on_error(page)

                if columns is None and page.columns is not None:
                    columns = page.columns
                rows.extend(page.data)
                pages += 1

                if self._state is not QueryState.CANCELLED:
                    self._state = QueryState.RUNNING if page.next_uri else QueryState.FINISHED
                if observer is not None:
                    observer(QueryStatus(
                        query_id=query_id,
                        state=page.state,
                        progress=page.progress,
                        row_count=len(rows),
                        phase=self._state,
                    ))

                if not page.next_uri:
                    break

                time.sleep(self.trino.poll_interval_seconds)
                logger.debug(f'Polling {page.next_uri} ({len(rows)} rows so far)')
                response = self._send('GET', page.next_uri, headers=self._auth_headers(token))
                page = self._read_page(response)

            data = rows_to_flight_data(columns, rows)
        except QueryError as e:
            if self._state is QueryState.CANCELLED:
                raise QueryCancelledError(f'Query {query_id} was cancelled') from e
            self._state = QueryState.FAILED
            raise
        except SkytraceError:
            if self._state is not QueryState.CANCELLED:
                self._state = QueryState.FAILED
            raise
        finally:
            self._current_query_id = None

        logger.info(f'Query {query_id or ""} finished: {len(rows)} rows in {pages} pages')
        return data

    def cancel(self, query_id: str) -> None:
        """
        Cancel a running query by its engine id.

        Raises QueryError if the engine does not acknowledge.
        """
        token = self.get_token()
        url = f'{self.trino.query_url}/{query_id}'

        response = self._send('DELETE', url, headers=self._auth_headers(token))

        if not 200 <= response.status_code < 300:
            logger.error(f'Cancel of query {query_id} failed: {response.status_code}')
            raise QueryError(f'Failed to cancel query: {response.status_code}')

        if query_id == self._current_query_id:
            self._state = QueryState.CANCELLED
        logger.info(f'Cancelled query {query_id}')

    def purge_cache(self) -> int:
        """Remove cache entries older than the configured purge age."""
        if self.config.cache.purge_after is None:
            return 0
        return self.cache.purge(self.config.cache.purge_after)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _auth_headers(self, token: str) -> dict:
        return {
            'Authorization': f'Bearer {token}',
            'X-Trino-User': self.user,
        }

    def _statement_headers(self, token: str) -> dict:
        headers = self._auth_headers(token)
        headers.update({
            'X-Trino-Source': self.trino.source,
            'X-Trino-Catalog': self.trino.catalog,
            'X-Trino-Schema': self.trino.schema,
        })
        return headers

    def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        """Issue one request, mapping requests errors to TransportError."""
        try:
            return self.session.request(method, url, timeout=self.trino.timeout_seconds, **kwargs)
        except requests.exceptions.Timeout as e:
            logger.error(f'Trino request timed out: {method} {url}')
            raise TransportError(f'Request timed out: {e}') from e
        except requests.exceptions.RequestException as e:
            logger.error(f'Trino request failed: {e}')
            raise TransportError(f'Request failed: {e}') from e

    @staticmethod
    def _raise_for_status(response: requests.Response, what: str) -> None:
        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            logger.error(f'{what} returned HTTP {response.status_code}')
            raise TransportError(f'{what} failed: {e}', status_code=response.status_code) from e

    @staticmethod
    def _decode_json(response: requests.Response):
        try:
            return response.json()
        except ValueError as e:
            raise ResponseParseError(f'Invalid JSON in response: {e}') from e

    def _read_page(self, response: requests.Response) -> StatementResponse:
        self._raise_for_status(response, 'Trino request')
        return StatementResponse.from_json(self._decode_json(response))

    @staticmethod
    def _raise_on_error(page: StatementResponse) -> None:
        if page.error is not None:
            logger.error(f'Query failed: {page.error.message}')
            raise QueryError(page.error.message, error_name=page.error.error_name)
