import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List

import pytest
import requests

from skytrace.config import AppConfig, CacheConfig, Credentials, TrinoConfig
from skytrace.ingestion import TrinoClient
from skytrace.models import QueryParams

TRINO = TrinoConfig()
AUTH_URL = TRINO.auth_url
STATEMENT_URL = TRINO.statement_url
QUERY_URL = TRINO.query_url


def make_response(status_code: int = 200, payload: Any = None, text: str = None, url: str = '') -> requests.Response:
    """Real requests.Response with a canned body."""
    response = requests.Response()
    response.status_code = status_code
    if payload is not None:
        response._content = json.dumps(payload).encode('utf-8')
    else:
        response._content = (text or '').encode('utf-8')
    response.encoding = 'utf-8'
    response.url = url
    return response


def token_response(token: str = 'tok-1', expires_in: int = 300) -> requests.Response:
    return make_response(200, {'access_token': token, 'expires_in': expires_in}, url=AUTH_URL)


@dataclass
class RecordedCall:
    method: str
    url: str
    kwargs: Dict[str, Any] = field(default_factory=dict)

    @property
    def headers(self) -> Dict[str, str]:
        return self.kwargs.get('headers') or {}


class FakeSession:
    """
    Stand-in for requests.Session.

    Responses (or exceptions to raise) are queued per (method, url) and
    handed out in order; every request is recorded.
    """

    def __init__(self):
        self.headers: Dict[str, str] = {}
        self.calls: List[RecordedCall] = []
        self.closed = False
        self._queues: Dict[tuple, list] = {}

    def add(self, method: str, url: str, *results) -> None:
        self._queues.setdefault((method, url), []).extend(results)

    def request(self, method, url, **kwargs):
        self.calls.append(RecordedCall(method, url, kwargs))
        queue = self._queues.get((method, url))
        if not queue:
            raise AssertionError(f'Unexpected request: {method} {url}')
        result = queue.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result

    def calls_to(self, method: str, url: str = None) -> List[RecordedCall]:
        return [
            c for c in self.calls
            if c.method == method and (url is None or c.url == url)
        ]

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def sleeps(monkeypatch):
    """Record time.sleep calls instead of sleeping."""
    recorded: List[float] = []
    monkeypatch.setattr(time, 'sleep', recorded.append)
    return recorded


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / 'cache'


@pytest.fixture
def app_config(cache_dir):
    return AppConfig(
        credentials=Credentials(username='alice', password='secret'),
        trino=TrinoConfig(),
        cache=CacheConfig(directory=cache_dir),
    )


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def client(app_config, session):
    return TrinoClient(app_config, session=session)


@pytest.fixture
def params():
    return QueryParams(icao24='485a32').with_time_range(
        '2025-01-01 10:00:00', '2025-01-01 12:00:00'
    )
