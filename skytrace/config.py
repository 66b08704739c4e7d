"""
Configuration management for skytrace.

Settings come from three places, later ones winning:
1. Built-in defaults (endpoints, catalog/schema, timeouts)
2. The OpenSky settings file (settings.conf, INI format)
3. Environment variables (a local .env file is honoured via python-dotenv)

Settings file layout:

    [default]
    username = your_username
    password = your_password
    client_id =
    client_secret =

    [cache]
    purge = 90 days
"""

import configparser
import os
import re
import sys
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from skytrace.exceptions import ConfigurationError

load_dotenv()

APP_DIR_NAME = 'opensky'
SETTINGS_FILE_NAME = 'settings.conf'

DEFAULT_CONFIG = """[default]
username =
password =
client_id =
client_secret =

[cache]
purge = 90 days
"""

_DURATION_UNITS = {
    's': 'seconds', 'sec': 'seconds', 'second': 'seconds', 'seconds': 'seconds',
    'm': 'minutes', 'min': 'minutes', 'minute': 'minutes', 'minutes': 'minutes',
    'h': 'hours', 'hour': 'hours', 'hours': 'hours',
    'd': 'days', 'day': 'days', 'days': 'days',
    'w': 'weeks', 'week': 'weeks', 'weeks': 'weeks',
}

_DURATION_RE = re.compile(r'^\s*(\d+)\s*([a-zA-Z]+)\s*$')


def parse_duration(value: str) -> timedelta:
    """
    Parse a free-text duration like '90 days', '12 hours' or '2h'.

    Raises ConfigurationError for anything that is not a positive
    integer followed by a known unit.
    """
    match = _DURATION_RE.match(value or '')
    if not match:
        raise ConfigurationError(f'Invalid duration: {value!r}')

    amount = int(match.group(1))
    unit = _DURATION_UNITS.get(match.group(2).lower())
    if unit is None:
        raise ConfigurationError(
            f"Unknown duration unit '{match.group(2)}'",
            details={'value': value},
        )
    if amount <= 0:
        raise ConfigurationError(f'Duration must be positive: {value!r}')

    return timedelta(**{unit: amount})


def config_dir() -> Path:
    """Platform-specific directory holding settings.conf."""
    if sys.platform.startswith('win'):
        base = os.getenv('LOCALAPPDATA')
        if not base:
            raise ConfigurationError('Could not determine config directory (LOCALAPPDATA unset)')
        return Path(base) / APP_DIR_NAME
    if sys.platform == 'darwin':
        return Path.home() / 'Library' / 'Application Support' / APP_DIR_NAME
    base = os.getenv('XDG_CONFIG_HOME') or str(Path.home() / '.config')
    return Path(base) / APP_DIR_NAME


def default_cache_dir() -> Path:
    """Platform cache root joined with the application subdirectory."""
    override = os.getenv('SKYTRACE_CACHE_DIR')
    if override:
        return Path(override)
    if sys.platform.startswith('win'):
        base = os.getenv('LOCALAPPDATA')
        if not base:
            raise ConfigurationError('Could not determine cache directory (LOCALAPPDATA unset)')
        return Path(base) / APP_DIR_NAME / 'cache'
    if sys.platform == 'darwin':
        return Path.home() / 'Library' / 'Caches' / APP_DIR_NAME
    base = os.getenv('XDG_CACHE_HOME') or str(Path.home() / '.cache')
    return Path(base) / APP_DIR_NAME


@dataclass(frozen=True)
class Credentials:
    """
    OpenSky account credentials.

    Only username and password are used: the Trino token request always
    authenticates as the public `trino-client` OAuth client. client_id and
    client_secret are read from settings.conf so existing files load
    unchanged, but are reserved and never sent.
    """
    username: Optional[str] = None
    password: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.password)

    def require_username(self) -> str:
        if not self.username:
            raise ConfigurationError('Username not configured')
        return self.username

    def require_password(self) -> str:
        if not self.password:
            raise ConfigurationError('Password not configured')
        return self.password


@dataclass(frozen=True)
class TrinoConfig:
    """Trino engine and identity endpoint settings."""
    statement_url: str = 'https://trino.opensky-network.org/v1/statement'
    query_url: str = 'https://trino.opensky-network.org/v1/query'
    auth_url: str = (
        'https://auth.opensky-network.org/auth/realms/opensky-network'
        '/protocol/openid-connect/token'
    )
    oauth_client_id: str = 'trino-client'
    source: str = 'skytrace'
    catalog: str = 'minio'
    schema: str = 'osky'

    # Transport-level guard; the protocol itself has no timeout
    timeout_seconds: float = 300.0
    poll_interval_seconds: float = 0.1

    token_attempts: int = 3
    token_backoff_seconds: float = 0.5


@dataclass(frozen=True)
class CacheConfig:
    """On-disk result cache settings."""
    directory: Path = field(default_factory=default_cache_dir)
    purge_after: Optional[timedelta] = None


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    credentials: Credentials = field(default_factory=Credentials)
    trino: TrinoConfig = field(default_factory=TrinoConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)


def _read_settings(path: Path) -> configparser.ConfigParser:
    parser = configparser.ConfigParser()
    try:
        with open(path, encoding='utf-8') as fh:
            parser.read_file(fh)
    except OSError as e:
        raise ConfigurationError(f'Cannot read settings file: {e}', details={'path': str(path)}) from e
    except configparser.Error as e:
        raise ConfigurationError(f'Malformed settings file: {e}', details={'path': str(path)}) from e
    return parser


def _get(parser: configparser.ConfigParser, section: str, key: str) -> Optional[str]:
    # Empty values are treated as unset
    value = parser.get(section, key, fallback='').strip()
    return value or None


def load_config(path: Optional[Path] = None) -> AppConfig:
    """
    Load and validate all configuration.

    Args:
        path: Settings file to read. Defaults to settings.conf in the
              platform config directory; a missing file is not an error.
    """
    settings_path = Path(path) if path else config_dir() / SETTINGS_FILE_NAME

    parser = configparser.ConfigParser()
    if settings_path.exists():
        parser = _read_settings(settings_path)
    elif path:
        raise ConfigurationError(
            f'Config file not found: {settings_path}',
            details={'template': 'see skytrace.config.DEFAULT_CONFIG'},
        )

    credentials = Credentials(
        username=os.getenv('OPENSKY_USERNAME') or _get(parser, 'default', 'username'),
        password=os.getenv('OPENSKY_PASSWORD') or _get(parser, 'default', 'password'),
        client_id=os.getenv('OPENSKY_CLIENT_ID') or _get(parser, 'default', 'client_id'),
        client_secret=os.getenv('OPENSKY_CLIENT_SECRET') or _get(parser, 'default', 'client_secret'),
    )

    purge_text = os.getenv('SKYTRACE_CACHE_PURGE') or _get(parser, 'cache', 'purge')

    return AppConfig(
        credentials=credentials,
        trino=TrinoConfig(),
        cache=CacheConfig(
            directory=default_cache_dir(),
            purge_after=parse_duration(purge_text) if purge_text else None,
        ),
    )
