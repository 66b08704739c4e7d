"""
On-disk cache for history query results.

Results are stored as Parquet files named after a hash of the query
parameters, e.g. ~/.cache/opensky/3f9a0c21d4e8b715.parquet.

Design notes:
- The key is a pure function of QueryParams (blake2b over a tagged
  encoding of every field), so it is stable across processes and
  interpreter runs; Python's built-in hash() is salted and is not used.
- File modification time is the only expiry signal; entries carry no
  embedded metadata and are never modified in place.
- The directory may be shared between processes without locking.
  Writes go to a temporary file in the same directory and are renamed
  into place, so readers never see a partially written entry.
"""

import hashlib
import logging
import os
import struct
import tempfile
import time
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Iterator, Optional

from skytrace.config import AppConfig, load_config
from skytrace.exceptions import ConfigurationError, SkytraceError, StorageError
from skytrace.models import FlightData, PARQUET_EXTENSION, QueryParams

logger = logging.getLogger(__name__)

KB = 1024
MB = KB * 1024
GB = MB * 1024


def _encode_field(value) -> bytes:
    """Tagged, length-prefixed encoding so None and '' never collide."""
    if value is None:
        return b'\x00'
    data = str(value).encode('utf-8')
    return b'\x01' + struct.pack('<I', len(data)) + data


def cache_key(params: QueryParams) -> str:
    """
    Cache file name for a set of query parameters.

    16 lowercase hex digits plus the Parquet extension. Bounds are
    hashed by the raw bit pattern of each float, not their text.
    """
    hasher = hashlib.blake2b(digest_size=8)

    for value in (
        params.icao24,
        params.start,
        params.stop,
        params.callsign,
        params.departure_airport,
        params.arrival_airport,
        params.airport,
        params.limit,
    ):
        hasher.update(_encode_field(value))

    if params.bounds is not None:
        hasher.update(b'\x01')
        hasher.update(struct.pack('<4d', *params.bounds.as_tuple()))
    else:
        hasher.update(b'\x00')

    return f'{hasher.hexdigest()}.{PARQUET_EXTENSION}'


def format_size(total_bytes: int) -> str:
    """Human-readable size with binary prefixes."""
    if total_bytes >= GB:
        return f'{total_bytes / GB:.2f} GB'
    if total_bytes >= MB:
        return f'{total_bytes / MB:.2f} MB'
    if total_bytes >= KB:
        return f'{total_bytes / KB:.2f} KB'
    return f'{total_bytes} B'


@dataclass
class CacheStats:
    """Cache directory statistics."""
    directory: Path
    file_count: int = 0
    total_size: int = 0

    # Lookups served by this cache instance
    hits: int = 0
    misses: int = 0

    @property
    def size_human(self) -> str:
        return format_size(self.total_size)

    def to_dict(self) -> dict:
        return {
            'directory': str(self.directory),
            'entries': self.file_count,
            'total_size': self.total_size,
            'size_human': self.size_human,
            'hits': self.hits,
            'misses': self.misses,
        }


class ResultCache:
    """
    Parquet file cache keyed by QueryParams.

    Lookups never raise for a bad entry: a corrupt or unreadable file
    is logged and reported as a miss.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self._hits = 0
        self._misses = 0

    @classmethod
    def from_config(cls, app_config: Optional[AppConfig] = None) -> 'ResultCache':
        app_config = app_config or load_config()
        return cls(app_config.cache.directory)

    def path_for(self, params: QueryParams) -> Path:
        return self.directory / cache_key(params)

    def ensure_dir(self) -> Path:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                f'Failed to create cache directory: {e}',
                details={'directory': str(self.directory)},
            ) from e
        return self.directory

    def _entries(self) -> Iterator[Path]:
        if not self.directory.is_dir():
            return iter(())
        try:
            return iter([
                p for p in self.directory.iterdir()
                if p.is_file() and p.suffix == f'.{PARQUET_EXTENSION}'
            ])
        except OSError as e:
            raise StorageError(
                f'Failed to read cache directory: {e}',
                details={'directory': str(self.directory)},
            ) from e

    @staticmethod
    def _age(path: Path, now: float) -> float:
        return now - path.stat().st_mtime

    def get(self, params: QueryParams, max_age: Optional[timedelta] = None) -> Optional[FlightData]:
        """
        Return the cached result, or None.

        When max_age is given, an entry older than that is deleted and
        treated as a miss.
        """
        path = self.path_for(params)

        if not path.exists():
            self._misses += 1
            logger.debug(f'Cache miss: {path.name}')
            return None

        if max_age is not None:
            try:
                expired = self._age(path, time.time()) > max_age.total_seconds()
            except OSError:
                expired = False
            if expired:
                logger.debug(f'Cache entry expired: {path.name}')
                self._unlink(path)
                self._misses += 1
                return None

        try:
            data = FlightData.from_parquet(path)
        except SkytraceError as e:
            logger.warning(f'Ignoring unreadable cache entry {path.name}: {e}')
            self._misses += 1
            return None

        self._hits += 1
        logger.debug(f'Cache hit: {path.name} ({len(data)} rows)')
        return data

    def put(self, params: QueryParams, data: FlightData) -> Path:
        """Write (or overwrite) the entry for params; returns its path."""
        directory = self.ensure_dir()
        path = directory / cache_key(params)

        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f'.{path.stem}.', suffix='.tmp', dir=str(directory)
            )
            os.close(fd)
        except OSError as e:
            raise StorageError(f'Failed to create temporary cache file: {e}', details={'path': str(path)}) from e
        tmp_path = Path(tmp_name)
        try:
            data.to_parquet(tmp_path)
            os.replace(tmp_path, path)
        except OSError as e:
            self._unlink(tmp_path)
            raise StorageError(f'Failed to write cache entry: {e}', details={'path': str(path)}) from e
        except SkytraceError:
            self._unlink(tmp_path)
            raise

        logger.info(f'Cached {len(data)} rows to {path}')
        return path

    def remove(self, params: QueryParams) -> bool:
        """Delete the entry for params. Returns True if one existed."""
        path = self.path_for(params)
        if not path.exists():
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f'Failed to remove cache file: {e}', details={'path': str(path)}) from e
        logger.debug(f'Removed cache entry {path.name}')
        return True

    def clear(self) -> int:
        """Remove every cache entry. Returns the count removed."""
        count = 0
        for path in self._entries():
            if self._unlink(path):
                count += 1
        logger.info(f'Cleared {count} cache entries from {self.directory}')
        return count

    def purge(self, max_age: timedelta) -> int:
        """Remove entries last modified more than max_age ago."""
        now = time.time()
        threshold = max_age.total_seconds()
        count = 0
        for path in self._entries():
            try:
                if self._age(path, now) <= threshold:
                    continue
            except OSError:
                continue
            if self._unlink(path):
                count += 1
        if count:
            logger.info(f'Purged {count} cache entries older than {max_age}')
        return count

    def stats(self) -> CacheStats:
        """Entry count and total size of the cache directory."""
        stats = CacheStats(directory=self.directory, hits=self._hits, misses=self._misses)
        for path in self._entries():
            try:
                size = path.stat().st_size
            except OSError:
                continue
            stats.file_count += 1
            stats.total_size += size
        return stats

    @staticmethod
    def _unlink(path: Path) -> bool:
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f'Could not delete {path}: {e}')
            return False
