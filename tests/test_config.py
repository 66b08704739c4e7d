"""Tests for settings-file and environment configuration."""

import sys
from datetime import timedelta
from pathlib import Path

import pytest

from skytrace.config import (
    DEFAULT_CONFIG,
    AppConfig,
    Credentials,
    default_cache_dir,
    load_config,
    parse_duration,
)
from skytrace.exceptions import ConfigurationError

ENV_VARS = (
    'OPENSKY_USERNAME',
    'OPENSKY_PASSWORD',
    'OPENSKY_CLIENT_ID',
    'OPENSKY_CLIENT_SECRET',
    'SKYTRACE_CACHE_DIR',
    'SKYTRACE_CACHE_PURGE',
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('XDG_CONFIG_HOME', str(tmp_path / 'config'))
    monkeypatch.setenv('XDG_CACHE_HOME', str(tmp_path / 'xdg-cache'))


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / 'settings.conf'
    path.write_text(
        '[default]\n'
        'username = alice\n'
        'password = secret\n'
        'client_id =\n'
        '\n'
        '[cache]\n'
        'purge = 30 days\n'
    )
    return path


class TestParseDuration:
    @pytest.mark.parametrize('text, expected', [
        ('90 days', timedelta(days=90)),
        ('1 day', timedelta(days=1)),
        ('12 hours', timedelta(hours=12)),
        ('2h', timedelta(hours=2)),
        ('30min', timedelta(minutes=30)),
        ('45 s', timedelta(seconds=45)),
        ('2 weeks', timedelta(weeks=2)),
        ('  3 DAYS ', timedelta(days=3)),
    ])
    def test_valid(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize('text', ['', 'days', '90', '1.5 days', '-1 days', '0 days', '3 fortnights'])
    def test_invalid(self, text):
        with pytest.raises(ConfigurationError):
            parse_duration(text)


class TestCredentials:
    def test_has_credentials(self):
        assert Credentials('alice', 'secret').has_credentials
        assert not Credentials('alice').has_credentials
        assert not Credentials().has_credentials

    def test_require_username(self):
        with pytest.raises(ConfigurationError, match='Username'):
            Credentials(password='secret').require_username()

    def test_require_password(self):
        with pytest.raises(ConfigurationError, match='Password'):
            Credentials(username='alice').require_password()


class TestLoadConfig:
    def test_reads_settings_file(self, settings_file):
        config = load_config(settings_file)

        assert isinstance(config, AppConfig)
        assert config.credentials.username == 'alice'
        assert config.credentials.password == 'secret'
        assert config.credentials.client_id is None
        assert config.cache.purge_after == timedelta(days=30)

    def test_environment_overrides_file(self, settings_file, monkeypatch):
        monkeypatch.setenv('OPENSKY_USERNAME', 'bob')
        monkeypatch.setenv('SKYTRACE_CACHE_PURGE', '7 days')

        config = load_config(settings_file)

        assert config.credentials.username == 'bob'
        assert config.credentials.password == 'secret'
        assert config.cache.purge_after == timedelta(days=7)

    def test_client_id_settings_are_loaded(self, tmp_path, monkeypatch):
        path = tmp_path / 'settings.conf'
        path.write_text('[default]\nclient_id = my-app\nclient_secret = s3cret\n')
        monkeypatch.setenv('OPENSKY_CLIENT_ID', 'env-app')

        credentials = load_config(path).credentials
        assert credentials.client_id == 'env-app'
        assert credentials.client_secret == 's3cret'

    def test_missing_default_file_is_not_an_error(self):
        config = load_config()
        assert config.credentials == Credentials()
        assert config.cache.purge_after is None

    def test_default_file_location(self, tmp_path):
        settings = tmp_path / 'config' / 'opensky' / 'settings.conf'
        settings.parent.mkdir(parents=True)
        settings.write_text('[default]\nusername = carol\n')

        if sys.platform.startswith('linux'):
            assert load_config().credentials.username == 'carol'

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match='not found'):
            load_config(tmp_path / 'nope.conf')

    def test_malformed_file(self, tmp_path):
        path = tmp_path / 'settings.conf'
        path.write_text('username = no section header\n')

        with pytest.raises(ConfigurationError, match='Malformed'):
            load_config(path)

    def test_bad_purge_value(self, tmp_path):
        path = tmp_path / 'settings.conf'
        path.write_text('[cache]\npurge = whenever\n')

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_default_template_parses(self, tmp_path):
        path = tmp_path / 'settings.conf'
        path.write_text(DEFAULT_CONFIG)

        config = load_config(path)
        assert not config.credentials.has_credentials
        assert config.cache.purge_after == timedelta(days=90)

    def test_trino_defaults(self, settings_file):
        trino = load_config(settings_file).trino
        assert trino.catalog == 'minio'
        assert trino.schema == 'osky'
        assert trino.oauth_client_id == 'trino-client'
        assert trino.poll_interval_seconds == 0.1


class TestCacheDirectory:
    def test_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv('SKYTRACE_CACHE_DIR', str(tmp_path / 'mine'))
        assert default_cache_dir() == tmp_path / 'mine'

    @pytest.mark.skipif(not sys.platform.startswith('linux'), reason='XDG layout')
    def test_xdg_cache_home(self, tmp_path):
        assert default_cache_dir() == tmp_path / 'xdg-cache' / 'opensky'

    def test_loaded_config_uses_override(self, monkeypatch, tmp_path, settings_file):
        monkeypatch.setenv('SKYTRACE_CACHE_DIR', str(tmp_path / 'mine'))
        assert load_config(settings_file).cache.directory == Path(tmp_path / 'mine')
