import json
import os
import tempfile

import pytest

from beatbridge.crosscutting import config as config_module
from beatbridge.crosscutting.config import (
    ConfigError, MatcherSettings, SecretManager, SessionTokens, setup_config, get_secret_manager
)
from beatbridge.domain.entities import ProviderName


class TestSecretManager:
    """Tests for token storage and resolution."""

    def setup_method(self):
        """Set up test fixtures."""
        self.temp_dir = tempfile.TemporaryDirectory()
        self.config_dir = os.path.join(self.temp_dir.name, 'config')
        self.manager = SecretManager(self.config_dir)

    def teardown_method(self):
        self.temp_dir.cleanup()

    def test_init_does_not_create_directory(self):
        assert not os.path.exists(self.config_dir)
        assert str(self.manager.tokens_file).endswith('tokens.json')

    def test_load_tokens_without_file(self):
        assert self.manager.load_tokens() == {}
        assert self.manager.get_access_token(ProviderName.SPOTIFY) is None

    def test_save_and_get_access_token(self):
        self.manager.save_access_token(ProviderName.YOUTUBE, 'ya29.google')
        self.manager.save_access_token(ProviderName.SPOTIFY, 'BQspotify')

        with open(self.manager.tokens_file, encoding='utf-8') as f:
            stored = json.load(f)

        assert stored == {'google': {'access_token': 'ya29.google'}, 'spotify': {'access_token': 'BQspotify'}}
        assert self.manager.get_access_token(ProviderName.YOUTUBE) == 'ya29.google'

    def test_save_tokens_merges_existing(self):
        self.manager.save_tokens({'spotify': {'access_token': 'one'}})
        self.manager.save_tokens({'extra': {'value': 1}})

        assert set(self.manager.load_tokens()) == {'spotify', 'extra'}

    def test_invalid_json_raises_config_error(self):
        os.makedirs(self.config_dir)
        with open(self.manager.tokens_file, 'w', encoding='utf-8') as f:
            f.write('{not json')

        with pytest.raises(ConfigError):
            self.manager.load_tokens()

    def test_clear_tokens(self):
        self.manager.save_access_token(ProviderName.SPOTIFY, 'BQspotify')

        self.manager.clear_tokens()

        assert not self.manager.tokens_file.exists()
        self.manager.clear_tokens()

    def test_resolve_prefers_headers_then_env_then_file(self):
        self.manager.save_access_token(ProviderName.SPOTIFY, 'from-file')
        self.manager.save_access_token(ProviderName.YOUTUBE, 'google-from-file')

        tokens = self.manager.resolve_session_tokens(
            headers={'X-Spotify-Access-Token': 'from-header'},
            environ={'SPOTIFY_ACCESS_TOKEN': 'from-env', 'GOOGLE_ACCESS_TOKEN': 'google-from-env'},
        )
        assert tokens == SessionTokens(spotify='from-header', google='google-from-env')

        tokens = self.manager.resolve_session_tokens(headers={}, environ={})
        assert tokens == SessionTokens(spotify='from-file', google='google-from-file')

    def test_blank_values_are_ignored(self):
        tokens = self.manager.resolve_session_tokens(
            headers={'X-Google-Access-Token': '   '},
            environ={'GOOGLE_ACCESS_TOKEN': ''},
        )

        assert not tokens.has(ProviderName.YOUTUBE)
        assert tokens.get(ProviderName.YOUTUBE) is None

    def test_validate_configuration_uses_environment(self, monkeypatch):
        monkeypatch.setenv('SPOTIFY_ACCESS_TOKEN', 'BQspotify')

        assert self.manager.validate_configuration() == {'spotify_token': True, 'google_token': False}

    def test_config_summary_hides_token_values(self, monkeypatch):
        monkeypatch.setenv('GOOGLE_ACCESS_TOKEN', 'ya29.very-secret-value')

        summary = self.manager.get_config_summary()

        assert 'ya29.very-secret-value' not in json.dumps(summary)
        assert summary['validation']['google_token'] is True
        assert summary['matcher'] == {'search_limit': 10, 'min_score': 0.5, 'duration_window_ms': 5000}
        assert 'playlist-modify-private' in summary['spotify_scopes']

    def test_load_env_file_from_config_dir(self):
        os.makedirs(self.config_dir)
        with open(self.manager.env_file, 'w', encoding='utf-8') as f:
            f.write('SPOTIFY_ACCESS_TOKEN=BQfromdotenv\n')

        assert self.manager.load_env_file() is True
        assert os.environ['SPOTIFY_ACCESS_TOKEN'] == 'BQfromdotenv'

    def test_load_env_file_keeps_existing_environment(self, monkeypatch):
        monkeypatch.setenv('SPOTIFY_ACCESS_TOKEN', 'from-shell')
        env_file = os.path.join(self.temp_dir.name, 'custom.env')
        with open(env_file, 'w', encoding='utf-8') as f:
            f.write('SPOTIFY_ACCESS_TOKEN=from-file\n')

        assert self.manager.load_env_file(env_file) is True
        assert os.environ['SPOTIFY_ACCESS_TOKEN'] == 'from-shell'

    def test_load_env_file_missing(self):
        assert self.manager.load_env_file() is False
        with pytest.raises(ConfigError):
            self.manager.load_env_file(os.path.join(self.temp_dir.name, 'missing.env'))


class TestMatcherSettings:
    """Tests for matcher settings from the environment."""

    def test_defaults(self):
        assert MatcherSettings.from_env({}) == MatcherSettings(search_limit=10, min_score=0.5,
                                                               duration_window_ms=5000)

    def test_values_from_env(self):
        settings = MatcherSettings.from_env({
            'BEATBRIDGE_SEARCH_LIMIT': '5',
            'BEATBRIDGE_MIN_SCORE': '0.75',
            'BEATBRIDGE_DURATION_WINDOW_MS': '3000',
        })

        assert settings == MatcherSettings(search_limit=5, min_score=0.75, duration_window_ms=3000)

    @pytest.mark.parametrize('env', [
        {'BEATBRIDGE_SEARCH_LIMIT': 'ten'},
        {'BEATBRIDGE_SEARCH_LIMIT': '0'},
        {'BEATBRIDGE_MIN_SCORE': '1.5'},
        {'BEATBRIDGE_DURATION_WINDOW_MS': '-1'},
    ])
    def test_invalid_values_raise_config_error(self, env):
        with pytest.raises(ConfigError):
            MatcherSettings.from_env(env)


def test_setup_config_replaces_global_instance():
    original = get_secret_manager()
    try:
        with tempfile.TemporaryDirectory() as temp_dir:
            manager = setup_config(temp_dir)
            assert get_secret_manager() is manager
            assert manager.config_dir == config_module.Path(temp_dir)
    finally:
        config_module.secret_manager = original
