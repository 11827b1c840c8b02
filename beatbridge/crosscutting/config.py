import os
import json
from dataclasses import dataclass
from typing import Dict, Any, Mapping, Optional
from pathlib import Path

from dotenv import load_dotenv

from beatbridge.domain.entities import ProviderName


class ConfigError(Exception):
    """Configuration error."""
    pass


# Request headers carrying per-user access tokens from the auth collaborator
TOKEN_HEADERS = {
    ProviderName.SPOTIFY: 'X-Spotify-Access-Token',
    ProviderName.YOUTUBE: 'X-Google-Access-Token',
}

TOKEN_ENV_VARS = {
    ProviderName.SPOTIFY: 'SPOTIFY_ACCESS_TOKEN',
    ProviderName.YOUTUBE: 'GOOGLE_ACCESS_TOKEN',
}

# Keys used in tokens.json; YouTube tokens come from the Google account
TOKEN_STORE_KEYS = {
    ProviderName.SPOTIFY: 'spotify',
    ProviderName.YOUTUBE: 'google',
}


@dataclass(frozen=True)
class SessionTokens:
    """Access tokens for the current user, one per provider."""

    spotify: Optional[str] = None
    google: Optional[str] = None

    def get(self, provider: ProviderName) -> Optional[str]:
        return self.spotify if provider is ProviderName.SPOTIFY else self.google

    def has(self, provider: ProviderName) -> bool:
        return bool(self.get(provider))


@dataclass(frozen=True)
class MatcherSettings:
    """Tunable matching parameters."""

    search_limit: int = 10
    min_score: float = 0.5
    duration_window_ms: int = 5000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MatcherSettings":
        env = os.environ if environ is None else environ
        try:
            search_limit = int(env.get('BEATBRIDGE_SEARCH_LIMIT', cls.search_limit))
            min_score = float(env.get('BEATBRIDGE_MIN_SCORE', cls.min_score))
            duration_window_ms = int(env.get('BEATBRIDGE_DURATION_WINDOW_MS', cls.duration_window_ms))
        except ValueError as e:
            raise ConfigError(f"Invalid matcher setting: {e}")

        if search_limit < 1:
            raise ConfigError("BEATBRIDGE_SEARCH_LIMIT must be at least 1")
        if not 0.0 <= min_score <= 1.0:
            raise ConfigError("BEATBRIDGE_MIN_SCORE must be between 0 and 1")
        if duration_window_ms < 0:
            raise ConfigError("BEATBRIDGE_DURATION_WINDOW_MS must not be negative")

        return cls(search_limit=search_limit, min_score=min_score, duration_window_ms=duration_window_ms)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None or not str(value).strip():
        return None
    return str(value).strip()


class SecretManager:
    """Manages access tokens and local configuration."""

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize secret manager."""
        self.config_dir = Path(config_dir) if config_dir else Path.home() / '.beatbridge'
        self.tokens_file = self.config_dir / 'tokens.json'
        self.env_file = self.config_dir / '.env'

    def load_env_file(self, path: Optional[str] = None) -> bool:
        """Load variables from ``path`` or the config dir .env into the environment.

        Variables already set in the environment win. Returns whether a file was loaded.
        """
        env_path = Path(path) if path else self.env_file
        if not env_path.exists():
            if path:
                raise ConfigError(f"Env file not found: {env_path}")
            return False
        load_dotenv(env_path, override=False)
        return True

    def get_spotify_scopes(self) -> list:
        """Get minimal required Spotify scopes."""
        return [
            'playlist-read-private',      # Read private playlists
            'playlist-modify-public',     # Create/modify public playlists
            'playlist-modify-private',    # Create/modify private playlists
        ]

    def get_google_scopes(self) -> list:
        """Get required YouTube Data API scopes."""
        return ['https://www.googleapis.com/auth/youtube']

    def load_tokens(self) -> Dict[str, Any]:
        """Load tokens from tokens.json file."""
        if not self.tokens_file.exists():
            return {}

        try:
            with open(self.tokens_file, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            raise ConfigError(f"Failed to load tokens from {self.tokens_file}: {e}")

    def save_tokens(self, tokens: Dict[str, Any]) -> None:
        """Merge tokens into tokens.json file."""
        try:
            existing_tokens = self.load_tokens()
            existing_tokens.update(tokens)

            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.tokens_file, 'w', encoding='utf-8') as f:
                json.dump(existing_tokens, f, indent=2, ensure_ascii=False)

        except ConfigError:
            raise
        except (IOError, OSError, TypeError) as e:
            raise ConfigError(f"Failed to save tokens to {self.tokens_file}: {e}")

    def get_access_token(self, provider: ProviderName) -> Optional[str]:
        """Get the stored access token for a provider."""
        entry = self.load_tokens().get(TOKEN_STORE_KEYS[provider]) or {}
        return _clean(entry.get('access_token'))

    def save_access_token(self, provider: ProviderName, access_token: str) -> None:
        """Store the access token for a provider."""
        self.save_tokens({
            TOKEN_STORE_KEYS[provider]: {
                'access_token': access_token
            }
        })

    def resolve_session_tokens(self, headers: Optional[Mapping[str, str]] = None,
                               environ: Optional[Mapping[str, str]] = None) -> SessionTokens:
        """Resolve tokens from request headers, then env vars, then tokens.json."""
        headers = headers or {}
        env = os.environ if environ is None else environ

        resolved = {}
        for provider in ProviderName:
            token = _clean(headers.get(TOKEN_HEADERS[provider]))
            if token is None:
                token = _clean(env.get(TOKEN_ENV_VARS[provider]))
            if token is None:
                token = self.get_access_token(provider)
            resolved[provider] = token

        return SessionTokens(
            spotify=resolved[ProviderName.SPOTIFY],
            google=resolved[ProviderName.YOUTUBE],
        )

    def validate_configuration(self) -> Dict[str, bool]:
        """Report which provider tokens are available."""
        tokens = self.resolve_session_tokens()
        return {
            'spotify_token': tokens.has(ProviderName.SPOTIFY),
            'google_token': tokens.has(ProviderName.YOUTUBE),
        }

    def get_config_summary(self) -> Dict[str, Any]:
        """Get configuration summary (without sensitive data)."""
        validation = self.validate_configuration()
        settings = MatcherSettings.from_env()

        return {
            'config_dir': str(self.config_dir),
            'tokens_file': str(self.tokens_file),
            'env_file': str(self.env_file),
            'validation': validation,
            'spotify_scopes': self.get_spotify_scopes(),
            'google_scopes': self.get_google_scopes(),
            'matcher': {
                'search_limit': settings.search_limit,
                'min_score': settings.min_score,
                'duration_window_ms': settings.duration_window_ms,
            },
        }

    def clear_tokens(self) -> None:
        """Clear all stored tokens."""
        if self.tokens_file.exists():
            self.tokens_file.unlink()


# Global instance
secret_manager = SecretManager()


def get_secret_manager() -> SecretManager:
    """Get global secret manager instance."""
    return secret_manager


def setup_config(config_dir: Optional[str] = None) -> SecretManager:
    """Setup configuration with custom directory."""
    global secret_manager
    secret_manager = SecretManager(config_dir)
    return secret_manager
