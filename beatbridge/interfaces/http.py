import os
import logging
import uuid
from typing import Callable, Dict, Any, Optional, Tuple
from datetime import datetime

from flask import Flask, request, jsonify

from beatbridge.application.matching import TrackMatcher
from beatbridge.application.pipeline import TransferPipeline
from beatbridge.crosscutting.config import ConfigError, MatcherSettings, SecretManager, get_secret_manager
from beatbridge.crosscutting.logging import log_error
from beatbridge.crosscutting.reporting import (
    playlist_to_json, transfer_result_to_json, youtube_transfer_to_json
)
from beatbridge.domain.entities import Playlist, ProviderName, TransferResult
from beatbridge.domain.errors import AuthMissing, ProviderError, TransferError
from beatbridge.domain.ports import MusicProvider
from beatbridge.infrastructure.providers.registry import create_provider

VERSION = "0.1.0"

ProviderFactory = Callable[[ProviderName, Optional[str]], MusicProvider]
ResultSerializer = Callable[[TransferResult], Dict[str, Any]]


class HTTPServer:
    """HTTP server exposing playlist listing and transfer endpoints."""

    def __init__(self, host: str = 'localhost', port: int = 3000, debug: bool = False,
                 provider_factory: Optional[ProviderFactory] = None,
                 secret_manager: Optional[SecretManager] = None):
        """Initialize HTTP server."""
        self.host = host
        self.port = port
        self.debug = debug
        self.app = Flask(__name__)
        self.logger = logging.getLogger(__name__)
        self.provider_factory = provider_factory or create_provider
        self.secret_manager = secret_manager or get_secret_manager()

        self.version = VERSION
        self.commit = os.getenv('GIT_COMMIT', 'unknown')

        self._setup_routes()

    def _error(self, message: str, status: int) -> Tuple[Any, int]:
        return jsonify({'error': message}), status

    def _session_tokens(self):
        return self.secret_manager.resolve_session_tokens(request.headers)

    def _provider(self, name: ProviderName) -> MusicProvider:
        return self.provider_factory(name, self._session_tokens().get(name))

    def _list_playlists(self, name: ProviderName):
        provider = self._provider(name)
        if not provider.has_token:
            return self._error(AuthMissing(name).message, 401)

        try:
            playlists = provider.list_playlists()
        except ProviderError as e:
            self.logger.error(f"Failed to list {name.value} playlists: {e}")
            return self._error(f"Could not load {name.display_name} playlists", 502)

        return jsonify({'playlists': [playlist_to_json(p) for p in playlists]}), 200

    def _parse_transfer_body(self, source: ProviderName) -> Optional[Playlist]:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return None
        playlist_id = body.get('playlistId')
        playlist_name = body.get('playlistName')
        if not isinstance(playlist_id, str) or not playlist_id.strip():
            return None
        if not isinstance(playlist_name, str) or not playlist_name.strip():
            return None
        return Playlist(id=playlist_id.strip(), name=playlist_name, owner_provider=source)

    def _transfer(self, source: ProviderName, target: ProviderName, serializer: ResultSerializer):
        source_playlist = self._parse_transfer_body(source)
        if source_playlist is None:
            return self._error('playlistId and playlistName are required', 400)

        transfer_id = uuid.uuid4().hex[:12]
        try:
            tokens = self._session_tokens()
            matcher = TrackMatcher.from_settings(MatcherSettings.from_env())
            pipeline = TransferPipeline(
                source_provider=self.provider_factory(source, tokens.get(source)),
                target_provider=self.provider_factory(target, tokens.get(target)),
                matcher=matcher,
            )
            result = pipeline.transfer_playlist(source_playlist, transfer_id=transfer_id)
        except AuthMissing as e:
            return self._error(e.message, 401)
        except TransferError as e:
            return self._error(e.message, 502)
        except ConfigError as e:
            log_error(self.logger, 'Invalid configuration', e, transfer_id=transfer_id)
            return self._error('Server is misconfigured', 500)
        except Exception as e:
            log_error(self.logger, 'Transfer crashed', e, transfer_id=transfer_id)
            return self._error('Transfer failed', 500)

        return jsonify(serializer(result)), 200

    def _setup_routes(self) -> None:
        """Setup Flask routes."""

        @self.app.errorhandler(ConfigError)
        def config_error(e):
            log_error(self.logger, 'Invalid configuration', e)
            return self._error('Server is misconfigured', 500)

        @self.app.route('/health', methods=['GET'])
        def health_check():
            """Health check endpoint."""
            return jsonify({
                'status': 'healthy',
                'version': self.version,
                'commit': self.commit,
                'timestamp': datetime.now().isoformat()
            }), 200

        @self.app.route('/', methods=['GET'])
        def root():
            """Root endpoint with basic info."""
            return jsonify({
                'service': 'BeatBridge HTTP Interface',
                'version': self.version,
                'endpoints': {
                    'health': '/health',
                    'session': '/api/session',
                    'spotify_playlists': '/api/spotify/playlists',
                    'google_playlists': '/api/google/playlists',
                    'transfer': '/api/transfer',
                    'transfer_from_youtube': '/api/transfer-from-youtube',
                }
            }), 200

        @self.app.route('/api/session', methods=['GET'])
        def session_status():
            """Which providers the current user has connected."""
            tokens = self._session_tokens()
            return jsonify({
                'providers': {
                    'spotify': tokens.has(ProviderName.SPOTIFY),
                    'google': tokens.has(ProviderName.YOUTUBE),
                }
            }), 200

        @self.app.route('/api/spotify/playlists', methods=['GET'])
        def spotify_playlists():
            return self._list_playlists(ProviderName.SPOTIFY)

        @self.app.route('/api/google/playlists', methods=['GET'])
        def google_playlists():
            return self._list_playlists(ProviderName.YOUTUBE)

        @self.app.route('/api/transfer', methods=['POST'])
        def transfer_to_youtube():
            """Copy a Spotify playlist to YouTube."""
            return self._transfer(ProviderName.SPOTIFY, ProviderName.YOUTUBE, transfer_result_to_json)

        @self.app.route('/api/transfer-from-youtube', methods=['POST'])
        def transfer_to_spotify():
            """Copy a YouTube playlist to Spotify."""
            return self._transfer(ProviderName.YOUTUBE, ProviderName.SPOTIFY, youtube_transfer_to_json)

    def run(self) -> None:
        """Run the HTTP server."""
        self.logger.info(f"Starting BeatBridge HTTP server on {self.host}:{self.port}")
        self.app.run(
            host=self.host,
            port=self.port,
            debug=self.debug
        )


def create_app(**kwargs) -> Flask:
    """Create Flask app (used by WSGI servers and tests)."""
    server = HTTPServer(**kwargs)
    return server.app


if __name__ == '__main__':
    server = HTTPServer()
    server.run()
