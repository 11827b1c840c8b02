import argparse
import json
import sys
import logging
import signal
import time
from datetime import datetime
from typing import Callable, List, Optional

from beatbridge.application.pipeline import TransferPipeline
from beatbridge.application.matching import TrackMatcher
from beatbridge.crosscutting.config import ConfigError, MatcherSettings, SecretManager, get_secret_manager
from beatbridge.crosscutting.logging import CorrelationContext, setup_logging
from beatbridge.crosscutting.reporting import TransferReport, write_report
from beatbridge.domain.entities import Playlist, ProviderName
from beatbridge.domain.errors import ProviderError, TransferError
from beatbridge.domain.ports import MusicProvider
from beatbridge.infrastructure.providers.registry import create_provider

PROVIDER_CHOICES = ['spotify', 'youtube']
LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR']


class CLI:
    """Command Line Interface for BeatBridge."""

    def __init__(self,
                 provider_factory: Optional[Callable[[ProviderName, Optional[str]], MusicProvider]] = None,
                 secret_manager: Optional[SecretManager] = None):
        """Initialize CLI."""
        self.parser = self._create_parser()
        self.provider_factory = provider_factory or create_provider
        self.secret_manager = secret_manager or get_secret_manager()
        self._setup_signal_handlers()
        self._start_time = None

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        parser = argparse.ArgumentParser(
            prog='beatbridge',
            description='Copy playlists between Spotify and YouTube Music'
        )
        parser.add_argument(
            '--env-file',
            help='Load access tokens and settings from this .env file (default: ~/.beatbridge/.env)'
        )
        parser.add_argument(
            '--log-level',
            choices=LOG_LEVELS,
            default='INFO',
            help='Set logging level'
        )
        parser.add_argument(
            '--log-file',
            help='Also write JSON logs to this file'
        )

        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        # Transfer command
        transfer_parser = subparsers.add_parser('transfer', help='Copy one playlist')
        transfer_parser.add_argument(
            '--source',
            choices=PROVIDER_CHOICES,
            required=True,
            help='Source provider'
        )
        transfer_parser.add_argument(
            '--target',
            choices=PROVIDER_CHOICES,
            required=True,
            help='Target provider'
        )
        transfer_parser.add_argument(
            '--playlist',
            required=True,
            help='Source playlist ID or exact name'
        )
        transfer_parser.add_argument(
            '--report-path',
            default=None,
            help='Directory to save a JSON transfer report'
        )

        # List playlists command
        list_parser = subparsers.add_parser('list', help='List available playlists')
        list_parser.add_argument(
            '--provider',
            choices=PROVIDER_CHOICES,
            required=True,
            help='Provider to list playlists from'
        )

        # HTTP server command
        serve_parser = subparsers.add_parser('serve', help='Run the HTTP API')
        serve_parser.add_argument('--host', default='localhost', help='Bind address (default: localhost)')
        serve_parser.add_argument('--port', type=int, default=3000, help='Port (default: 3000)')
        serve_parser.add_argument('--debug', action='store_true', help='Enable Flask debug mode')

        # Configuration summary
        subparsers.add_parser('config', help='Show configuration summary')

        return parser

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        def signal_handler(signum, frame):
            logger = logging.getLogger(__name__)
            logger.warning(f"Received signal {signum}, shutting down")
            self._cleanup_resources()
            sys.exit(130)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def _cleanup_resources(self) -> None:
        logger = logging.getLogger(__name__)
        if self._start_time:
            duration = time.time() - self._start_time
            logger.info(f"CLI execution time: {duration:.2f}s")

    def _validate_arguments(self, args: argparse.Namespace) -> None:
        """Validate CLI arguments."""
        if hasattr(args, 'source') and hasattr(args, 'target'):
            if args.source == args.target:
                raise ValueError("Source and target providers must be different")

    def _create_transfer_id(self) -> str:
        return f"beatbridge_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

    def _create_provider(self, provider: ProviderName) -> MusicProvider:
        token = self.secret_manager.resolve_session_tokens().get(provider)
        return self.provider_factory(provider, token)

    def _find_playlist(self, provider: MusicProvider, playlist_ref: str) -> Playlist:
        """Find a playlist by ID first, then by exact name."""
        playlists = list(provider.list_playlists())
        match = next((p for p in playlists if p.id == playlist_ref), None)
        if not match:
            match = next((p for p in playlists if p.name == playlist_ref), None)
        if not match:
            raise ValueError(f"Playlist '{playlist_ref}' not found")
        return match

    def _transfer_playlist(self, args: argparse.Namespace) -> int:
        """Copy one playlist from source to target."""
        logger = logging.getLogger(__name__)
        source = ProviderName(args.source)
        target = ProviderName(args.target)
        transfer_id = self._create_transfer_id()

        try:
            source_provider = self._create_provider(source)
            target_provider = self._create_provider(target)
            pipeline = TransferPipeline(
                source_provider=source_provider,
                target_provider=target_provider,
                matcher=TrackMatcher.from_settings(MatcherSettings.from_env()),
            )

            with CorrelationContext(transfer_id=transfer_id):
                # Without a token the pipeline reports the missing connection
                if not source_provider.has_token:
                    playlist = Playlist(id=args.playlist, name=args.playlist, owner_provider=source)
                else:
                    playlist = self._find_playlist(source_provider, args.playlist)
                logger.info(f"Transferring playlist: {playlist.name} (ID: {playlist.id})")
                result = pipeline.transfer_playlist(playlist, transfer_id=transfer_id)

        except TransferError as e:
            logger.error(f"Transfer failed: {e.message}")
            return 1
        except (ProviderError, ConfigError, ValueError) as e:
            logger.error(f"Transfer failed: {e}")
            return 1

        print(f"Created {target.display_name} playlist {result.created_playlist_id}")
        print(f"Transferred {result.success}/{result.total} tracks")
        for failed in result.failed:
            artists = ", ".join(failed.track.artists)
            print(f"  FAILED: {failed.track.title} - {artists} ({failed.reason})")

        if args.report_path:
            report_file = write_report(TransferReport.from_result(transfer_id, result), args.report_path)
            logger.info(f"Report saved to: {report_file}")

        return 0

    def _list_playlists(self, args: argparse.Namespace) -> int:
        """List available playlists."""
        logger = logging.getLogger(__name__)
        provider_name = ProviderName(args.provider)

        provider = self._create_provider(provider_name)
        if not provider.has_token:
            logger.error(f"Connect {provider_name.display_name} first")
            return 1

        try:
            playlists = provider.list_playlists()
        except ProviderError as e:
            logger.error(f"Failed to list playlists: {e}")
            return 1

        print(f"Available playlists from {provider_name.display_name}:")
        print("-" * 50)
        for playlist in playlists:
            print(f"{playlist.id}: {playlist.name} (tracks: {playlist.track_count})")
        return 0

    def _serve(self, args: argparse.Namespace) -> int:
        from beatbridge.interfaces.http import HTTPServer

        server = HTTPServer(
            host=args.host,
            port=args.port,
            debug=args.debug,
            provider_factory=self.provider_factory,
            secret_manager=self.secret_manager,
        )
        server.run()
        return 0

    def _show_config(self, args: argparse.Namespace) -> int:
        print(json.dumps(self.secret_manager.get_config_summary(), indent=2))
        return 0

    def run(self, argv: Optional[List[str]] = None) -> None:
        """Run the CLI."""
        self._start_time = time.time()
        exit_code = 0

        try:
            args = self.parser.parse_args(argv)

            if not args.command:
                self.parser.print_help()
                sys.exit(1)

            self.secret_manager.load_env_file(args.env_file)

            setup_logging(args.log_level, log_file=args.log_file)
            self._validate_arguments(args)

            if args.command == 'transfer':
                exit_code = self._transfer_playlist(args)
            elif args.command == 'list':
                exit_code = self._list_playlists(args)
            elif args.command == 'serve':
                exit_code = self._serve(args)
            elif args.command == 'config':
                exit_code = self._show_config(args)

        except KeyboardInterrupt:
            logger = logging.getLogger(__name__)
            logger.warning("Operation cancelled by user")
            exit_code = 130
        except (ValueError, ConfigError) as e:
            logger = logging.getLogger(__name__)
            logger.error(f"CLI error: {e}")
            exit_code = 1
        finally:
            self._cleanup_resources()

        if exit_code:
            sys.exit(exit_code)


def main():
    """Main entry point."""
    cli = CLI()
    cli.run()


if __name__ == '__main__':
    main()
