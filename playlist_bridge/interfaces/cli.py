import argparse
import json
import logging
import sys
import time
from dataclasses import replace
from typing import Any, Dict, List, Optional

from playlist_bridge.crosscutting.config import ConfigError, ConverterConfig, load_config
from playlist_bridge.crosscutting.logging import setup_logging
from playlist_bridge.domain.entities import ConversionRequest, ProviderId
from playlist_bridge.domain.errors import ConversionError
from playlist_bridge.infrastructure.registry import ConverterServices, build_services

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


class CLI:
    """Command Line Interface for Playlist Bridge."""

    def __init__(self, services: Optional[ConverterServices] = None):
        """Initialize CLI.

        Args:
            services: Pre-wired services; built from --env-file and the
                environment when omitted
        """
        self.services = services
        self.parser = self._create_parser()
        self._start_time = None

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        parser = argparse.ArgumentParser(
            prog='playlist-bridge',
            description='Convert music playlists between streaming platforms'
        )
        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        convert_parser = subparsers.add_parser('convert', help='Convert a playlist')
        convert_parser.add_argument('url', help='Source playlist URL')
        convert_parser.add_argument(
            '--target',
            choices=[p.value for p in ProviderId],
            required=True,
            help='Target platform'
        )
        convert_parser.add_argument(
            '--create',
            action='store_true',
            help='Create the converted playlist in the user\'s account'
        )
        convert_parser.add_argument(
            '--user-id',
            help='User whose linked account receives the playlist (required with --create)'
        )
        convert_parser.add_argument(
            '--env-file',
            help='Path to a .env file with provider credentials'
        )
        convert_parser.add_argument(
            '--credentials-file',
            help='Path to the JSON credential store'
        )
        self._add_log_level(convert_parser)

        serve_parser = subparsers.add_parser('serve', help='Run the HTTP server')
        serve_parser.add_argument('--host', default='localhost', help='Interface to bind (default: localhost)')
        serve_parser.add_argument('--port', type=int, default=3000, help='Port to bind (default: 3000)')
        serve_parser.add_argument('--debug', action='store_true', help='Run Flask in debug mode')
        serve_parser.add_argument('--env-file', help='Path to a .env file with provider credentials')
        self._add_log_level(serve_parser)

        return parser

    @staticmethod
    def _add_log_level(parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            '--log-level',
            choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
            default='WARNING',
            help='Set logging level (default: WARNING)'
        )

    def _validate_arguments(self, args: argparse.Namespace) -> None:
        """Validate CLI arguments; exits with status 2 on misuse."""
        if args.command == 'convert' and args.create and not args.user_id:
            self.parser.error("--create requires --user-id")

    def _load_services(self, args: argparse.Namespace) -> ConverterServices:
        if self.services is not None:
            return self.services

        config: ConverterConfig = load_config(env_file=getattr(args, 'env_file', None))
        credentials_file = getattr(args, 'credentials_file', None)
        if credentials_file:
            config = replace(config, credentials_file=credentials_file)
        return build_services(config)

    def _print_json(self, payload: Dict[str, Any], stream=None) -> None:
        print(json.dumps(payload, indent=2, ensure_ascii=False), file=stream or sys.stdout)

    def _convert(self, args: argparse.Namespace) -> int:
        """Run one conversion and print the result JSON."""
        logger = logging.getLogger(__name__)
        services = self._load_services(args)

        conversion = ConversionRequest(
            url=args.url,
            target_platform=args.target,
            create_playlist=args.create,
            user_id=args.user_id,
        )
        try:
            result = services.pipeline.convert(conversion)
        except ConversionError as e:
            logger.error(f"Conversion failed: {e.message}")
            self._print_json(e.to_json(), sys.stderr)
            return EXIT_FAILURE

        self._print_json(result.to_json())
        return EXIT_OK

    def _serve(self, args: argparse.Namespace) -> int:
        from playlist_bridge.interfaces.http import HTTPServer

        server = HTTPServer(services=self._load_services(args),
                            host=args.host, port=args.port, debug=args.debug)
        server.run(log_level=args.log_level)
        return EXIT_OK

    def _cleanup_resources(self) -> None:
        logger = logging.getLogger(__name__)
        if self._start_time:
            duration = time.time() - self._start_time
            logger.info(f"CLI execution time: {duration:.2f}s")

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Run the CLI and return the process exit code."""
        self._start_time = time.time()
        args = self.parser.parse_args(argv)

        if not args.command:
            self.parser.print_help()
            return EXIT_USAGE

        self._validate_arguments(args)
        setup_logging(args.log_level)

        try:
            if args.command == 'convert':
                return self._convert(args)
            return self._serve(args)
        except ConfigError as e:
            logging.getLogger(__name__).error(f"Configuration error: {e}")
            self._print_json({'error': {'message': str(e), 'code': 'CONFIG_ERROR'}}, sys.stderr)
            return EXIT_FAILURE
        except KeyboardInterrupt:
            logging.getLogger(__name__).warning("Operation cancelled by user")
            return EXIT_INTERRUPTED
        finally:
            self._cleanup_resources()


def main():
    """Main entry point."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()
