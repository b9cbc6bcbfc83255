import logging
import os
from datetime import datetime
from typing import Optional

from flask import Flask, jsonify, request

from playlist_bridge.crosscutting.config import load_config
from playlist_bridge.crosscutting.logging import log_error, setup_logging
from playlist_bridge.domain.entities import ConversionRequest
from playlist_bridge.domain.errors import AuthError, ConversionError, InputError, UnexpectedError
from playlist_bridge.infrastructure.registry import ConverterServices, build_services

VERSION = '0.1.0'
USER_ID_HEADER = 'X-User-Id'


class HTTPServer:
    """HTTP server exposing playlist conversion, listing and health checks."""

    def __init__(self, services: Optional[ConverterServices] = None,
                 host: str = 'localhost', port: int = 3000, debug: bool = False):
        """Initialize HTTP server.

        Args:
            services: Wired pipeline and listing services; built from the
                environment when omitted
            host: Interface to bind
            port: Port to bind
            debug: Run Flask in debug mode
        """
        self.services = services or build_services(load_config())
        self.host = host
        self.port = port
        self.debug = debug
        self.app = Flask(__name__)
        self.logger = logging.getLogger(__name__)

        self.version = VERSION
        self.commit = os.getenv('GIT_COMMIT', 'unknown')

        self._setup_routes()

    def _error_response(self, error: ConversionError):
        return jsonify(error.to_json()), error.status_code

    def _caller_id(self) -> Optional[str]:
        user_id = request.headers.get(USER_ID_HEADER, '').strip()
        return user_id or None

    def _setup_routes(self) -> None:
        """Setup Flask routes."""

        @self.app.route('/api/convert', methods=['POST'])
        def convert():
            """Convert a playlist to another platform."""
            try:
                body = request.get_json(silent=True)
                if not isinstance(body, dict):
                    raise InputError("Request body must be a JSON object", code='INVALID_REQUEST')

                url = body.get('url')
                target = body.get('targetPlatform')
                if not url or not target:
                    raise InputError("Missing required fields: url and targetPlatform",
                                     code='INVALID_REQUEST')

                create_playlist = body.get('createPlaylist', False)
                if not isinstance(create_playlist, bool):
                    raise InputError("createPlaylist must be a boolean", code='INVALID_REQUEST')

                conversion = ConversionRequest(
                    url=str(url),
                    target_platform=str(target),
                    create_playlist=create_playlist,
                    user_id=self._caller_id(),
                )
                result = self.services.pipeline.convert(conversion)
                return jsonify(result.to_json()), 200

            except ConversionError as e:
                return self._error_response(e)
            except Exception as e:
                log_error(self.logger, "Convert request failed", e)
                return self._error_response(UnexpectedError())

        @self.app.route('/api/playlists/<provider>', methods=['GET'])
        def list_playlists(provider: str):
            """List the caller's playlists on a linked provider."""
            try:
                user_id = self._caller_id()
                if not user_id:
                    raise AuthError("Not authenticated", code='UNAUTHENTICATED')

                playlists = self.services.listing.list_playlists(user_id, provider)
                return jsonify({
                    'playlists': [p.to_json() for p in playlists],
                    'source': provider,
                }), 200

            except ConversionError as e:
                return self._error_response(e)
            except Exception as e:
                log_error(self.logger, f"Listing {provider} playlists failed", e)
                return self._error_response(UnexpectedError())

        @self.app.route('/health', methods=['GET'])
        def health_check():
            """Health check endpoint."""
            return jsonify({
                'status': 'healthy',
                'version': self.version,
                'commit': self.commit,
                'timestamp': datetime.now().isoformat(),
                'providers': self.services.config.summary()['providers_ready'],
                'metrics': self.services.metrics.snapshot(),
            }), 200

        @self.app.route('/', methods=['GET'])
        def root():
            """Root endpoint with basic info."""
            return jsonify({
                'service': 'Playlist Bridge HTTP Interface',
                'version': self.version,
                'endpoints': {
                    'convert': '/api/convert',
                    'playlists': '/api/playlists/<provider>',
                    'health': '/health',
                }
            }), 200

    def run(self, log_level: str = 'INFO') -> None:
        """Run the HTTP server."""
        setup_logging(log_level)
        self.logger.info(f"Starting Playlist Bridge HTTP server on {self.host}:{self.port}")
        self.app.run(
            host=self.host,
            port=self.port,
            debug=self.debug
        )


def create_app(services: Optional[ConverterServices] = None) -> Flask:
    """Create Flask app for testing."""
    server = HTTPServer(services=services)
    return server.app


if __name__ == '__main__':
    server = HTTPServer()
    server.run()
