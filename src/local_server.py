"""
Development server for the portfolio site.

Serves the static front end from STATIC_DIR and forwards /api/* requests to
handler.lambda_handler, translated into API Gateway proxy events.

Usage:
    python src/local_server.py        # honours PORT (default 3001) and .env
"""

import functools
import http.server
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict
from urllib.parse import urlsplit

from dotenv import load_dotenv

# Load .env before reading any settings
load_dotenv()

import handler  # noqa: E402
from config import Settings  # noqa: E402
from integrations.mail_transport import TransportConfigurationError  # noqa: E402

logger = logging.getLogger(__name__)


def build_event(method: str, raw_path: str, headers: Dict[str, str], body: bytes) -> Dict[str, Any]:
    """Translate an HTTP request into a REST API proxy event."""
    parts = urlsplit(raw_path)
    return {
        'httpMethod': method,
        'path': parts.path,
        'rawQueryString': parts.query,
        'headers': headers,
        'body': body.decode('utf-8', errors='replace') if body else None,
        'isBase64Encoded': False,
    }


class PortfolioRequestHandler(http.server.SimpleHTTPRequestHandler):
    """Static files plus the JSON API."""

    def _is_api(self) -> bool:
        return urlsplit(self.path).path.startswith('/api/')

    def _dispatch_api(self) -> None:
        length = int(self.headers.get('Content-Length') or 0)
        body = self.rfile.read(length) if length else b''
        event = build_event(self.command, self.path, dict(self.headers.items()), body)

        response = handler.lambda_handler(event, None)
        payload = response.get('body', '').encode('utf-8')

        self.send_response(response['statusCode'])
        for name, value in response.get('headers', {}).items():
            self.send_header(name, value)
        self.send_header('Content-Length', str(len(payload)))
        self.end_headers()
        if self.command != 'HEAD':
            self.wfile.write(payload)

    def do_GET(self):
        if self._is_api():
            return self._dispatch_api()

        # Unknown front-end paths fall back to the single page
        target = Path(self.translate_path(self.path))
        if not target.exists():
            self.path = '/index.html'
        return super().do_GET()

    def list_directory(self, path):
        # Directories without their own index.html also get the single page
        self.path = '/index.html'
        return super().send_head()

    def do_POST(self):
        if self._is_api():
            return self._dispatch_api()
        self.send_error(405, 'Method not allowed')

    def do_OPTIONS(self):
        self._dispatch_api()

    def do_PUT(self):
        self._dispatch_api()

    def do_PATCH(self):
        self._dispatch_api()

    def do_DELETE(self):
        self._dispatch_api()

    def log_message(self, format, *args):
        logger.info(f"{self.address_string()} - {format % args}")


def main() -> int:
    settings = Settings.from_env()

    # Choose the mail transport once, before serving requests
    try:
        handler.processor = handler.build_processor(settings)
    except TransportConfigurationError as e:
        logger.error(f"Email configuration error: {e}")
        return 1

    static_dir = os.path.abspath(settings.static_dir)
    if not os.path.isdir(static_dir):
        logger.warning(f"Static directory not found: {static_dir}")

    request_handler = functools.partial(PortfolioRequestHandler, directory=static_dir)
    server = http.server.ThreadingHTTPServer(('', settings.port), request_handler)

    logger.info("=" * 50)
    logger.info("PORTFOLIO SERVER")
    logger.info(f"Server: http://localhost:{settings.port}")
    logger.info(f"Email:  {'Configured' if handler.processor.email_configured else 'Not configured'}")
    logger.info("=" * 50)

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Server shutting down...")
    finally:
        server.server_close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
