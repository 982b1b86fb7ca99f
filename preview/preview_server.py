"""Local preview server for the exported site."""

import logging
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import unquote

logger = logging.getLogger('portfolio_export.preview')

DEFAULT_HOST = '127.0.0.1'
DEFAULT_PORT = 3000

MIME_TYPES = {
    '.html': 'text/html; charset=utf-8',
    '.css': 'text/css; charset=utf-8',
    '.js': 'application/javascript; charset=utf-8',
    '.json': 'application/json',
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.svg': 'image/svg+xml',
    '.ico': 'image/x-icon',
    '.webp': 'image/webp',
    '.pdf': 'application/pdf',
    '.woff': 'font/woff',
    '.woff2': 'font/woff2',
}
DEFAULT_MIME_TYPE = 'application/octet-stream'


def content_type(path: Path) -> str:
    return MIME_TYPES.get(path.suffix.lower(), DEFAULT_MIME_TYPE)


def resolve_request(root: Path, raw_path: str) -> Tuple[int, Optional[Path]]:
    """
    Map a request path to a file under ``root``.

    Resolution order: the exact file, then ``<path>/index.html``, then the
    site's ``404.html`` served with status 404. Without a 404 page the
    result is a bare 404 (path None). Paths escaping ``root`` are not found.

    Args:
        root: Output directory being served
        raw_path: Request target, possibly with query string or fragment

    Returns:
        Tuple of (HTTP status, file to send or None)
    """
    root = Path(root).resolve()
    path = raw_path.split('?', 1)[0].split('#', 1)[0]
    path = unquote(path)

    try:
        candidate = (root / path.lstrip('/')).resolve()
        inside = candidate == root or candidate.is_relative_to(root)
    except (OSError, ValueError):
        # NUL bytes and over-long names cannot name a file
        logger.debug(f"Rejected unusable path: {raw_path!r}")
        candidate, inside = None, False

    if inside:
        if candidate.is_file():
            return HTTPStatus.OK, candidate
        index = candidate / 'index.html'
        if index.is_file():
            return HTTPStatus.OK, index
    elif candidate is not None:
        logger.debug(f"Rejected path outside output directory: {raw_path}")

    not_found = root / '404.html'
    if not_found.is_file():
        return HTTPStatus.NOT_FOUND, not_found
    return HTTPStatus.NOT_FOUND, None


class PreviewRequestHandler(BaseHTTPRequestHandler):
    """Serves files of ``root`` with the index and 404 fallbacks."""

    root: Path = Path('dist')

    def do_GET(self):
        self._respond(send_body=True)

    def do_HEAD(self):
        self._respond(send_body=False)

    def _respond(self, send_body: bool) -> None:
        status, path = resolve_request(self.root, self.path)

        if path is None:
            self.send_response(status)
            self.send_header('Content-Length', '0')
            self.end_headers()
            return

        body = path.read_bytes()
        self.send_response(status)
        self.send_header('Content-Type', content_type(path))
        self.send_header('Content-Length', str(len(body)))
        self.end_headers()
        if send_body:
            self.wfile.write(body)

    def log_message(self, format, *args):
        logger.debug(f"{self.address_string()} {format % args}")


def create_server(root: Path, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> HTTPServer:
    """
    Bind a single-threaded preview server for ``root``.

    Args:
        root: Output directory to serve
        host: Bind address
        port: Bind port (0 picks a free port)

    Returns:
        Bound HTTPServer, not yet serving
    """
    handler = type('BoundPreviewRequestHandler', (PreviewRequestHandler,), {'root': Path(root).resolve()})
    return HTTPServer((host, port), handler)


def serve(root: Path, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    """Serve ``root`` until interrupted."""
    root = Path(root)
    if not root.is_dir():
        logger.warning(f"Output directory {root} does not exist; every request will be a 404")

    with create_server(root, host, port) as httpd:
        bound_host, bound_port = httpd.server_address[:2]
        print(f"Serving {root} at http://{bound_host}:{bound_port}/")
        print("Press Ctrl+C to stop")
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            print("\nStopping...")


__all__ = ['MIME_TYPES', 'content_type', 'resolve_request', 'create_server', 'serve']
