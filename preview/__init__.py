"""Local preview of the exported site."""

from .preview_server import create_server, resolve_request, serve

__all__ = ['create_server', 'resolve_request', 'serve']
