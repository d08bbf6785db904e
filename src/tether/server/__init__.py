"""HTTP/JSON transport for the ResourceProvider service."""

from tether.server.app import create_app

__all__ = ["create_app"]
