"""
Rescale Proxy.

A caching reverse proxy for rescaled images. Images are fetched from an
upstream rescaling service, cached in memory and on disk, and served from
cache on repeated requests.

Usage:
    # Start server
    rescale-proxy serve

    # Check configuration and disk cache
    rescale-proxy info
"""

__version__ = "0.1.0"

from .server import create_app

__all__ = [
    "create_app",
]
