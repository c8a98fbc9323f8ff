"""
Middleware modules for the HeritageWhisper server.
"""

from .logfire_middleware import LogfireMiddleware

__all__ = ["LogfireMiddleware"]
