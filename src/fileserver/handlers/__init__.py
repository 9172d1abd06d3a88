"""
Request handlers.

    StaticFileHandler - maps a parsed request onto a file under the root
                        directory and builds the response.
"""

from .static import StaticFileHandler

__all__ = [
    "StaticFileHandler",
]
