"""
=============================================================================
FILESERVER - Minimal HTTP/1.1 File Server
=============================================================================

Serves files from a root directory over plain HTTP/1.1, one client at a
time, using raw Python sockets.

=============================================================================
WHAT IT DOES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. Bind a TCP listener (default port 8080)                        │
    │   2. Accept one client                                              │
    │   3. Read and parse the request line: METHOD PATH VERSION           │
    │   4. GET only (501 otherwise), no ".." in paths (400)               │
    │   5. "/" → default file; otherwise root directory + path            │
    │   6. Stream the file with its MIME type and exact length (200),     │
    │      or send a small HTML error page (400/404/500/501)              │
    │   7. Close the connection, go back to step 2                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

No keep-alive, no threads, no request headers interpreted.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    fileserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m fileserver)
    ├── server.py            # FileServer orchestrator
    ├── config.py            # ServerConfig dataclass + INI loader
    ├── core/
    │   ├── socket_server.py # Listening socket, sequential accept loop
    │   └── connection.py    # Per-client read/write/close
    ├── http/
    │   ├── request.py       # Request-line parsing
    │   ├── response.py      # Responses and error pages
    │   ├── status_codes.py  # HTTP status enum
    │   └── mime_types.py    # Extension → MIME type table
    └── handlers/
        └── static.py        # Request → file or error response

=============================================================================
QUICK START
=============================================================================

    from fileserver import FileServer, ServerConfig

    server = FileServer(ServerConfig(port=8080, root_directory="./public"))
    server.run()

    # or, from a config file
    from fileserver import load_config
    FileServer(load_config("server.ini")).run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig, load_config
from .server import FileServer

__all__ = ["FileServer", "ServerConfig", "load_config", "__version__"]
