"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Everything the server needs to know before it binds a socket.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m fileserver --port 3000                          │
    │                                                                      │
    │   2. Configuration file ([Server] section)                          │
    │      └── python -m fileserver /etc/fileserver.ini                  │
    │                                                                      │
    │   3. Hard-coded defaults                                            │
    │      └── ServerConfig() field defaults                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONFIG FILE FORMAT
=============================================================================

    ; comments start with ';' or '#'
    [Server]
    Port = 8080
    RootDirectory = /var/www/html
    DefaultFile = index.html
    MaxConnections = 10
    Host = 0.0.0.0

Only the [Server] section is read. Keys are case-insensitive.

The loader never fails: a missing file, a missing section, a malformed
line, or a bad value each log a warning and leave the affected settings at
their defaults.

=============================================================================
"""

import configparser
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


logger = logging.getLogger(__name__)


SERVER_SECTION = "Server"
DEFAULT_CONFIG_PATH = "/usr/share/server/config.ini"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    CONTENT
    - root_directory, default_file

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces
    - "127.0.0.1" - Localhost only
    """

    port: int = 8080
    """
    The port number to listen on. 0 lets the OS pick a free port.
    """

    backlog: int = 10
    """
    Maximum number of pending connections (the MaxConnections key).
    Connections beyond this are refused while we serve the current client.
    """

    buffer_size: int = 1024
    """
    Bytes read from the client per request, and chunk size when
    streaming a file. The request line must fit in one buffer.
    """

    timeout: Optional[float] = 30.0
    """
    Per-client socket timeout in seconds. None blocks forever.
    """

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT
    # ─────────────────────────────────────────────────────────────────────

    root_directory: str = "/var/www/html"
    """
    Directory files are served from. Request paths are joined onto it.
    """

    default_file: str = "index.html"
    """
    File served for "/" and for any directory path.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """

    @classmethod
    def from_file(cls, path: str | Path) -> "ServerConfig":
        """Load configuration from an INI file. See load_config()."""
        return load_config(path)

    @property
    def root_path(self) -> Path:
        return Path(self.root_directory)

    def validate(self) -> None:
        """
        Validate configuration values.

        The file loader already falls back to defaults for bad values, so
        this mostly catches values passed in code or on the command line.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError(f"backlog must be >= 1, got {self.backlog}")

        if self.buffer_size < 512:
            raise ValueError(f"buffer_size must be >= 512, got {self.buffer_size}")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")

        if not self.default_file:
            raise ValueError("default_file must not be empty")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")


# =============================================================================
# INI LOADER
# =============================================================================

def load_config(path: str | Path) -> ServerConfig:
    """
    Load a ServerConfig from an INI file.

    Starts from the defaults and applies each recognised key found in the
    [Server] section. Nothing here raises: problems are logged and the
    affected setting keeps its default.

    Args:
        path: Path to the INI file.

    Returns:
        The populated configuration.
    """
    config = ServerConfig()

    parser = configparser.ConfigParser(
        interpolation=None,
        strict=False,
        empty_lines_in_values=False,
    )

    try:
        with open(path, encoding="utf-8") as fp:
            parser.read_file(fp)
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Cannot read config file {path}: {e}. Using defaults.")
        return config
    except configparser.MissingSectionHeaderError as e:
        logger.warning(
            f"Config file {path} has no section header "
            f"(line {e.lineno}). Using defaults."
        )
        return config
    except configparser.ParsingError as e:
        # Well-formed lines were still loaded; report the rest
        for lineno, line in e.errors:
            logger.warning(f"Skipping malformed line {lineno} in {path}: {line}")

    if not parser.has_section(SERVER_SECTION):
        logger.warning(f"No [{SERVER_SECTION}] section in {path}. Using defaults.")
        return config

    logger.info(f"Parsing [{SERVER_SECTION}] section of {path}")

    for key, value in parser.items(SERVER_SECTION):
        value = value.strip()
        if not value:
            logger.warning(f"Skipping malformed key-value pair: {key!r} has no value")
            continue
        _apply_setting(config, key, value)

    return config


def _apply_setting(config: ServerConfig, key: str, value: str) -> None:
    """Apply one [Server] key to `config`. Keys arrive lowercased."""
    if key == "port":
        config.port = _parse_int(
            value, default=ServerConfig.port, minimum=1, maximum=65535, name="port number"
        )
        logger.info(f"Config: Port = {config.port}")

    elif key == "rootdirectory":
        config.root_directory = value
        logger.info(f"Config: RootDirectory = {config.root_directory}")

    elif key == "defaultfile":
        config.default_file = value
        logger.info(f"Config: DefaultFile = {config.default_file}")

    elif key == "maxconnections":
        config.backlog = _parse_int(
            value, default=ServerConfig.backlog, minimum=1, name="max connections"
        )
        logger.info(f"Config: MaxConnections = {config.backlog}")

    elif key == "host":
        config.host = value
        logger.info(f"Config: Host = {config.host}")

    else:
        logger.warning(f"Unrecognized config key: {key!r}")


def _parse_int(
    value: str,
    default: int,
    minimum: int,
    maximum: Optional[int] = None,
    name: str = "value",
) -> int:
    """Parse an integer setting, falling back to `default` when invalid."""
    try:
        number = int(value)
    except ValueError:
        logger.warning(f"Invalid {name} {value!r}. Using default {default}.")
        return default

    if number < minimum or (maximum is not None and number > maximum):
        logger.warning(f"Invalid {name} {value!r}. Using default {default}.")
        return default

    return number
