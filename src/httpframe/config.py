"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Settings for the demo server that runs the framer on real sockets.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   1. Command-line arguments                                         │
    │      └── python -m httpframe --port 3000                           │
    │                                                                      │
    │   2. YAML file                                                      │
    │      └── python -m httpframe --config httpframe.yaml               │
    │                                                                      │
    │   3. Environment variables                                          │
    │      └── HTTPFRAME_PORT=3000 python -m httpframe                   │
    │                                                                      │
    │   4. Defaults (this dataclass)                                      │
    └─────────────────────────────────────────────────────────────────────┘

Example YAML file:

    listen: "0.0.0.0:8080"
    backlog: 128
    max_line_size: 65536
    timeout: 30
    logging:
      level: debug

=============================================================================
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import yaml


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def parse_listen(listen: str, default_port: int) -> Tuple[str, int]:
    """
    Split a listen address into (host, port).

        "0.0.0.0:8080"  → ("0.0.0.0", 8080)
        "localhost"     → ("localhost", default_port)
        "[::1]:8080"    → ("::1", 8080)
        "::1"           → ("::1", default_port)
    """
    if listen.startswith("["):
        host, _, rest = listen[1:].partition("]")
        port = rest[1:] if rest.startswith(":") else ""
    elif listen.count(":") == 1:
        host, _, port = listen.partition(":")
    else:
        host, port = listen, ""

    return host, int(port) if port else default_port


@dataclass
class ServerConfig:
    """
    Configuration for the framer demo server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, timeout

    FRAMING SETTINGS
    - max_line_size

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces
    """

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free port."""

    backlog: int = 128
    """Maximum number of queued connections before new ones are refused."""

    timeout: Optional[float] = None
    """
    Socket timeout in seconds for each client connection.
    None = block forever on a slow or silent peer.
    An expired timeout surfaces as a StreamIOError and closes the connection.
    """

    # ─────────────────────────────────────────────────────────────────────
    # FRAMING SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_line_size: int = 64 * 1024
    """Longest request or header line accepted, in bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTPFRAME_HOST           Server host (default: 127.0.0.1)
        HTTPFRAME_PORT           Server port (default: 8080)
        HTTPFRAME_BACKLOG        Listen backlog (default: 128)
        HTTPFRAME_MAX_LINE_SIZE  Longest accepted line (default: 65536)
        HTTPFRAME_TIMEOUT        Socket timeout in seconds (default: none)
        HTTPFRAME_LOG_LEVEL      Logging level (default: INFO)

        =====================================================================
        """
        timeout = os.getenv("HTTPFRAME_TIMEOUT")
        return cls(
            host=os.getenv("HTTPFRAME_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTPFRAME_PORT", "8080")),
            backlog=int(os.getenv("HTTPFRAME_BACKLOG", "128")),
            max_line_size=int(os.getenv("HTTPFRAME_MAX_LINE_SIZE", str(64 * 1024))),
            timeout=float(timeout) if timeout else None,
            log_level=os.getenv("HTTPFRAME_LOG_LEVEL", "INFO"),
        )

    @classmethod
    def from_yaml(cls, path: str) -> "ServerConfig":
        """
        Load configuration from a YAML file.

        "listen" may be "host:port", "[v6addr]:port" or just a host (see
        parse_listen). Missing keys keep their defaults.
        """
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        defaults = cls()

        listen_host, listen_port = parse_listen(
            str(data.get("listen", defaults.host)), defaults.port
        )

        timeout = data.get("timeout", defaults.timeout)

        return cls(
            host=listen_host,
            port=listen_port,
            backlog=int(data.get("backlog", defaults.backlog)),
            max_line_size=int(data.get("max_line_size", defaults.max_line_size)),
            timeout=float(timeout) if timeout is not None else None,
            log_level=str((data.get("logging") or {}).get("level", defaults.log_level)),
        )

    @property
    def log_level_value(self) -> int:
        """Numeric logging level for logging.basicConfig()."""
        return getattr(logging, self.log_level.upper(), logging.INFO)

    def validate(self) -> None:
        """
        Validate configuration values.

        Called by HTTPServer at construction so bad settings fail at
        startup instead of on the first connection.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.max_line_size < 256:
            raise ValueError("max_line_size must be >= 256")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")
