"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Settings for the dispatcher: how responses are written, how much of an
internal failure is shown to the client, and how logging is set up.

    # In code
    server = Server(ServerConfig(expose_error_details=False))

    # From the environment
    HTTPKIT_EXPOSE_ERRORS=0 HTTPKIT_LOG_LEVEL=DEBUG python app.py
    server = Server(ServerConfig.from_env())

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class ServerConfig:
    """
    Configuration for the Server.

    Development:
        ServerConfig(log_level="DEBUG")

    Production:
        ServerConfig(
            expose_error_details=False,   # no X-Error header
            log_level="WARNING",
        )
    """

    # ─────────────────────────────────────────────────────────────────────
    # OUTPUT
    # ─────────────────────────────────────────────────────────────────────

    chunk_size: int = 8192
    """
    Bytes read from a body per write in Server.send(). Each chunk is
    flushed, so a slow client sees progress on large bodies.
    """

    server_name: Optional[str] = None
    """
    Value for the Server header added by send(). None = no header
    (some hide it for security).
    """

    # ─────────────────────────────────────────────────────────────────────
    # FAILURES
    # ─────────────────────────────────────────────────────────────────────

    expose_error_details: bool = True
    """
    Put the message of an unexpected exception in the ``error_header``
    of the 500 response. Handy while developing; turn off in hardened
    deployments so internals don't leak.
    """

    error_header: str = "X-Error"

    error_body: str = "Internal Server Error"
    """Body of every 500 produced for an unexpected exception."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTPKIT_CHUNK_SIZE      Body write chunk size (default: 8192)
        HTTPKIT_EXPOSE_ERRORS   1/0, diagnostic error header (default: 1)
        HTTPKIT_ERROR_HEADER    Diagnostic header name (default: X-Error)
        HTTPKIT_LOG_LEVEL       Logging level (default: INFO)
        HTTPKIT_SERVER_NAME     Server header value (default: none)

        =====================================================================
        """
        return cls(
            chunk_size=int(os.getenv("HTTPKIT_CHUNK_SIZE", "8192")),
            expose_error_details=_env_bool("HTTPKIT_EXPOSE_ERRORS", True),
            error_header=os.getenv("HTTPKIT_ERROR_HEADER", "X-Error"),
            log_level=os.getenv("HTTPKIT_LOG_LEVEL", "INFO").upper(),
            server_name=os.getenv("HTTPKIT_SERVER_NAME") or None,
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called when the Server is created, so a bad setting fails at
        startup rather than on the first request.

        Raises:
            ValueError: Describing the first invalid setting.
        """
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be >= 1, got {self.chunk_size}")

        if not self.error_header.strip():
            raise ValueError("error_header must not be empty")

        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(
                f"Invalid log_level: {self.log_level!r}. Must be one of {', '.join(_LOG_LEVELS)}."
            )
