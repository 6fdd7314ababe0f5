"""Configuration management for calendarfilter server."""

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import MutableMapping
from pathlib import Path
from typing import Any, Optional

from calendarfilter.core.timezone_utils import (
    ZoneResolver,
    get_server_timezone,
    validate_timezone_name,
)
from calendarfilter.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080
DEFAULT_BIND = "0.0.0.0"  # nosec B104 - service is meant to be reachable by calendar clients
DEFAULT_REQUEST_TIMEOUT = 30.0

_TRUTHY = ("1", "true", "yes", "on")


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the .env file.
        Empty dict if file doesn't exist or cannot be read.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
        - Handles KEY=VALUE format with optional whitespace
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return {}

    for raw_line in content.splitlines():
        line = raw_line.strip()

        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")

        if key:
            result[key] = val

    return result


@dataclasses.dataclass(frozen=True)
class ServiceConfig:
    """Process-wide configuration, read once at startup.

    Attributes:
        source_url: Upstream ICS feed URL (required)
        server_bind: Host/interface to listen on
        server_port: TCP port to listen on
        default_timezone: Zone used when a request names none
        request_timeout: Upstream read timeout in seconds
        debug_logging: Enable DEBUG logging for calendarfilter modules
    """

    source_url: str
    server_bind: str = DEFAULT_BIND
    server_port: int = DEFAULT_PORT
    default_timezone: str = "UTC"
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    debug_logging: bool = False

    def with_overrides(self, **overrides: Any) -> ServiceConfig:
        """Return a copy with non-None ``overrides`` applied (CLI flags)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        updated = dataclasses.replace(self, **changes)
        if not updated.source_url:
            raise ConfigurationError("CALENDAR_URL environment variable is required")
        return updated

    def diagnostic_view(self) -> dict[str, Any]:
        """Config summary safe for logs (private feed URLs carry secrets)."""
        masked = self.source_url[:40] + ("..." if len(self.source_url) > 40 else "")
        return {
            "source_url": masked,
            "server_bind": self.server_bind,
            "server_port": self.server_port,
            "default_timezone": self.default_timezone,
            "request_timeout": self.request_timeout,
        }


class ConfigManager:
    """Builds ServiceConfig from environment variables and .env files."""

    def __init__(
        self,
        env_file_path: Optional[Path] = None,
        environ: Optional[MutableMapping[str, str]] = None,
        zone_resolver: Optional[ZoneResolver] = None,
    ):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
            environ: Environment mapping (defaults to os.environ)
            zone_resolver: Resolver used to validate the default timezone
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"
        self.environ = os.environ if environ is None else environ
        self.zone_resolver = zone_resolver

    def load_env_file(self) -> list[str]:
        """Load .env file into the environment mapping.

        Only sets variables that are not already present.

        Returns:
            List of keys that were loaded from the .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        set_keys = []
        for key, val in parse_env_file(self.env_file_path).items():
            if key not in self.environ:
                self.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def _resolve_default_timezone(self) -> str:
        server_tz = get_server_timezone()
        configured = self.environ.get("CALENDARFILTER_DEFAULT_TIMEZONE")
        if not configured:
            return server_tz

        if validate_timezone_name(configured, self.zone_resolver):
            return configured

        logger.warning(
            "Invalid CALENDARFILTER_DEFAULT_TIMEZONE=%r, falling back to %r",
            configured,
            server_tz,
        )
        return server_tz

    def build_config_from_env(self, source_url: Optional[str] = None) -> ServiceConfig:
        """Build ServiceConfig from environment variables.

        Args:
            source_url: Feed URL that takes precedence over CALENDAR_URL

        Recognizes:
        - CALENDAR_URL -> source_url (required)
        - PORT -> server_port (int, default 8080)
        - CALENDARFILTER_BIND -> server_bind
        - CALENDARFILTER_DEFAULT_TIMEZONE -> default_timezone (validated)
        - CALENDARFILTER_REQUEST_TIMEOUT -> request_timeout (seconds)
        - CALENDARFILTER_DEBUG -> debug_logging

        Raises:
            ConfigurationError: If CALENDAR_URL is missing or a numeric value is invalid
        """
        source_url = (source_url or self.environ.get("CALENDAR_URL") or "").strip()
        if not source_url:
            raise ConfigurationError("CALENDAR_URL environment variable is required")

        port_value = self.environ.get("PORT") or str(DEFAULT_PORT)
        try:
            port = int(port_value)
        except ValueError:
            raise ConfigurationError(f"Invalid PORT={port_value!r}") from None
        if not 0 < port < 65536:
            raise ConfigurationError(f"PORT out of range: {port}")

        timeout_value = self.environ.get("CALENDARFILTER_REQUEST_TIMEOUT")
        request_timeout = DEFAULT_REQUEST_TIMEOUT
        if timeout_value:
            try:
                request_timeout = float(timeout_value)
            except ValueError:
                raise ConfigurationError(
                    f"Invalid CALENDARFILTER_REQUEST_TIMEOUT={timeout_value!r}"
                ) from None
            if request_timeout <= 0:
                raise ConfigurationError("CALENDARFILTER_REQUEST_TIMEOUT must be positive")

        debug = self.environ.get("CALENDARFILTER_DEBUG", "").strip().lower() in _TRUTHY

        return ServiceConfig(
            source_url=source_url,
            server_bind=self.environ.get("CALENDARFILTER_BIND") or DEFAULT_BIND,
            server_port=port,
            default_timezone=self._resolve_default_timezone(),
            request_timeout=request_timeout,
            debug_logging=debug,
        )

    def load_full_config(self, source_url: Optional[str] = None) -> ServiceConfig:
        """Load .env file and build configuration from environment.

        This is the main entry point for loading configuration.
        """
        self.load_env_file()
        return self.build_config_from_env(source_url)
