"""calendarfilter - filtering HTTP proxy for a single iCalendar feed.

Each request fetches the configured ICS feed, drops events whose local start
and end exactly match one of the requested daily time ranges, and returns the
re-serialized calendar.
"""

__version__ = "0.1.0"

from typing import Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Honors CALENDARFILTER_DEBUG (truthy values: "1", "true", "yes", "on"),
    which forces DEBUG verbosity regardless of ``level_name``.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("CALENDARFILTER_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure basic handler if no handlers are present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   [request-id] logger.name: message
        fmt = (
            "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s "
            "[%(request_id)s] %(name)s: %(message)s"
        )
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))

        from .filter_logging import CorrelationIdFilter

        handler.addFilter(CorrelationIdFilter())
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def run_server(args: Optional[object] = None) -> None:
    """Load configuration and run the filter server until shutdown.

    Args:
        args: Optional command line namespace with ``port``, ``bind`` and
            ``source_url`` overrides

    Raises:
        ConfigurationError: If CALENDAR_URL is missing or a setting is invalid
    """
    import logging
    import os

    _init_logging(os.environ.get("CALENDARFILTER_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    from .api.server import start_server
    from .core.config_manager import ConfigManager

    config = ConfigManager().load_full_config(source_url=getattr(args, "source_url", None))

    if args is not None:
        config = config.with_overrides(
            server_port=getattr(args, "port", None),
            server_bind=getattr(args, "bind", None),
        )

    logger.debug("Resolved configuration (diagnostic): %s", config.diagnostic_view())

    # Blocks until SIGINT/SIGTERM
    start_server(config)
