"""
Structured logging setup
"""

import logging
import sys

import structlog
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog on top of stdlib logging. Call once at startup."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def mask_address(address: str) -> str:
    """Render a store address with its password hidden"""
    try:
        return make_url(address).render_as_string(hide_password=True)
    except ArgumentError:
        return "<unparseable store address>"
