"""
Logging helpers.

Modules log through the stdlib `logging` package with structured fields
passed in `extra`. Decision-tree transitions are logged below DEBUG at the
TRACE level registered here.
"""

import logging

TRACE = 5

logging.addLevelName(TRACE, "TRACE")


def resolve_level(level: str | int) -> int:
    """
    Translate a level name (including TRACE) to its numeric value.

    Raises:
        ValueError: If the name is not a known logging level
    """
    if isinstance(level, int):
        return level

    numeric = logging.getLevelName(level.strip().upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")
    return numeric


def configure_logging(level: str | int = "INFO") -> None:
    """Configure root logging once at startup."""
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        level=resolve_level(level),
    )
