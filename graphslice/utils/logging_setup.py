"""
Logging setup for the command-line entry point
"""
import logging


def setup_logging(name: str = "graphslice", level: str = "INFO") -> logging.Logger:
    """
    Configure logging for a run.

    Args:
        name: Logger name to return.
        level: Log level string (e.g. 'INFO', 'DEBUG').

    Returns:
        Configured logger instance.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s  %(name)-40s  %(levelname)-7s  %(message)s",
    )
    return logging.getLogger(name)
