"""Logging setup for applications embedding subflow.

The library only creates module loggers; it never installs handlers on
import. Call configure_logging() from an application entry point or a
notebook to see resolution traces.
"""

import logging
import os
import sys

ENV_LOG_LEVEL = "SUBFLOW_LOG_LEVEL"
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def configure_logging(level: str | None = None) -> int:
    """Configure stderr logging for subflow.

    Args:
        level: Level name (DEBUG, INFO, ...). Defaults to the SUBFLOW_LOG_LEVEL
            environment variable, then INFO.

    Returns:
        The numeric level applied to the "subflow" logger
    """
    # Get log level from argument or environment variable, default to INFO
    log_level_str = (level or os.getenv(ENV_LOG_LEVEL) or "INFO").upper()

    # Validate log level and provide feedback
    if log_level_str not in VALID_LOG_LEVELS:
        print(
            f"Warning: Invalid {ENV_LOG_LEVEL} '{log_level_str}'. "
            f"Valid levels: {', '.join(sorted(VALID_LOG_LEVELS))}. "
            "Using INFO.",
            file=sys.stderr,
        )
        log_level_str = "INFO"

    log_level: int = getattr(logging, log_level_str)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    # basicConfig is a no-op when the root logger already has handlers
    logging.getLogger("subflow").setLevel(log_level)

    return log_level
