"""Process-wide logging setup for the CLI and the web app.

Modules log through ``logging.getLogger(__name__)``; this only installs the
root handler once and picks the level.
"""

import logging

# Third-party loggers that log every request at INFO
_CHATTY_LOGGERS = ("httpx", "httpcore", "anthropic")


def configure_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Configure the root handler and return the ``whistlespace`` logger.

    *level* may be a number or a name such as ``"debug"``; unknown names
    fall back to INFO.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=level,
    )
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return logging.getLogger("whistlespace")
