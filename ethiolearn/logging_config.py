"""Logging helpers for the EthioLearn backend.

All loggers live under the ``ethiolearn`` hierarchy so a single handler
installed at startup covers every module.
"""

import logging
import sys

ROOT_LOGGER = "ethiolearn"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a logger, namespaced under ``ethiolearn`` if it isn't already."""
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Install a stream handler on the root ``ethiolearn`` logger.

    Safe to call more than once; the handler is only added the first time.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not any(getattr(h, "_ethiolearn", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._ethiolearn = True
        logger.addHandler(handler)

    return logger


def _format_fields(fields: dict) -> str:
    return " | ".join(f"{k}={v}" for k, v in fields.items() if v is not None)


def log_auth_event(event: str, user_id: str | None = None, success: bool = True, **fields) -> None:
    """Log an authentication event (signup, login, token rejection)."""
    logger = get_logger("ethiolearn.auth")
    line = _format_fields({"event": event, "user": user_id, "success": success, **fields})
    if success:
        logger.info(line)
    else:
        logger.warning(line)


def log_workflow_event(event: str, actor_id: str, **fields) -> None:
    """Log a state change in the purchase or hiring workflow."""
    get_logger("ethiolearn.workflow").info(
        _format_fields({"event": event, "actor": actor_id, **fields})
    )
