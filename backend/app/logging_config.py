"""
Logging configuration for the Jobee API.

Console-only structured logging; secrets never reach the log lines.
"""
import logging
import sys

SENSITIVE_KEYS = ("password", "token", "secret", "key", "smtp_pass", "database_url", "authorization", "cookie")


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
    """
    level = getattr(logging, (log_level or "INFO").upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def sanitize_log_data(data: dict) -> dict:
    """Return a copy of `data` with sensitive values redacted."""
    sanitized = dict(data)
    for key in sanitized:
        if any(s in str(key).lower() for s in SENSITIVE_KEYS):
            sanitized[key] = "***REDACTED***"
    return sanitized
