# =============================================================================
# portico/logger.py - Logging Setup
# =============================================================================
# Two kinds of logging:
# - Console logging for the process, configured once by configure_logging()
# - Named file logs under <root>/<logs>/ (access.log, error.log) handed out
#   by LogFactory and used by the error chain
# =============================================================================

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from portico.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# How many rotated files to keep per named log
LOG_BACKUP_COUNT = 30


def configure_logging(settings: Settings) -> None:
    """Configure console logging for the server process."""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format=LOG_FORMAT,
    )


class LogFactory:
    """
    Hands out file-backed loggers living in one log directory.

    Usage:
        logs = LogFactory(settings.log_dir)
        logs.get("error").error("boom")   # -> <log_dir>/error.log
    """

    def __init__(self, log_dir: Path):
        self.log_dir = Path(log_dir)

    def get(self, name: str) -> logging.Logger:
        """
        Get the logger ``portico.<name>`` writing to ``<log_dir>/<name>.log``.

        Rotates at midnight. A logger previously pointed at another directory
        (another app in the same process) is re-pointed here.
        """
        self.log_dir.mkdir(parents=True, exist_ok=True)
        filename = str((self.log_dir / f"{name}.log").resolve())

        log = logging.getLogger(f"portico.{name}")
        log.setLevel(logging.INFO)

        for handler in list(log.handlers):
            if not isinstance(handler, TimedRotatingFileHandler):
                continue
            if handler.baseFilename == filename:
                return log
            log.removeHandler(handler)
            handler.close()

        handler = TimedRotatingFileHandler(
            filename,
            when="midnight",
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
            delay=True,
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
        return log
