import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging once at startup."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Treat naive datetimes as UTC.

    SQLite drops the offset from stored timestamps, PostgreSQL keeps it;
    date arithmetic needs both to compare against ``utc_now()``.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class LoggerMixin:
    """
    Mixin that gives a class structured logging helpers.

    Messages may be plain strings or dicts; dicts are logged as their string
    form so each event stays on one line. The logger is named after the
    concrete class.

    Example:
        class PaymentService(LoggerMixin):
            def process(self):
                self.log_info({"event": "payment_processed", "payment_id": "..."})
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._logger: Optional[logging.Logger] = None

    @property
    def logger(self) -> logging.Logger:
        if getattr(self, "_logger", None) is None:
            self._logger = logging.getLogger(self.__class__.__name__)
        return self._logger

    def _format_message(self, message: Union[str, Dict[str, Any]]) -> str:
        if isinstance(message, dict):
            return str(message)
        return message

    def log_info(self, message: Union[str, Dict[str, Any]], **kwargs) -> None:
        self.logger.info(self._format_message(message), **kwargs)

    def log_warning(self, message: Union[str, Dict[str, Any]], **kwargs) -> None:
        self.logger.warning(self._format_message(message), **kwargs)

    def log_error(
        self, message: Union[str, Dict[str, Any]], exc_info: bool = False, **kwargs
    ) -> None:
        """
        Log an error level message.

        Args:
            message: Message to log (string or dict)
            exc_info: Include exception information if True
            **kwargs: Additional context to pass to logger
        """
        self.logger.error(self._format_message(message), exc_info=exc_info, **kwargs)

    def log_debug(self, message: Union[str, Dict[str, Any]], **kwargs) -> None:
        self.logger.debug(self._format_message(message), **kwargs)

    def log_security_event(self, message: Union[str, Dict[str, Any]], **kwargs) -> None:
        """
        Log a security-related event at warning level.

        Security events carry a 'SECURITY EVENT:' prefix so access denials
        and failed logins can be filtered out of the general stream.
        """
        formatted_msg = self._format_message(message)
        self.logger.warning(f"SECURITY EVENT: {formatted_msg}", **kwargs)


class _ModuleLevelLogger(LoggerMixin):
    """Module-level logger instance that uses a fixed name."""

    def __init__(self):
        self._logger = logging.getLogger("mamacare")


logger = _ModuleLevelLogger()
