import logging
import sys


class _FieldsFormatter(logging.Formatter):
    """Appends structured fields passed as keyword arguments as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        fields: dict[str, object] = getattr(record, "fields", {})
        if not fields:
            return message
        rendered = " ".join(f"{key}={value}" for key, value in fields.items())
        return f"{message} | {rendered}"


class Log:
    """Centralized logging with structured format."""

    _logger: logging.Logger = logging.getLogger("contractdiff")

    @classmethod
    def configure(cls, log_level: str) -> None:
        """Configure the logger with the specified level and stdout handler."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                _FieldsFormatter("%(asctime)s [%(levelname)s] %(message)s")
            )
            cls._logger.addHandler(handler)

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        """Log an info message."""
        cls._logger.info(message, extra={"fields": kwargs})

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        """Log an error message."""
        cls._logger.error(message, extra={"fields": kwargs})

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        """Log a warning message."""
        cls._logger.warning(message, extra={"fields": kwargs})

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        """Log a debug message."""
        cls._logger.debug(message, extra={"fields": kwargs})
