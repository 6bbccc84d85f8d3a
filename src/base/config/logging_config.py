import logging

from src.base.middleware.correlation_middleware import CorrelationFilter
from src.base.middleware.request_context import RequestContextFilter


class ColoredFormatter(logging.Formatter):
    """Console formatter that colours the level name and shortens logger names."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def format(self, record):
        color = self.COLORS.get(record.levelname)
        if color:
            record.colored_levelname = f"{color}{record.levelname}{self.COLORS['RESET']}"
        else:
            record.colored_levelname = record.levelname

        # src.domain.services.auth_service -> auth_service
        module = record.name.split(".")[-1] if record.name else "unknown"
        record.filename_only = "app" if module == "__main__" else module

        if not getattr(record, "correlation_id", ""):
            record.correlation_id = "-"
        if not hasattr(record, "user_id"):
            record.user_id = "-"

        return super().format(record)


class LoggingConfig:
    """Configuration class for application logging setup."""

    FORMAT = (
        "%(asctime)s | %(colored_levelname)s | %(filename_only)s "
        "| cid=%(correlation_id)s uid=%(user_id)s | %(message)s"
    )

    @staticmethod
    def setup_logging(log_level: int = logging.INFO) -> None:
        """
        Configure root logging with correlation ID and authenticated user context.

        Args:
            log_level: The logging level (default: logging.INFO)
        """
        root = logging.getLogger()
        root.setLevel(log_level)

        # Only add handlers if none exist to avoid duplicates
        if root.hasHandlers():
            return

        handler = logging.StreamHandler()
        handler.setFormatter(
            ColoredFormatter(LoggingConfig.FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        handler.addFilter(CorrelationFilter())
        handler.addFilter(RequestContextFilter())
        root.addHandler(handler)

        # SQL echo is noisy at INFO
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
