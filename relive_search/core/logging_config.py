# relive_search/core/logging_config.py
import logging
import sys
import structlog
from relive_search.core.config import settings

# Third-party loggers held at WARNING regardless of LOG_LEVEL.
QUIET_LOGGERS = ("asyncpg", "cachetools")


def setup_logging():
    """Configures structured logging with structlog."""
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.LOG_LEVEL == "DEBUG":
        shared_processors.append(structlog.processors.CallsiteParameterAdder(
            {
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
            }
        ))

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(),
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()

    # Only attach our handler once, even if setup_logging() is called repeatedly
    if not any(isinstance(h, logging.StreamHandler) and isinstance(h.formatter, structlog.stdlib.ProcessorFormatter) for h in root_logger.handlers):
        root_logger.addHandler(handler)

    effective_log_level = settings.LOG_LEVEL.upper()
    if effective_log_level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        effective_log_level = "INFO"
        logging.getLogger("relive_search_early_log").warning(f"Invalid LOG_LEVEL '{settings.LOG_LEVEL}', defaulting to 'INFO'.")

    root_logger.setLevel(effective_log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    log = structlog.get_logger("relive_search")
    log.info("Logging configured for Relive Search", log_level=effective_log_level)
