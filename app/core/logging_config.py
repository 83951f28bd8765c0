import logging

import structlog
from pythonjsonlogger.json import JsonFormatter

from app.core.settings import MonitoringSettings

JSON_LOG_FORMAT = """
{
    "level": "%(levelname)s",
    "time": "%(asctime)s",
    "message": "%(message)s",
    "loggerName": "%(name)s",
    "processName": "%(processName)s",
    "fileName": "%(filename)s",
    "lineNumber": "%(lineno)d"
}
"""


def configure_logging(settings: MonitoringSettings) -> None:
    """Route stdlib and structlog records through one JSON handler"""
    log_handler = logging.StreamHandler()
    if settings.LOG_FORMAT == "json":
        log_handler.setFormatter(JsonFormatter(JSON_LOG_FORMAT))
    else:
        log_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
    logging.basicConfig(handlers=[log_handler], level=settings.LOG_LEVEL, force=True)

    # structlog event dicts become `extra` fields on stdlib records
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.stdlib.render_to_log_kwargs,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
