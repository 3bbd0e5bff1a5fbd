import json
import logging
import sys
from typing import Any

from loguru import logger

from src import settings


class InterceptHandler(logging.Handler):
    """
    Default handler from examples in loguru documentation.
    This handler intercepts all log requests and
    passes them to loguru.
    For more info see:
    https://loguru.readthedocs.io/en/stable/overview.html#entirely-compatible-with-standard-logging
    """

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover
        """
        Propagates logs to loguru.
        """
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level,
            record.getMessage(),
        )


def _json_default(value: Any) -> str:
    return str(value)


def deployed_log_formatter(record: dict[str, Any]) -> str:
    """
    Formats a machine readable log
    """
    if record['exception'] is not None:
        exc = record['exception']
        record['exception'] = None
        record['extra']['error'] = {
            'exception_type': type(exc.value).__name__ if exc.value is not None else '',
            'message': str(exc.value),
        }

    # Inject important information into extra to trim log size
    record['extra']['timestamp'] = record['time'].strftime('%Y-%m-%dT%H:%M:%S,%f')
    record['extra']['message'] = record['message']
    record['extra']['level'] = record['level'].name
    record['extra']['logger'] = record['name']

    record['extra']['serialized'] = json.dumps(record['extra'], default=_json_default)
    log_format = '{extra[serialized]}\n'
    return log_format


def local_log_formatter(record: dict[str, Any]) -> str:
    """
    Formats a log record for local development console
    """
    level = record['level'].no
    if level == logging.DEBUG:
        icon = '🔬'
    elif level == logging.WARNING:
        icon = '⚠️'
    elif level == logging.ERROR:
        icon = '💣💥'
    elif level == logging.CRITICAL:
        icon = '🚨'
    else:
        icon = '✏️'

    log_format = (
        '<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> '
        f'| {icon} '
        ' <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> '
        '- <level>{message}</level>\n'
    )

    if record['exception'] is not None and settings.DEBUG:
        from rich.console import Console
        from rich.traceback import Traceback

        exc_info = record['exception']
        record['exception'] = None
        rich_tb = Traceback.from_exception(
            exc_type=exc_info[0],
            exc_value=exc_info[1],
            traceback=exc_info[2],
            show_locals=True,
            locals_max_length=5,  # Limit container size
            locals_max_string=25,  # Limit string length
            locals_hide_dunder=True,
            max_frames=10,
        )
        Console(stderr=True).print(rich_tb)
    elif record['exception'] is not None:
        log_format += '{exception}\n'
    return log_format


def configure_logging() -> None:
    # Intercept everything at the root logger
    logging.root.handlers = [InterceptHandler()]
    logging.root.setLevel(settings.LOG_LEVEL)

    # Remove every other logger's handlers
    # and propagate to root logger
    for name in logging.root.manager.loggerDict.keys():
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True

    if settings.IS_DEPLOYED_ENV:
        log_formatter = deployed_log_formatter
    else:
        log_formatter = local_log_formatter

    logger.remove()
    logger.add(
        sys.stdout,
        serialize=False,
        backtrace=False,
        diagnose=False,
        level=settings.LOG_LEVEL,
        format=log_formatter,
    )
    logger.info(f'logging level: {settings.LOG_LEVEL}')
