import sys
import logging
from typing import Any, Optional

from loguru import logger

from gridscout.config.settings import AppSettings, settings as default_settings

SENSITIVE_KEYS = ["key", "token", "password", "secret"]


def _mask(value: str) -> str:
    if len(value) > 8:
        return value[:4] + "****" + value[-4:]
    return "********"


def make_sensitive_data_filter(app_settings: AppSettings):
    """Builds a Loguru filter that masks the GRID key and sensitive extras."""

    def sensitive_data_filter(record: dict[str, Any]) -> bool:
        extra = record.get("extra")
        if isinstance(extra, dict):
            for extra_key, extra_value in extra.items():
                if any(sk in extra_key.lower() for sk in SENSITIVE_KEYS):
                    extra[extra_key] = (
                        _mask(extra_value) if isinstance(extra_value, str) else "********"
                    )

        api_key = app_settings.grid_api_key
        if api_key and api_key in record["message"]:
            record["message"] = record["message"].replace(api_key, "********")

        return True  # Keep the record after filtering/masking

    return sensitive_data_filter


class InterceptHandler(logging.Handler):
    """Routes standard logging records (httpx, uvicorn) into Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(app_settings: Optional[AppSettings] = None) -> None:
    """Configures Loguru logger based on application settings."""
    app_settings = app_settings or default_settings
    logger.remove()  # Remove default handler

    logger.add(
        sys.stderr,
        level=app_settings.log_level.upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
        backtrace=True,
        diagnose=False,  # Locals may hold the API key
        filter=make_sensitive_data_filter(app_settings),
    )

    logger.info(f"Logging initialized with level: {app_settings.log_level}")

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    # httpx logs every request line at INFO; keep it at WARNING unless debugging
    if app_settings.log_level.upper() != "DEBUG":
        logging.getLogger("httpx").setLevel(logging.WARNING)
    logger.info("Standard logging intercepted.")
