# shopsearch/core/logging.py
import logging
import sys
import colorlog

# Third-party loggers that drown the per-search summary lines at INFO
NOISY_LOGGERS = ("pymongo", "motor", "httpx", "httpcore", "openai", "redis")


class ShortNameFilter(logging.Filter):
    """shopsearch.domain.services.search_svc -> services.search_svc"""

    def filter(self, record: logging.LogRecord) -> bool:
        parts = record.name.split(".")
        record.short_name = ".".join(parts[-2:]) if parts[0] == "shopsearch" else record.name
        return True


def configure_logging(level=logging.INFO, app_name: str = "shopsearch"):
    handler = colorlog.StreamHandler(sys.stdout)
    handler.addFilter(ShortNameFilter())
    handler.setFormatter(
        colorlog.ColoredFormatter(
            f"%(log_color)s%(asctime)s %(levelname)-8s {app_name} [%(short_name)s]%(reset)s %(message)s",
            datefmt="%H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    logging.getLogger("uvicorn.error").setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
