import os
from logging import Filter, LogRecord, config, getLevelName, getLogger

LOGGER_NAME = "geoblock"
LOG_LEVEL = getLevelName(os.getenv("LOG_LEVEL", "INFO"))  # DEBUG, WARNING, ERROR
LOG_COLORS = os.getenv("LOG_COLORS", "true").lower() == "true"

# Record attributes filled from `extra=` by the middleware; "-" when a message has none.
CONTEXT_FIELDS = ("client_ip", "verdict")


class DecisionContextFilter(Filter):
    """Give every geoblock record the client_ip and verdict attributes the formatter expects."""

    def filter(self, record: LogRecord) -> bool:
        for field in CONTEXT_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, "-")
        return True


def decision_context(client_ip: str | None, verdict: str | None = None) -> dict[str, str]:
    """`extra` mapping for log calls made while deciding on one client address."""
    return {"client_ip": client_ip or "-", "verdict": verdict or "-"}


log_config = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "decision_context": {"()": DecisionContextFilter},
    },
    "formatters": {
        "geoblock": {
            "()": "uvicorn.logging.DefaultFormatter",
            "fmt": "%(levelprefix)s %(asctime)s [geoblock] client_ip=%(client_ip)s verdict=%(verdict)s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
            "use_colors": LOG_COLORS,
        },
    },
    "handlers": {
        "geoblock": {
            "formatter": "geoblock",
            "class": "logging.StreamHandler",
            "filters": ["decision_context"],
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        LOGGER_NAME: {"handlers": ["geoblock"], "level": LOG_LEVEL, "propagate": False},
    },
}

config.dictConfig(log_config)

# Shared by the middleware, the lookup client and the host application.
logger = getLogger(LOGGER_NAME)
