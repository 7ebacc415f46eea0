import logging
from typing import IO, Optional
from pythonjsonlogger.json import JsonFormatter


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
SERVICE_NAME = "mailgun-guard"


def build_formatter() -> JsonFormatter:
    return JsonFormatter(
        LOG_FORMAT,
        rename_fields={"asctime": "time", "levelname": "level"},
        static_fields={"service": SERVICE_NAME},
    )


def configure_json_logging(level: int = logging.INFO, stream: Optional[IO[str]] = None) -> None:
    """Send every record through one JSON handler on the root logger (stderr unless `stream` is given)."""
    root = logging.getLogger()
    root.setLevel(level)

    # Replace any handlers installed by the server or a previous app instance
    for existing in list(root.handlers):
        root.removeHandler(existing)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(build_formatter())
    root.addHandler(handler)
