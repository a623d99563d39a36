from pathlib import Path
import logging
import json
import datetime

from multiprocessing import Queue
from logging.handlers import QueueHandler, QueueListener

from pydantic import EmailStr
from pydantic_settings import BaseSettings

from logging_loki import LokiHandler


class Settings(BaseSettings):
    LOG_LEVEL: str = "INFO"
    LOG_UVICORN_FORMAT: str = "%(asctime)s %(levelname)s uvicorn: %(message)s"
    LOG_ACCESS_FORMAT: str = "%(asctime)s %(levelname)s access: %(message)s"
    LOG_DEFAULT_FORMAT: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    APP_VERSION: str = "dev"
    APP_TITLE: str = "Radio Ratings API"
    APP_CONTACT_NAME: str = "Radio maintainers"
    APP_CONTACT_EMAIL: EmailStr = "radio@example.com"
    APP_OPENAPI_URL: str = "/openapi.json"
    APP_DOCS_URL: str | None = "/docs"
    APP_REDOC_URL: str | None = None
    PRODUCTION: bool = False

    ROOT_PATH: str = ""
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    BACKEND_CORS_ORIGINS: list[str] = []

    # Loki shipping is skipped when unset
    LOKI_URL: str | None = None

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        env_nested_delimiter = "__"
        extra = "allow"


settings = Settings()


class JsonConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp"  : datetime.datetime.now(datetime.timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level"      : record.levelname,
            "logger"     : record.name,
            "file"       : f"{record.filename}:{record.lineno}",
            "status_code": getattr(record, "status_code", None),
            "trace_id"   : getattr(record, "otelTraceID", None),
            "span_id"    : getattr(record, "otelSpanID", None),
            "service"    : getattr(record, "otelServiceName", None),
            "msg"        : record.getMessage(),
        }
        return json.dumps(log, ensure_ascii=False)


json_formatter = JsonConsoleFormatter()

console_handler = logging.StreamHandler()
console_handler.setFormatter(json_formatter)
console_handler.setLevel(logging.INFO)

# Every module logs under "app.*" (or "database"), both land here.
app_logger = logging.getLogger("app")
app_logger.setLevel(settings.LOG_LEVEL.upper())
app_logger.addHandler(console_handler)

db_logger = logging.getLogger("database")
db_logger.setLevel(settings.LOG_LEVEL.upper())
db_logger.addHandler(console_handler)

listener = None
if settings.LOKI_URL:
    queue = Queue(-1)
    queue_handler = QueueHandler(queue)

    http_loki_handler = LokiHandler(
        url=settings.LOKI_URL,
        tags={"application": settings.APP_TITLE},
        auth=None,
        version="1",
    )
    http_loki_handler.setFormatter(json_formatter)
    listener = QueueListener(queue, http_loki_handler)
    listener.start()

    app_logger.addHandler(queue_handler)
    db_logger.addHandler(queue_handler)


class EndpointFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return f"GET {settings.ROOT_PATH}/metrics" not in record.getMessage()

uvicorn_access_logger = logging.getLogger("uvicorn.access")
uvicorn_access_logger.addFilter(EndpointFilter())
