# catalog_server/app/platform/logging.py
import os
import json
import logging
import logging.config
from contextvars import ContextVar
from datetime import datetime, timezone

# ===== Correlation ID =====
# HTTP 요청(X-Request-ID) 또는 푸시 실행 단위로 설정된다.
correlation_id_ctx = ContextVar("correlation_id", default="-")

class CorrelationIDFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_ctx.get()
        return True

# ===== JSON Formatter =====
# 레코드에 extra로 실려 오면 그대로 출력하는 필드
EXTRA_FIELDS = (
    # 푸셔 배치 이벤트
    "batch_index", "batch_size", "elapsed_ms", "status_code",
    "documents_committed", "skipped",
    # 접근 로그
    "http_method", "path", "duration_ms",
)

class JsonFormatter(logging.Formatter):
    """
    JSON 라인 출력: Logstash에서 바로 파싱 가능.
    배치 이벤트/접근 로그 필드가 있으면 함께 포함.
    """
    def format(self, record: logging.LogRecord) -> str:
        # 기본 필드
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
                .isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "-"),
        }

        # 예외 스택
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        for k in EXTRA_FIELDS:
            v = getattr(record, k, None)
            if v is not None:
                payload[k] = v

        return json.dumps(payload, ensure_ascii=False, default=str)

# ===== Text Formatter (로컬 확인용) =====
TEXT_DEFAULT = "%(asctime)s %(levelname)s [%(name)s] [%(correlation_id)s] %(message)s"

def build_logging_config(
    *,
    log_to_file: bool = False,
    log_dir: str = "/var/log/app",
    as_json: bool = True,
    level: str = "INFO",
) -> dict:
    """
    dictConfig에 넘길 설정 딕셔너리를 만든다.
    - app 로그: root, catalog_server
    - access 로그: uvicorn.access
    """
    formatter = "json" if as_json else "text_default"
    formatters = {
        "json": {"()": JsonFormatter},
        "text_default": {"format": TEXT_DEFAULT},
    }

    handlers = {
        "console_app": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": formatter,
            "filters": ["correlation_id"],
        },
    }

    if log_to_file:
        handlers["file_app"] = {
            "class": "logging.handlers.TimedRotatingFileHandler",
            "level": level,
            "formatter": formatter,
            "filename": f"{log_dir}/app.log",
            "when": "midnight",
            "backupCount": 14,
            "encoding": "utf-8",
            "filters": ["correlation_id"],
        }

    app_handlers = ["console_app"] + (["file_app"] if log_to_file else [])
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "correlation_id": {"()": CorrelationIDFilter}
        },
        "formatters": formatters,
        "handlers": handlers,
        "loggers": {
            "": {
                "handlers": app_handlers,
                "level": level,
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": app_handlers,
                "level": level,
                "propagate": False,
            },
        },
    }

def setup_logging(
    *,
    log_to_file: bool = False,
    log_dir: str = "/var/log/app",
    as_json: bool = True,
    level: str = "INFO",
) -> None:
    os.environ.setdefault("TZ", "UTC")  # 타임존 명시 (로그 일관성)
    if log_to_file:
        os.makedirs(log_dir, exist_ok=True)
    logging.config.dictConfig(build_logging_config(
        log_to_file=log_to_file, log_dir=log_dir, as_json=as_json, level=level))
