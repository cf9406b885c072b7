# logging_config.py
import logging
import logging.config
import logging.handlers
from pathlib import Path
from datetime import datetime
import json
import contextvars

# 요청 단위 식별자(ContextVar로 보관)
_request_id_ctx = contextvars.ContextVar("request_id", default="-")

MAX_LOGGED_BODY_CHARS = 2000


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id_ctx.get("-")
        return True


def set_request_id(req_id: str):
    _request_id_ctx.set(req_id)


def get_logger(name: str = __name__) -> logging.Logger:
    return logging.getLogger(name)


def build_dict_config(json_fmt: bool = False, log_dir: str = "logs") -> dict:
    fmt = (
        '{"ts":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s",'
        '"request_id":"%(request_id)s","msg":"%(message)s"}'
        if json_fmt
        else '%(asctime)s | %(levelname)s | %(name)s | rid=%(request_id)s | %(message)s'
    )
    base = Path(log_dir)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_id": {"()": RequestIdFilter},
        },
        "formatters": {
            "default": {
                "format": fmt,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "INFO",
                "formatter": "default",
                "filters": ["request_id"],
            },
            "file_app": {
                "class": "logging.handlers.TimedRotatingFileHandler",
                "level": "INFO",
                "formatter": "default",
                "filters": ["request_id"],
                "filename": str(base / "app.log"),
                "when": "midnight",
                "interval": 1,
                "backupCount": 30,
                "encoding": "utf-8",
            },
            "file_provider": {
                "class": "logging.handlers.TimedRotatingFileHandler",
                "level": "INFO",
                "formatter": "default",
                "filters": ["request_id"],
                "filename": str(base / "provider.log"),
                "when": "midnight",
                "interval": 1,
                "backupCount": 30,
                "encoding": "utf-8",
            },
        },
        "loggers": {
            # 루트 로거: 앱 전반
            "": {
                "level": "INFO",
                "handlers": ["console", "file_app"],
            },
            # upstream LLM 호출 전용 로거 (status + raw body)
            "provider": {
                "level": "INFO",
                "handlers": ["console", "file_provider"],
                "propagate": False,
            },
            # uvicorn 로거 레벨 통일
            "uvicorn": {"level": "INFO"},
            "uvicorn.error": {"level": "INFO"},
            "uvicorn.access": {"level": "INFO"},
        },
    }


def setup_logging(json_fmt: bool = False, log_dir: str = "logs"):
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_dict_config(json_fmt=json_fmt, log_dir=log_dir))


# ===== upstream provider 보조 함수들 =====
def _preview(body) -> str:
    if isinstance(body, (dict, list)):
        text = json.dumps(body, ensure_ascii=False)
    else:
        text = str(body)
    if len(text) > MAX_LOGGED_BODY_CHARS:
        text = text[:MAX_LOGGED_BODY_CHARS] + "..."
    return text


def log_provider_call(provider: str, model: str, msg_count: int, latency: float,
                      status: int | str, logger: logging.Logger | None = None):
    logger = logger or get_logger("provider")
    logger.info("llm call provider=%s model=%s msg_count=%d status=%s latency=%.2fs",
                provider, model, msg_count, status, latency)


def log_provider_failure(provider: str, status: int | str, body=None, error: str | None = None,
                         logger: logging.Logger | None = None):
    logger = logger or get_logger("provider")
    logger.error("PROVIDER_FAILURE: %s", json.dumps({
        "timestamp": datetime.now().isoformat(),
        "provider": provider,
        "status": status,
        "error": error,
        "body": _preview(body) if body is not None else None,
    }, ensure_ascii=False))
