"""
模块职责：统一日志配置与结构化输出（控制台 + 可选文件）。
- configure_logging(): 按环境变量设置等级与 handler，uvicorn 日志合流到同一套 handler。
- emit(event, **kwargs): 一行 JSON 的结构化事件，方便检索。
- emit_error(event, **kwargs): 同上，level=ERROR。

约定：任何事件都不得携带明文口令或口令哈希。
"""
import logging, json, os, pathlib
from logging.handlers import TimedRotatingFileHandler
from datetime import datetime


LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "true").lower() == "true"
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_FILE = os.getenv("LOG_FILE", "ellarises.log")
LOG_ROTATE_WHEN = os.getenv("LOG_ROTATE_WHEN", "midnight")
try:
    LOG_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "7"))
except ValueError:
    LOG_BACKUP_COUNT = 7

_configured = False

def configure_logging():
    global _configured
    if _configured:
        return

    level = getattr(logging, LEVEL, logging.INFO)
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    ))
    root.addHandler(console)

    if LOG_TO_FILE:
        pathlib.Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
        fileh = TimedRotatingFileHandler(
            os.path.join(LOG_DIR, LOG_FILE),
            when=LOG_ROTATE_WHEN, backupCount=LOG_BACKUP_COUNT, encoding="utf-8",
        )
        fileh.setLevel(level)
        # 文件里只写 message（纯 JSON）
        fileh.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(fileh)

    root.setLevel(level)

    for ln in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(ln)
        lg.handlers = []
        lg.propagate = True

    _configured = True

_app_logger = logging.getLogger("ellarises")

def _now_iso():
    return datetime.now().astimezone().isoformat(timespec="milliseconds")

def _record(level: str, event: str, fields: dict) -> str:
    rec = {"ts": _now_iso(), "level": level, "event": event, **fields}
    try:
        return json.dumps(rec, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(rec)

def emit(event: str, level: str = "INFO", **kwargs):
    """
    结构化日志：默认 INFO；每条都带本地时区时间戳 ts。
    用法：emit("sess_created", user_id=1)
    """
    _app_logger.log(getattr(logging, level.upper(), logging.INFO), _record(level.upper(), event, kwargs))


def emit_error(event: str, **kwargs):
    """
    错误日志（level=ERROR）。
    用法：emit_error("db_error", request_id=..., err=str(e))
    """
    _app_logger.error(_record("ERROR", event, kwargs))
