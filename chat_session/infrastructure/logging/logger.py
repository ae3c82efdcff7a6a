import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from chat_session.config.settings import settings


def setup_logger() -> logging.Logger:
    logger = logging.getLogger("chat_session")
    logger.setLevel(logging.DEBUG)
    log_dir = Path(settings.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_dir / "session.log", encoding="utf-8")
    fh.setLevel(logging.INFO)

    class JsonFormatter(logging.Formatter):
        def format(self, record: logging.LogRecord) -> str:
            msg = record.getMessage()
            if settings.log_redact_content:
                msg = (msg or "")[:64]
            payload = {
                "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
                "level": record.levelname,
                "name": record.name,
                "msg": msg,
            }
            extra = getattr(record, "extra", None)
            if isinstance(extra, dict):
                payload.update(extra)
            return json.dumps(payload, ensure_ascii=False)

    fh.setFormatter(JsonFormatter())
    logger.addHandler(fh)
    return logger


def log_event(level: int, message: str, **fields) -> None:
    """带结构化字段写一条日志，字段会合并进 JSON 行。"""

    logger.log(level, message, extra={"extra": fields})


logger = setup_logger()
