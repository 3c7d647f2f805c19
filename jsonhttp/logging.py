import json
import logging
import logging.config
import os
import re
from typing import Optional

import yaml

# Keys whose values are masked in formatted messages
SENSITIVE_KEYS = {"api_key", "token", "password", "secret", "authorization"}

_BEARER_RE = re.compile(r"(Bearer\s+)[^\s\"',]+", re.IGNORECASE)


def mask_secrets(msg: str) -> str:
    for key in SENSITIVE_KEYS:
        # "key": "value" and key=value
        msg = re.sub(rf'("{key}"\s*:\s*)"[^"]+"', r'\1"***"', msg, flags=re.IGNORECASE)
        msg = re.sub(rf"({key}\s*=\s*)[^,&\s\)]+", r"\1***", msg, flags=re.IGNORECASE)
    return _BEARER_RE.sub(r"\1***", msg)


class MaskingFormatter(logging.Formatter):
    """Plain text formatter with secrets masked."""

    def format(self, record: logging.LogRecord) -> str:
        return mask_secrets(super().format(record))


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with secrets masked."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": mask_secrets(record.getMessage()),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(
    level: str = "INFO", json_format: bool = False, log_file: Optional[str] = None, config_path: str = "log_config.yaml"
):
    """Configure the root logger, from a YAML dictConfig file when one exists."""

    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
        logging.config.dictConfig(config)
        logging.getLogger(__name__).info("Logging initialized from %s", config_path)
        return

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = MaskingFormatter("[%(asctime)s] %(levelname)s in %(name)s: %(message)s")
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger(__name__).info("Logging initialized (level=%s, json=%s)", level, json_format)


def setup_logging_from_settings(config=None):
    from jsonhttp.config import settings

    s = config or settings
    setup_logging(level=s.log_level, json_format=s.log_json, log_file=s.log_file, config_path=s.log_config_path)
