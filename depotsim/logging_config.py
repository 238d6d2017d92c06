"""
日志配置
统一配置 depotsim 命名空间下的日志输出

环境变量:
- LOG_LEVEL: 日志级别（DEBUG, INFO, WARNING, ERROR），默认 INFO
- LOG_FORMAT: 输出格式（text 或 json），默认 text

用法:
    from depotsim.logging_config import configure_logging
    configure_logging()  # 应用启动时调用一次
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional


ROOT_LOGGER_NAME = "depotsim"

# LogRecord 自带的属性，不计入 extra
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info", "lineno",
    "funcName", "thread", "threadName", "processName", "process", "message",
    "msecs", "relativeCreated", "taskName",
})


class JSONFormatter(logging.Formatter):
    """
    JSON日志格式化器

    每条日志输出一行JSON，字段顺序固定
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_keys = set(record.__dict__.keys()) - _RESERVED_ATTRS
        if extra_keys:
            log_data["extra"] = {k: record.__dict__[k] for k in sorted(extra_keys)}

        return json.dumps(log_data, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """
    文本日志格式化器

    格式: 时间 级别 [模块] 消息
    """

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        """
        初始化格式化器

        Args:
            use_colors: 是否使用ANSI颜色（仅在终端中生效）
        """
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        level = record.levelname

        if self.use_colors:
            level_str = f"{self.LEVEL_COLORS.get(level, '')}{level:8s}{self.RESET}"
        else:
            level_str = f"{level:8s}"

        logger_name = record.name
        if logger_name.startswith(ROOT_LOGGER_NAME + "."):
            logger_name = logger_name[len(ROOT_LOGGER_NAME) + 1:]

        text = f"{timestamp} {level_str} [{logger_name}] {record.getMessage()}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


def get_log_level() -> int:
    """
    从环境变量读取日志级别

    Returns:
        日志级别常量（如 logging.INFO）
    """
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "WARN": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(level_name, logging.INFO)


def get_log_format() -> str:
    """
    从环境变量读取日志格式

    Returns:
        'text' 或 'json'
    """
    format_name = os.environ.get("LOG_FORMAT", "text").lower()
    if format_name not in ("text", "json"):
        return "text"
    return format_name


def configure_logging(
    level: Optional[int] = None,
    format_type: Optional[str] = None,
    use_colors: bool = True,
):
    """
    配置日志

    在 depotsim 根日志器上安装唯一的处理器，重复调用不会产生重复输出

    Args:
        level: 日志级别，None 则读取 LOG_LEVEL
        format_type: 输出格式，None 则读取 LOG_FORMAT
        use_colors: 文本格式是否使用颜色
    """
    if level is None:
        level = get_log_level()
    if format_type is None:
        format_type = get_log_format()

    handler = logging.StreamHandler(sys.stderr)
    if format_type == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter(use_colors=use_colors))

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False

    uvicorn_access = logging.getLogger("uvicorn.access")
    uvicorn_access.handlers.clear()
    uvicorn_access.addHandler(handler)
    uvicorn_access.setLevel(level)
    uvicorn_access.propagate = False

    root_logger.debug(
        "日志已配置: level=%s, format=%s",
        logging.getLevelName(level),
        format_type,
    )
