#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
日志格式化器模块，提供文本和JSON两种格式的日志输出。
"""

import dataclasses
import json
import logging
import traceback
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum

from .config import LogConfig, LogFormat


def _json_default(obj):
    """extra 字段中的 Decimal/时间/枚举/数据类转换为可序列化的值，其余对象取 repr"""
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.name
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {f.name: getattr(obj, f.name) for f in dataclasses.fields(obj)}
    return repr(obj)


class TextFormatter(logging.Formatter):
    """文本格式化器，支持彩色日志"""

    COLORS = {
        'RED': '\033[31m',
        'YELLOW': '\033[33m',
        'CYAN': '\033[36m',
        'WHITE': '\033[37m',
        'RESET': '\033[0m'
    }

    LEVEL_COLORS = {
        'ERROR': COLORS['RED'],
        'CRITICAL': COLORS['RED'],
        'WARNING': COLORS['YELLOW'],
        'INFO': COLORS['CYAN'],
        'DEBUG': COLORS['WHITE']
    }

    def __init__(self, fmt=None, datefmt=None, style='%', use_colors=True):
        if fmt is None:
            fmt = (
                "%(asctime)s [%(levelname)s] [%(name)s] "
                "[%(threadName)s] %(module)s.%(funcName)s:%(lineno)d - %(message)s"
            )
        if datefmt is None:
            datefmt = "%Y-%m-%d %H:%M:%S"
        self.use_colors = use_colors
        super().__init__(fmt, datefmt, style)

    def format(self, record):
        if self.use_colors and record.levelname in self.LEVEL_COLORS:
            original_levelname = record.levelname
            record.levelname = f"{self.LEVEL_COLORS[original_levelname]}{original_levelname}{self.COLORS['RESET']}"
            try:
                return super().format(record)
            finally:
                record.levelname = original_levelname
        return super().format(record)


class JsonFormatter(logging.Formatter):
    """JSON格式化器，输出结构化日志，便于机器处理"""

    _RESERVED = {
        "args", "asctime", "created", "exc_info", "exc_text", "filename",
        "funcName", "id", "levelname", "levelno", "lineno", "module",
        "msecs", "message", "msg", "name", "pathname", "process",
        "processName", "relativeCreated", "stack_info", "thread", "threadName",
        "taskName",
    }

    def __init__(self, indent=None):
        super().__init__()
        self.indent = indent

    def format(self, record):
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "thread": record.threadName,
        }
        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": "".join(traceback.format_exception(*record.exc_info)),
            }
        # extra= 传入的自定义字段
        for key, value in record.__dict__.items():
            if key not in self._RESERVED and not key.startswith("_"):
                log_data[key] = value
        return json.dumps(log_data, default=_json_default, indent=self.indent, ensure_ascii=False)


def create_formatter(format_type=None, use_colors=False, **kwargs):
    """
    创建格式化器

    Args:
        format_type: 格式类型，默认从配置获取
        use_colors: 是否启用彩色日志
        **kwargs: 传递给格式化器的额外参数

    Returns:
        对应类型的格式化器
    """
    if format_type is None:
        format_type = LogConfig.get_instance().get("format_type", LogFormat.TEXT)

    if format_type == LogFormat.JSON:
        return JsonFormatter(**kwargs)
    if format_type == LogFormat.SIMPLE:
        return TextFormatter(fmt="%(levelname).1s %(message)s", use_colors=use_colors, **kwargs)
    return TextFormatter(use_colors=use_colors, **kwargs)
