#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
日志模块，统一日志接口。

主要功能:
- 多种日志级别(DEBUG, INFO, WARNING, ERROR, CRITICAL)
- 多种输出格式(文本, JSON, 简单)
- 多种输出目标(控制台, 滚动文件, 外部处理器)
- 支持环境变量配置(MULTIPAIR_LOG_*)
"""

import logging
from typing import List, Optional, Union

from .config import LogConfig, LogFormat, LogLevel
from .formatters import JsonFormatter, TextFormatter, create_formatter
from .handlers import create_handlers

__all__ = [
    'LogLevel',
    'LogFormat',
    'LogConfig',
    'JsonFormatter',
    'TextFormatter',
    'create_formatter',
    'setup_logging',
    'get_logger',
]

_is_initialized = False


def setup_logging(
    level: Union[LogLevel, str, int] = None,
    console: bool = True,
    file: bool = False,
    use_colors: bool = False,
    file_path: Optional[str] = None,
    format_type: Union[LogFormat, str] = None,
    external_handlers: Optional[List[logging.Handler]] = None,
    **kwargs
) -> None:
    """
    配置全局日志设置

    Args:
        level: 日志级别，可以是LogLevel枚举、级别名称字符串或整数级别，None时取环境变量/默认值
        console: 是否输出到控制台
        file: 是否输出到文件
        use_colors: 控制台是否使用彩色日志
        file_path: 日志文件路径
        format_type: 日志格式类型，None时取环境变量/默认值
        external_handlers: 额外的日志处理器列表
        **kwargs: 其他配置项(max_bytes, backup_count)
    """
    global _is_initialized

    config = LogConfig.get_instance()
    if level is None:
        level = config.get('level', LogLevel.INFO)
    elif isinstance(level, str):
        level = LogLevel.from_string(level)
    elif isinstance(level, int):
        level = LogLevel(level)

    if format_type is None:
        format_type = config.get('format_type', LogFormat.TEXT)
    elif isinstance(format_type, str):
        format_type = LogFormat.from_string(format_type)

    config.update_config(
        level=level,
        format_type=format_type,
        console_output=console,
        file_output=file,
        use_colors=use_colors,
        file_path=file_path,
        external_handlers=external_handlers or [],
        **kwargs
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.setLevel(level.value)
    for handler in create_handlers(config):
        root_logger.addHandler(handler)

    _is_initialized = True
    logging.getLogger(__name__).debug(f"日志系统已初始化 - 级别: {level.name}, 格式: {format_type.name}")


def get_logger(name: str) -> logging.Logger:
    """
    获取指定名称的日志器，日志系统未初始化时使用默认配置初始化

    Args:
        name: 日志器名称

    Returns:
        具有指定名称的日志器
    """
    if not _is_initialized:
        setup_logging()
    return logging.getLogger(name)
