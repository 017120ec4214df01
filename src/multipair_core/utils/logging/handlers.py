#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
日志处理器模块，支持控制台、滚动文件以及外部传入的处理器。
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import List

from .config import LogConfig, LogFormat
from .formatters import create_formatter


class SafeRotatingFileHandler(RotatingFileHandler):
    """滚动文件处理器，自动创建日志目录"""

    def __init__(self, filename, max_bytes=0, backup_count=0, encoding='utf-8'):
        directory = os.path.dirname(filename)
        if directory:
            os.makedirs(directory, exist_ok=True)
        super().__init__(filename, maxBytes=max_bytes, backupCount=backup_count, encoding=encoding)


def create_handlers(config: LogConfig = None) -> List[logging.Handler]:
    """
    按配置创建日志处理器

    Args:
        config: 日志配置，为None时使用全局配置

    Returns:
        处理器列表
    """
    if config is None:
        config = LogConfig.get_instance()
    config_dict = config.get_config()

    formatter = create_formatter(config_dict.get('format_type', LogFormat.TEXT),
                                 use_colors=config_dict.get('use_colors', False))
    handlers = []

    if config_dict.get('console_output', True):
        console_handler = logging.StreamHandler(stream=sys.stdout)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    if config_dict.get('file_output', False):
        file_path = config_dict.get('file_path') or os.path.join("logs", "multipair.log")
        file_handler = SafeRotatingFileHandler(
            file_path,
            max_bytes=config_dict.get('max_bytes', 0),
            backup_count=config_dict.get('backup_count', 0),
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for handler in config_dict.get('external_handlers', []):
        if isinstance(handler, logging.Handler):
            handler.setFormatter(formatter)
            handlers.append(handler)
    return handlers
