#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
日志配置模块，管理全局日志设置（级别、格式、输出目标）
"""

import logging
import os
from enum import Enum, auto
from typing import Any, Dict

ENV_PREFIX = "MULTIPAIR_LOG_"
_TRUE_VALUES = ('1', 'true', 'yes', 'on')


class LogLevel(Enum):
    """日志级别"""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def from_string(cls, level_str: str) -> 'LogLevel':
        """从字符串转换为日志级别，无法识别时回退到INFO"""
        return cls.__members__.get(level_str.strip().upper(), cls.INFO)


class LogFormat(Enum):
    """日志格式"""
    TEXT = auto()    # 文本格式
    JSON = auto()    # JSON格式
    SIMPLE = auto()  # 简单格式

    @classmethod
    def from_string(cls, format_str: str) -> 'LogFormat':
        return cls.__members__.get(format_str.strip().upper(), cls.TEXT)


class LogConfig:
    """日志配置类（单例），默认值可被环境变量覆盖"""

    _instance = None

    @classmethod
    def get_instance(cls) -> 'LogConfig':
        if cls._instance is None:
            cls._instance = LogConfig()
        return cls._instance

    def __init__(self):
        self._config = {
            'level': LogLevel.INFO,
            'format_type': LogFormat.TEXT,
            'console_output': True,
            'file_output': False,
            'file_path': None,
            'use_colors': False,
            'max_bytes': 10 * 1024 * 1024,
            'backup_count': 5,
            'external_handlers': []
        }
        self._load_from_env()

    def _load_from_env(self):
        """从环境变量加载配置"""
        log_level = os.environ.get(ENV_PREFIX + 'LEVEL')
        if log_level:
            self._config['level'] = LogLevel.from_string(log_level)

        log_format = os.environ.get(ENV_PREFIX + 'FORMAT')
        if log_format:
            self._config['format_type'] = LogFormat.from_string(log_format)

        for env_key, config_key in (('CONSOLE', 'console_output'),
                                    ('FILE', 'file_output'),
                                    ('USE_COLORS', 'use_colors')):
            value = os.environ.get(ENV_PREFIX + env_key)
            if value:
                self._config[config_key] = value.lower() in _TRUE_VALUES

        file_path = os.environ.get(ENV_PREFIX + 'FILE_PATH')
        if file_path:
            self._config['file_path'] = file_path

    def update_config(self, **kwargs):
        for key, value in kwargs.items():
            if key in self._config:
                self._config[key] = value

    def get_config(self) -> Dict[str, Any]:
        return self._config.copy()

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)
